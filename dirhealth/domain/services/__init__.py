"""Domain services: severity classification and threshold validation."""

from .severity_evaluator import (
    SignalEvaluation,
    assess,
    classify,
    evaluate_signals,
)
from .threshold_validator import validate_thresholds

__all__ = [
    "SignalEvaluation",
    "assess",
    "classify",
    "evaluate_signals",
    "validate_thresholds",
]
