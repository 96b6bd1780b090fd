"""Severity classification shared by every category evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dirhealth.domain.entities.health import HealthStatus, worst_status
from dirhealth.domain.entities.signals import (
    Measurement,
    Probe,
    Signal,
    SignalAssessment,
)
from dirhealth.domain.entities.thresholds import Direction, ThresholdPair


def classify(value: float, thresholds: ThresholdPair) -> HealthStatus:
    """Classify ``value``: critical bound first, then warning."""
    if thresholds.crosses(value, thresholds.critical):
        return HealthStatus.CRITICAL
    if thresholds.crosses(value, thresholds.warning):
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


def _describe_measurement(signal: Measurement, status: HealthStatus) -> str:
    pair = signal.thresholds
    bound = pair.critical if status is HealthStatus.CRITICAL else pair.warning
    level = status.value
    if signal.message_template:
        return signal.message_template.format(
            value=signal.format_value(),
            bound=signal.format_value(bound),
            level=level,
        )
    if pair.direction is Direction.LOWER_IS_WORSE:
        relation = "is at or below" if pair.inclusive else "is below"
    else:
        relation = "meets or exceeds" if pair.inclusive else "exceeds"
    return (
        f"{signal.label} of {signal.format_value()} {relation} the "
        f"{signal.format_value(bound)} {level} threshold"
    )


def assess(signal: Signal) -> SignalAssessment:
    """Classify a single signal."""
    if isinstance(signal, Measurement):
        status = classify(signal.value, signal.thresholds)
        message = (
            None
            if status is HealthStatus.HEALTHY
            else _describe_measurement(signal, status)
        )
        return SignalAssessment(signal=signal, status=status, message=message)

    if isinstance(signal, Probe):
        if signal.passed:
            return SignalAssessment(
                signal=signal, status=HealthStatus.HEALTHY, message=None
            )
        return SignalAssessment(
            signal=signal,
            status=signal.failure_status,
            message=signal.failure_message,
        )

    raise TypeError(f"Unsupported signal type: {type(signal).__name__}")


@dataclass(frozen=True, slots=True)
class SignalEvaluation:
    """Overall classification of a signal set."""

    status: HealthStatus
    message: str
    recommendations: Tuple[str, ...]
    assessments: Tuple[SignalAssessment, ...] = field(default_factory=tuple)

    @property
    def issues(self) -> List[SignalAssessment]:
        return [a for a in self.assessments if a.status is not HealthStatus.HEALTHY]

    def signals_data(self) -> List[Dict[str, Any]]:
        return [assessment.as_dict() for assessment in self.assessments]


def evaluate_signals(
    signals: Sequence[Signal],
    *,
    healthy_message: str,
    closing_recommendations: Sequence[str] = (),
    extra_recommendations: Optional[Sequence[str]] = None,
) -> SignalEvaluation:
    """
    Classify every signal and aggregate to the worst severity.

    All signals are assessed even once a critical one has been seen, so the
    assessments and recommendations are always complete.

    Args:
        signals: Ordered signals; at least one is required.
        healthy_message: Message used when every signal is healthy.
        closing_recommendations: Guidance returned when fully healthy.
        extra_recommendations: Category guidance appended after the
            per-signal remediation when the result is not healthy.

    Raises:
        ValueError: If ``signals`` is empty.
    """
    if not signals:
        raise ValueError("At least one signal is required for evaluation")

    assessments = tuple(assess(signal) for signal in signals)
    status = worst_status(a.status for a in assessments)

    if status is HealthStatus.HEALTHY:
        return SignalEvaluation(
            status=status,
            message=healthy_message,
            recommendations=tuple(closing_recommendations),
            assessments=assessments,
        )

    message = next(a.message for a in assessments if a.status is status) or ""

    recommendations: List[str] = []
    for assessment in assessments:
        text = assessment.recommendation
        if text and text not in recommendations:
            recommendations.append(text)
    for text in extra_recommendations or ():
        if text not in recommendations:
            recommendations.append(text)

    return SignalEvaluation(
        status=status,
        message=message,
        recommendations=tuple(recommendations),
        assessments=assessments,
    )
