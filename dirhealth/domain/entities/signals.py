"""
Signal value objects.

A signal is one observation an evaluator feeds into severity
classification: either a numeric measurement checked against a
:class:`ThresholdPair`, or a pass/fail probe with a fixed failure severity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from dirhealth.domain.entities.health import HealthStatus
from dirhealth.domain.entities.thresholds import ThresholdPair


@dataclass(frozen=True, slots=True)
class Measurement:
    """Numeric signal classified against a threshold pair.

    ``label`` and ``unit`` feed the generated message, for example
    ``label="Replication latency"`` and ``unit=" minutes"`` render
    ``"Replication latency of 45 minutes exceeds ..."``. ``message_template``
    replaces the generated text; it may use ``{value}``, ``{bound}`` and
    ``{level}``.
    """

    name: str
    value: float
    thresholds: ThresholdPair
    label: str
    unit: str = ""
    recommendation: Optional[str] = None
    critical_recommendation: Optional[str] = None
    message_template: Optional[str] = None

    def format_value(self, value: Optional[float] = None) -> str:
        number = self.value if value is None else value
        if isinstance(number, float) and not number.is_integer():
            text = f"{number:.1f}"
        else:
            text = f"{int(number)}"
        return f"{text}{self.unit}"


@dataclass(frozen=True, slots=True)
class Probe:
    """Pass/fail signal. A failed probe takes ``failure_status``."""

    name: str
    passed: bool
    failure_message: str
    failure_status: HealthStatus = HealthStatus.CRITICAL
    recommendation: Optional[str] = None
    detail: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.failure_status not in (HealthStatus.WARNING, HealthStatus.CRITICAL):
            raise ValueError("probe failure status must be warning or critical")


Signal = Union[Measurement, Probe]


@dataclass(frozen=True, slots=True)
class SignalAssessment:
    """Classification of one signal."""

    signal: Signal
    status: HealthStatus
    message: Optional[str]

    @property
    def recommendation(self) -> Optional[str]:
        if self.status is HealthStatus.HEALTHY:
            return None
        if (
            isinstance(self.signal, Measurement)
            and self.status is HealthStatus.CRITICAL
            and self.signal.critical_recommendation
        ):
            return self.signal.critical_recommendation
        return self.signal.recommendation

    def as_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "name": self.signal.name,
            "status": self.status.value,
        }
        if isinstance(self.signal, Measurement):
            entry["value"] = self.signal.value
            entry["warning"] = self.signal.thresholds.warning
            entry["critical"] = self.signal.thresholds.critical
        else:
            entry["passed"] = self.signal.passed
            if self.signal.detail is not None:
                entry["detail"] = self.signal.detail
        if self.message:
            entry["message"] = self.message
        return entry
