"""
Category Health Check Base - Application Layer

Shared plumbing for category evaluators: timeout-guarded collaborator
probes, signal-unavailable bookkeeping and result construction.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
)

from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.errors import ProbeError
from dirhealth.domain.entities.health import (
    CheckCategory,
    HealthCheckResult,
    HealthStatus,
)
from dirhealth.domain.entities.signals import Signal
from dirhealth.domain.entities.thresholds import ThresholdPair
from dirhealth.domain.services.severity_evaluator import evaluate_signals
from dirhealth.shared import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProbeOutcome(Generic[T]):
    """Value of a collaborator call, or the reason it is unavailable."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProbeLog:
    """Signal-unavailable messages collected while gathering."""

    errors: List[str] = field(default_factory=list)

    def record(self, label: str, error: str) -> None:
        self.errors.append(f"{label}: {error}")

    def as_error(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None


@dataclass
class Gathered:
    """Signals and detail produced by one evaluator for one target."""

    signals: List[Signal] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    extra_recommendations: List[str] = field(default_factory=list)


class BaseHealthCheck(ABC):
    """Common behaviour of every category evaluator."""

    category: CheckCategory
    check_name: str
    display_name: str
    closing_recommendations: Sequence[str] = ()
    default_parameters: Mapping[str, Any] = MappingProxyType({})

    @abstractmethod
    async def run(self, context: CheckContext) -> List[HealthCheckResult]:
        """Evaluate ``context.target`` and return its results."""

    async def probe(
        self,
        context: CheckContext,
        probes: ProbeLog,
        label: str,
        call: Awaitable[T],
    ) -> ProbeOutcome[T]:
        """Await a collaborator call under the probe timeout.

        Failures and timeouts never propagate: they are recorded in
        ``probes`` and returned as an outcome without a value.
        """
        try:
            value = await asyncio.wait_for(call, timeout=context.probe_timeout)
            return ProbeOutcome(value=value)
        except asyncio.TimeoutError:
            error = f"timed out after {context.probe_timeout:g}s"
        except ProbeError as exc:
            error = exc.message
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"

        probes.record(label, error)
        logger.warning(
            "probe.unavailable",
            category=self.category.value,
            target=context.target,
            probe=label,
            error=error,
        )
        return ProbeOutcome(error=error)

    def threshold(self, context: CheckContext, name: str) -> ThresholdPair:
        return context.thresholds[name]

    def build_result(
        self,
        context: CheckContext,
        *,
        status: HealthStatus,
        message: str,
        data: Mapping[str, Any],
        recommendations: Sequence[str] = (),
        check_name: Optional[str] = None,
    ) -> HealthCheckResult:
        return HealthCheckResult(
            category=self.category,
            check_name=check_name or self.check_name,
            target=context.target,
            status=status,
            message=message,
            data=data,
            recommendations=tuple(recommendations),
        )

    def unknown_result(
        self, context: CheckContext, probes: ProbeLog, data: Mapping[str, Any]
    ) -> HealthCheckResult:
        """Result for a target on which no signal could be obtained."""
        error = probes.as_error() or "no signal could be collected"
        return self.build_result(
            context,
            status=HealthStatus.UNKNOWN,
            message=f"Unable to evaluate {self.display_name} on {context.target}",
            data={**data, "error": error},
            recommendations=(
                f"Verify that {context.target} is reachable and that the "
                "probing account has remote management rights.",
            ),
        )


class ServerHealthCheck(BaseHealthCheck):
    """Per-server evaluator producing exactly one result.

    Subclasses implement :meth:`gather`; the gathered signals go through the
    severity evaluator. No signal at all yields an ``unknown`` result.
    """

    healthy_message: str = "All checks passed"

    async def run(self, context: CheckContext) -> List[HealthCheckResult]:
        probes = ProbeLog()
        gathered = await self.gather(context, probes)

        if not gathered.signals:
            return [self.unknown_result(context, probes, gathered.data)]

        evaluation = evaluate_signals(
            gathered.signals,
            healthy_message=self.healthy_message,
            closing_recommendations=self.closing_recommendations,
            extra_recommendations=gathered.extra_recommendations,
        )
        data = {"signals": evaluation.signals_data(), **gathered.data}
        error = probes.as_error()
        if error:
            data["error"] = error

        return [
            self.build_result(
                context,
                status=evaluation.status,
                message=evaluation.message,
                data=data,
                recommendations=evaluation.recommendations,
            )
        ]

    @abstractmethod
    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        """Collect signals for ``context.target``."""
