"""
Health domain entities.

Value objects shared by every health check: the status scale, the check
categories, the immutable per-check result and the run-level aggregates
handed to report consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

INFRASTRUCTURE_SCOPE = "infrastructure"


class HealthStatus(str, Enum):
    """Outcome of a single health check."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> Optional[int]:
        """Rank on the healthy < warning < critical scale; None for unknown."""
        return _SEVERITY_RANK.get(self)


_SEVERITY_RANK: Dict[HealthStatus, int] = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.WARNING: 1,
    HealthStatus.CRITICAL: 2,
}


def worst_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Return the most severe ranked status; healthy when nothing is ranked."""
    worst = HealthStatus.HEALTHY
    for status in statuses:
        rank = status.severity
        if rank is None:
            raise ValueError("unknown has no severity and cannot be aggregated")
        if rank > _SEVERITY_RANK[worst]:
            worst = status
    return worst


class CheckCategory(str, Enum):
    """Check families, in canonical execution order."""

    SERVICES = "services"
    CONNECTIVITY = "connectivity"
    REPLICATION = "replication"
    FSMO_ROLES = "fsmo_roles"
    DNS = "dns"
    SYSVOL = "sysvol"
    TIME_SYNC = "time_sync"
    PERFORMANCE = "performance"
    SECURITY = "security"
    DATABASE = "database"
    EVENT_LOGS = "event_logs"
    CERTIFICATES = "certificates"

    @property
    def is_infrastructure_wide(self) -> bool:
        return self in _INFRASTRUCTURE_CATEGORIES

    @classmethod
    def ordered(cls, categories: Optional[Iterable["CheckCategory"]] = None):
        """Return ``categories`` (default: all) de-duplicated in canonical order."""
        selected = set(cls) if categories is None else set(categories)
        return [category for category in cls if category in selected]


_INFRASTRUCTURE_CATEGORIES = frozenset({CheckCategory.FSMO_ROLES})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    """Immutable outcome of one check invocation against one target."""

    category: CheckCategory
    check_name: str
    target: str
    status: HealthStatus
    message: str
    data: Mapping[str, Any] = field(default_factory=dict)
    recommendations: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))

    @property
    def error(self) -> Optional[str]:
        return self.data.get("error")


@dataclass(frozen=True, slots=True)
class CheckFailure:
    """A (target, category) evaluation that raised or timed out."""

    target: str
    category: CheckCategory
    error: str


@dataclass(frozen=True, slots=True)
class HealthSummary:
    """Counts over every produced result, before any filtering."""

    critical: int = 0
    warning: int = 0
    healthy: int = 0
    unknown: int = 0
    target_count: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warning + self.healthy + self.unknown

    @property
    def overall_status(self) -> HealthStatus:
        if self.critical:
            return HealthStatus.CRITICAL
        if self.warning:
            return HealthStatus.WARNING
        if self.healthy:
            return HealthStatus.HEALTHY
        return HealthStatus.UNKNOWN

    @classmethod
    def from_results(
        cls, results: Iterable[HealthCheckResult], target_count: int = 0
    ) -> "HealthSummary":
        counts = {status: 0 for status in HealthStatus}
        for result in results:
            counts[result.status] += 1
        return cls(
            critical=counts[HealthStatus.CRITICAL],
            warning=counts[HealthStatus.WARNING],
            healthy=counts[HealthStatus.HEALTHY],
            unknown=counts[HealthStatus.UNKNOWN],
            target_count=target_count,
        )


@dataclass(slots=True)
class HealthRun:
    """Aggregated output of one assessment run."""

    results: List[HealthCheckResult]
    summary: HealthSummary
    started_at: datetime
    finished_at: datetime
    targets: List[str] = field(default_factory=list)
    categories: List[CheckCategory] = field(default_factory=list)
    failures: List[CheckFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def elapsed_seconds(self) -> float:
        return max(0.0, (self.finished_at - self.started_at).total_seconds())

    def by_category(self) -> Dict[CheckCategory, List[HealthCheckResult]]:
        grouped: Dict[CheckCategory, List[HealthCheckResult]] = {}
        for result in self.results:
            grouped.setdefault(result.category, []).append(result)
        return grouped

    def with_status(self, status: HealthStatus) -> List[HealthCheckResult]:
        return [result for result in self.results if result.status is status]
