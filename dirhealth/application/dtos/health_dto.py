"""DTOs for assessment requests, results and category metadata."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from dirhealth.domain.entities.assessment import AssessmentRequest
from dirhealth.domain.entities.health import (
    CheckCategory,
    CheckFailure,
    HealthCheckResult,
    HealthRun,
    HealthStatus,
    HealthSummary,
)
from dirhealth.domain.entities.thresholds import Direction, ThresholdPair

BoundsOverride = Tuple[Optional[float], Optional[float]]


class AssessmentRequestDTO(BaseModel):
    """DTO for an assessment request."""

    targets: Optional[List[str]] = Field(
        default=None,
        description="Servers to assess; discovered from the topology when omitted",
    )
    categories: Optional[List[CheckCategory]] = Field(
        default=None, description="Categories to run; all when omitted"
    )
    include_healthy: bool = Field(
        default=False, description="Return healthy results as well"
    )
    include_extended: bool = Field(
        default=False, description="Attach raw detail to result data"
    )
    parameters: Dict[CheckCategory, Dict[str, Any]] = Field(
        default_factory=dict, description="Per-category parameter overrides"
    )
    thresholds: Dict[CheckCategory, Dict[str, BoundsOverride]] = Field(
        default_factory=dict, description="Per-category [warning, critical] overrides"
    )
    max_concurrency: Optional[int] = Field(
        default=None, ge=1, le=256, description="Targets evaluated at the same time"
    )

    def to_domain(
        self, cancel_event: Optional[asyncio.Event] = None
    ) -> AssessmentRequest:
        return AssessmentRequest(
            targets=self.targets,
            categories=self.categories,
            include_healthy=self.include_healthy,
            include_extended=self.include_extended,
            parameters=dict(self.parameters),
            threshold_overrides={
                category: {name: tuple(bounds) for name, bounds in signals.items()}
                for category, signals in self.thresholds.items()
            },
            max_concurrency=self.max_concurrency,
            cancel_event=cancel_event,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "targets": ["dc01.corp.example.com", "dc02.corp.example.com"],
                "categories": ["services", "replication", "fsmo_roles"],
                "include_healthy": True,
                "thresholds": {"replication": {"latency_minutes": [30, 90]}},
            }
        }
    }


class HealthCheckResultDTO(BaseModel):
    """Serializable representation of one check result."""

    category: CheckCategory = Field(description="Check family")
    check_name: str = Field(description="Name of the check")
    target: str = Field(description="Server name, or 'infrastructure'")
    status: HealthStatus = Field(description="Classified status")
    message: str = Field(description="Human readable summary")
    data: Dict[str, Any] = Field(
        default_factory=dict, description="Category specific detail"
    )
    recommendations: List[str] = Field(
        default_factory=list, description="Ordered remediation guidance"
    )
    timestamp: datetime = Field(description="Time the result was produced")

    @classmethod
    def from_domain(cls, result: HealthCheckResult) -> "HealthCheckResultDTO":
        return cls(
            category=result.category,
            check_name=result.check_name,
            target=result.target,
            status=result.status,
            message=result.message,
            data=dict(result.data),
            recommendations=list(result.recommendations),
            timestamp=result.timestamp,
        )


class HealthSummaryDTO(BaseModel):
    """Counts over every produced result."""

    overall_status: HealthStatus
    critical: int
    warning: int
    healthy: int
    unknown: int
    total: int
    target_count: int

    @classmethod
    def from_domain(cls, summary: HealthSummary) -> "HealthSummaryDTO":
        return cls(
            overall_status=summary.overall_status,
            critical=summary.critical,
            warning=summary.warning,
            healthy=summary.healthy,
            unknown=summary.unknown,
            total=summary.total,
            target_count=summary.target_count,
        )


class CheckFailureDTO(BaseModel):
    target: str
    category: CheckCategory
    error: str

    @classmethod
    def from_domain(cls, failure: CheckFailure) -> "CheckFailureDTO":
        return cls(
            target=failure.target, category=failure.category, error=failure.error
        )


class HealthRunDTO(BaseModel):
    """DTO representing the result of an assessment run."""

    summary: HealthSummaryDTO
    results: List[HealthCheckResultDTO] = Field(default_factory=list)
    failures: List[CheckFailureDTO] = Field(default_factory=list)
    targets: List[str] = Field(default_factory=list)
    categories: List[CheckCategory] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime
    elapsed_seconds: float
    cancelled: bool = False

    @classmethod
    def from_domain(cls, run: HealthRun) -> "HealthRunDTO":
        return cls(
            summary=HealthSummaryDTO.from_domain(run.summary),
            results=[HealthCheckResultDTO.from_domain(r) for r in run.results],
            failures=[CheckFailureDTO.from_domain(f) for f in run.failures],
            targets=list(run.targets),
            categories=list(run.categories),
            started_at=run.started_at,
            finished_at=run.finished_at,
            elapsed_seconds=round(run.elapsed_seconds, 3),
            cancelled=run.cancelled,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "summary": {
                    "overall_status": "warning",
                    "critical": 0,
                    "warning": 1,
                    "healthy": 0,
                    "unknown": 0,
                    "total": 1,
                    "target_count": 1,
                },
                "results": [
                    {
                        "category": "replication",
                        "check_name": "ReplicationStatus",
                        "target": "dc01.corp.example.com",
                        "status": "warning",
                        "message": (
                            "Replication latency of 45 minutes exceeds the "
                            "15 minutes warning threshold"
                        ),
                        "data": {"latency_minutes": 45, "consecutive_failures": 0},
                        "recommendations": [
                            "Replication latency is elevated; check site link "
                            "schedules and WAN connectivity between sites."
                        ],
                        "timestamp": "2026-01-05T08:00:00Z",
                    }
                ],
                "failures": [],
                "targets": ["dc01.corp.example.com"],
                "categories": ["replication"],
                "started_at": "2026-01-05T08:00:00Z",
                "finished_at": "2026-01-05T08:00:04Z",
                "elapsed_seconds": 4.2,
                "cancelled": False,
            }
        }
    }


class ThresholdDTO(BaseModel):
    warning: Optional[float] = None
    critical: Optional[float] = None
    direction: Direction
    inclusive: bool = False

    @classmethod
    def from_domain(cls, pair: ThresholdPair) -> "ThresholdDTO":
        return cls(
            warning=pair.warning,
            critical=pair.critical,
            direction=pair.direction,
            inclusive=pair.inclusive,
        )


class CategoryDTO(BaseModel):
    """Category metadata exposed for report consumers."""

    name: CheckCategory
    infrastructure_wide: bool
    thresholds: Dict[str, ThresholdDTO] = Field(default_factory=dict)
    default_parameters: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        category: CheckCategory,
        thresholds: Mapping[str, ThresholdPair],
        default_parameters: Mapping[str, Any],
    ) -> "CategoryDTO":
        return cls(
            name=category,
            infrastructure_wide=category.is_infrastructure_wide,
            thresholds={
                name: ThresholdDTO.from_domain(pair)
                for name, pair in thresholds.items()
            },
            default_parameters=dict(default_parameters),
        )
