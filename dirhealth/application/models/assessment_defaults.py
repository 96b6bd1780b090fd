"""Lightweight settings structures consumed by the application layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from dirhealth.domain.entities.directory import Credentials
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import ThresholdOverrides

DEFAULT_PROBE_TIMEOUT = 15.0
DEFAULT_CHECK_TIMEOUT = 120.0
DEFAULT_MAX_CONCURRENCY = 10


@dataclass(frozen=True)
class AssessmentDefaults:
    """Subset of configuration used when a request leaves a value unset."""

    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    check_timeout: float = DEFAULT_CHECK_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    credentials: Optional[Credentials] = None
    domain: Optional[str] = None
    targets: Sequence[str] = ()
    categories: Optional[Sequence[CheckCategory]] = None
    threshold_overrides: ThresholdOverrides = field(default_factory=dict)
