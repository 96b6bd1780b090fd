"""
Assessment entities.

Inputs of an assessment run and the per-check context threaded from the
orchestrator into every category evaluator.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from dirhealth.domain.entities.directory import Credentials
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import ThresholdOverrides, ThresholdTable


@dataclass(frozen=True)
class CheckContext:
    """Everything a category evaluator needs for one target."""

    target: str
    category: CheckCategory
    thresholds: ThresholdTable
    probe_timeout: float
    credentials: Optional[Credentials] = None
    include_extended: bool = False
    parameters: Mapping[str, Any] = field(default_factory=dict)
    domain: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)


@dataclass
class AssessmentRequest:
    """Caller input for one assessment run.

    Omitted ``targets`` triggers topology discovery; omitted ``categories``
    selects all of them.
    """

    targets: Optional[Sequence[str]] = None
    categories: Optional[Sequence[CheckCategory]] = None
    include_healthy: bool = False
    include_extended: bool = False
    parameters: Mapping[CheckCategory, Mapping[str, Any]] = field(default_factory=dict)
    threshold_overrides: ThresholdOverrides = field(default_factory=dict)
    max_concurrency: Optional[int] = None
    cancel_event: Optional[asyncio.Event] = None
