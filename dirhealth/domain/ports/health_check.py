"""Domain port for category health checks."""

from __future__ import annotations

from typing import Any, List, Mapping, Protocol

from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.health import CheckCategory, HealthCheckResult


class IHealthCheck(Protocol):
    """One category evaluator.

    Per-server categories return exactly one result; infrastructure-wide
    categories may return one result per checked item.
    """

    category: CheckCategory
    default_parameters: Mapping[str, Any]

    async def run(self, context: CheckContext) -> List[HealthCheckResult]:
        """Gather signals for ``context.target`` and classify them."""
        ...
