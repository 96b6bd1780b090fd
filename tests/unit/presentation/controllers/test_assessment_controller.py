from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from dirhealth.application.dtos import AssessmentRequestDTO
from dirhealth.domain.entities.errors import (
    DiscoveryError,
    ThresholdConfigurationError,
)
from dirhealth.domain.entities.health import (
    CheckCategory,
    HealthCheckResult,
    HealthRun,
    HealthStatus,
    HealthSummary,
)
from dirhealth.presentation.controllers.assessment_controller import (
    list_categories,
    run_assessment,
)


class _AssessmentUseCase:
    def __init__(self, outcome):
        self.outcome = outcome
        self.requests = []

    async def execute(self, request):
        self.requests.append(request)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class _CategoriesUseCase:
    async def execute(self):
        return ["stub"]


def _run() -> HealthRun:
    now = datetime.now(timezone.utc)
    result = HealthCheckResult(
        category=CheckCategory.DNS,
        check_name="DnsResolution",
        target="dc01.corp.example.com",
        status=HealthStatus.CRITICAL,
        message="SRV record _ldap._tcp.corp.example.com is missing",
    )
    return HealthRun(
        results=[result],
        summary=HealthSummary.from_results([result], target_count=1),
        started_at=now,
        finished_at=now,
        targets=["dc01.corp.example.com"],
        categories=[CheckCategory.DNS],
    )


@pytest.mark.asyncio
async def test_run_assessment_returns_run_dto() -> None:
    use_case = _AssessmentUseCase(_run())
    payload = AssessmentRequestDTO(
        targets=["dc01.corp.example.com"], categories=["dns"]
    )

    dto = await run_assessment(payload=payload, health_assessment_use_case=use_case)

    assert dto.summary.overall_status is HealthStatus.CRITICAL
    assert dto.results[0].check_name == "DnsResolution"
    assert use_case.requests[0].categories == [CheckCategory.DNS]


@pytest.mark.asyncio
async def test_run_assessment_maps_threshold_errors_to_422() -> None:
    use_case = _AssessmentUseCase(
        ThresholdConfigurationError(["Unknown check category 'bogus'."])
    )

    with pytest.raises(HTTPException) as exc_info:
        await run_assessment(
            payload=AssessmentRequestDTO(), health_assessment_use_case=use_case
        )

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["errors"] == ["Unknown check category 'bogus'."]


@pytest.mark.asyncio
async def test_run_assessment_maps_discovery_errors_to_502() -> None:
    use_case = _AssessmentUseCase(
        DiscoveryError("Server discovery returned no servers")
    )

    with pytest.raises(HTTPException) as exc_info:
        await run_assessment(
            payload=AssessmentRequestDTO(), health_assessment_use_case=use_case
        )

    assert exc_info.value.status_code == 502
    assert exc_info.value.detail == "Server discovery returned no servers"


@pytest.mark.asyncio
async def test_list_categories_delegates_to_use_case() -> None:
    assert await list_categories(list_categories_use_case=_CategoriesUseCase()) == [
        "stub"
    ]
