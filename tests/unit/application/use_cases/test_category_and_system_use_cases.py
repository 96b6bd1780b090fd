from datetime import datetime, timedelta, timezone

import pytest

from dirhealth.application.checks import build_checks
from dirhealth.application.models import SystemInfo
from dirhealth.application.use_cases import (
    GetApplicationInfoUseCase,
    ListCategoriesUseCase,
)
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import Direction


@pytest.fixture()
def checks(network_gateway, remote_gateway, directory_gateway):
    return build_checks(
        network_gateway=network_gateway,
        remote_gateway=remote_gateway,
        directory_gateway=directory_gateway,
    )


@pytest.mark.asyncio
async def test_list_categories_returns_every_category_in_order(checks) -> None:
    categories = await ListCategoriesUseCase(checks).execute()

    assert [c.name for c in categories] == list(CheckCategory)
    fsmo = next(c for c in categories if c.name is CheckCategory.FSMO_ROLES)
    assert fsmo.infrastructure_wide is True
    certificates = categories[-1]
    assert certificates.default_parameters == {"port": 636}


@pytest.mark.asyncio
async def test_list_categories_reflects_configured_overrides(checks) -> None:
    use_case = ListCategoriesUseCase(
        checks,
        threshold_overrides={CheckCategory.REPLICATION: {"latency_minutes": (30, 90)}},
    )

    categories = {c.name: c for c in await use_case.execute()}

    latency = categories[CheckCategory.REPLICATION].thresholds["latency_minutes"]
    assert (latency.warning, latency.critical) == (30, 90)
    assert latency.direction is Direction.HIGHER_IS_WORSE
    assert categories[CheckCategory.SERVICES].thresholds == {}


@pytest.mark.asyncio
async def test_application_info_reports_uptime_and_categories(checks) -> None:
    info = SystemInfo(
        title="dirhealth",
        description="Directory health",
        version="1.0.0",
        environment="production",
    )
    started_at = datetime.now(timezone.utc) - timedelta(seconds=30)

    dto = await GetApplicationInfoUseCase(checks, info).execute(started_at)

    assert dto.name == "dirhealth"
    assert dto.environment == "production"
    assert dto.started_at == started_at
    assert 29 <= dto.uptime_seconds < 60
    assert dto.categories == list(CheckCategory)


@pytest.mark.asyncio
async def test_application_info_without_start_time() -> None:
    info = SystemInfo(title="t", description="d", version="v", environment="test")

    dto = await GetApplicationInfoUseCase({}, info).execute(None)

    assert dto.uptime_seconds == 0.0
    assert dto.categories == []
