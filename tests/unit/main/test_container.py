from __future__ import annotations

import pytest
from dependency_injector import providers

from dirhealth.application.use_cases import HealthAssessmentUseCase
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.main.config import AppSettings, AssessmentSettings
from dirhealth.main.container import app_lifespan, get_container, init_container


def test_init_and_get_container() -> None:
    settings = AppSettings()
    container = init_container(settings)

    assert get_container() is container
    assert container.settings() is settings
    assert list(container.health_checks()) == list(CheckCategory)
    assert isinstance(container.health_assessment_use_case(), HealthAssessmentUseCase)


def test_container_exposes_configured_defaults() -> None:
    settings = AppSettings(
        assessment=AssessmentSettings(
            targets=["dc01.corp.example.com"],
            max_concurrency=3,
            thresholds={CheckCategory.DNS: {"query_time_ms": (100, 400)}},
        )
    )
    container = init_container(settings)

    defaults = container.assessment_defaults()
    info = container.system_info()

    assert defaults.targets == ("dc01.corp.example.com",)
    assert defaults.max_concurrency == 3
    assert info.title == "dirhealth"
    assert info.environment == "development"


@pytest.mark.asyncio
async def test_list_categories_use_case_reflects_configured_thresholds() -> None:
    settings = AppSettings(
        assessment=AssessmentSettings(
            thresholds={CheckCategory.DNS: {"query_time_ms": (100, 400)}}
        )
    )
    container = init_container(settings)

    categories = await container.list_categories_use_case().execute()

    dns = next(c for c in categories if c.name is CheckCategory.DNS)
    assert dns.thresholds["query_time_ms"].critical == 400


@pytest.mark.asyncio
async def test_app_lifespan_builds_resources() -> None:
    container = init_container(AppSettings())
    built = []
    container.health_checks.override(
        providers.Callable(lambda: built.append(True) or {})
    )

    async with app_lifespan() as yielded:
        assert yielded is container

    assert built == [True]


def test_get_container_without_init_raises(monkeypatch) -> None:
    monkeypatch.setattr("dirhealth.main.container._app_container", None)
    with pytest.raises(RuntimeError):
        get_container()
