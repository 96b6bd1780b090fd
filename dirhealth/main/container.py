"""
Dependency container injection module - Main Layer

This module implements the dependency injection container
to simplify the management and lifecycle of dependencies
in the application.
"""

from contextlib import asynccontextmanager

from dependency_injector import containers, providers

from dirhealth.application.checks import build_checks
from dirhealth.application.models import SystemInfo
from dirhealth.application.use_cases import (
    GetApplicationInfoUseCase,
    HealthAssessmentUseCase,
    ListCategoriesUseCase,
)
from dirhealth.infrastructure.gateways import (
    ActiveDirectoryGateway,
    PowerShellRemoteManagementGateway,
    SocketNetworkGateway,
)
from dirhealth.infrastructure.powershell import PowerShellRunner
from dirhealth.shared import get_logger

from .config import AppSettings

logger = get_logger(__name__)


class AppContainer(containers.DeclarativeContainer):
    """Composition Root using dependency-injector."""

    wiring_config = containers.WiringConfiguration(packages=["..presentation"])

    # Settings
    config = providers.Configuration()
    settings = providers.Dependency(instance_of=AppSettings)

    # Infrastructure
    powershell_runner = providers.Singleton(
        PowerShellRunner,
        executable=config.powershell.executable,
    )

    network_gateway = providers.Singleton(SocketNetworkGateway)

    remote_management_gateway = providers.Singleton(
        PowerShellRemoteManagementGateway,
        runner=powershell_runner,
    )

    directory_gateway = providers.Singleton(
        ActiveDirectoryGateway,
        runner=powershell_runner,
    )

    # Category evaluators
    health_checks = providers.Singleton(
        build_checks,
        network_gateway=network_gateway,
        remote_gateway=remote_management_gateway,
        directory_gateway=directory_gateway,
    )

    assessment_defaults = providers.Singleton(
        AppSettings.assessment_defaults,
        settings,
    )

    system_info = providers.Singleton(
        SystemInfo,
        title=config.api.title,
        description=config.api.description,
        version=config.api.version,
        environment=providers.Callable(
            lambda env: env.value if hasattr(env, "value") else str(env),
            config.environment,
        ),
    )

    # Application (use cases)
    health_assessment_use_case = providers.Factory(
        HealthAssessmentUseCase,
        checks=health_checks,
        topology_gateway=directory_gateway,
        directory_gateway=directory_gateway,
        defaults=assessment_defaults,
    )

    list_categories_use_case = providers.Factory(
        ListCategoriesUseCase,
        checks=health_checks,
        threshold_overrides=assessment_defaults.provided.threshold_overrides,
    )

    get_application_info_use_case = providers.Factory(
        GetApplicationInfoUseCase,
        checks=health_checks,
        system_info=system_info,
    )


# -------------------------
# Global Container Instance
# -------------------------
_app_container: AppContainer | None = None


def init_container(settings: AppSettings) -> AppContainer:
    """Initialize global container with application settings."""

    global _app_container

    container = AppContainer()
    container.config.from_pydantic(settings)
    container.settings.override(settings)
    _app_container = container
    logger.debug("container.initialized", environment=settings.environment.value)
    return container


def get_container() -> AppContainer:
    """Get the initialized global container."""

    if _app_container is None:
        raise RuntimeError("Container has not been initialized yet")

    return _app_container


@asynccontextmanager
async def app_lifespan():
    """
    Centralized lifecycle management for the assessment engine.

    Evaluators and configured defaults are built eagerly, so a missing
    password file is reported at startup.
    """
    container = get_container()

    checks = container.health_checks()
    defaults = container.assessment_defaults()
    logger.info(
        "container.resources.initialized",
        categories=[category.value for category in checks],
        configured_targets=len(defaults.targets),
        credentials=defaults.credentials is not None,
    )
    try:
        yield container
    finally:
        logger.info("container.resources.released")
