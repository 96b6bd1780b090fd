"""Use cases for service metadata."""

from datetime import datetime, timezone
from typing import Mapping, Optional

from dirhealth.application.dtos.system_dto import ApplicationInfoDTO
from dirhealth.application.models import SystemInfo
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.ports.health_check import IHealthCheck


class GetApplicationInfoUseCase:
    """Use case responsible for returning application info."""

    def __init__(
        self,
        checks: Mapping[CheckCategory, IHealthCheck],
        system_info: SystemInfo,
    ) -> None:
        self._checks = checks
        self._info = system_info

    async def execute(self, started_at: Optional[datetime]) -> ApplicationInfoDTO:
        now = datetime.now(timezone.utc)
        started = started_at or now
        uptime_seconds = max(0.0, (now - started).total_seconds())

        return ApplicationInfoDTO(
            name=self._info.title,
            description=self._info.description,
            version=self._info.version,
            environment=self._info.environment,
            started_at=started,
            uptime_seconds=uptime_seconds,
            categories=CheckCategory.ordered(self._checks),
        )
