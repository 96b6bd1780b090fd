"""Time synchronization check: service state, offset and PDC time source."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Optional

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import FsmoRole, TimeStatus
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.directory_gateway import IDirectoryGateway
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)

LOCAL_CLOCK_SOURCES = (
    "Local CMOS Clock",
    "Free-running System Clock",
    "VM IC Time Synchronization Provider",
)


def _same_host(left: str, right: str) -> bool:
    left, right = left.lower().rstrip("."), right.lower().rstrip(".")
    return left == right or left.split(".", 1)[0] == right.split(".", 1)[0]


class TimeSyncCheck(ServerHealthCheck):
    """Clock offset on every server; external source on the PDC emulator."""

    category = CheckCategory.TIME_SYNC
    check_name = "TimeSynchronization"
    display_name = "time synchronization"
    healthy_message = "Time service is running and the clock is synchronized"
    closing_recommendations = (
        "Time synchronization is healthy. Continue regular monitoring with "
        "w32tm /monitor.",
    )
    default_parameters = MappingProxyType(
        {"local_clock_sources": LOCAL_CLOCK_SOURCES}
    )

    def __init__(
        self,
        remote_gateway: IRemoteManagementGateway,
        directory_gateway: IDirectoryGateway,
    ) -> None:
        self._remote = remote_gateway
        self._directory = directory_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        outcome = await self.probe(
            context,
            probes,
            "time status",
            self._remote.get_time_status(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        status: TimeStatus = outcome.value
        data: Dict[str, Any] = {
            "service_running": status.service_running,
            "source": status.source,
            "offset_seconds": status.offset_seconds,
            "last_sync": status.last_sync.isoformat() if status.last_sync else None,
        }
        signals: List[Signal] = [
            Probe(
                name="service_running",
                passed=status.service_running,
                failure_message="Windows Time service is not running",
                recommendation="Start the time service: Start-Service W32Time",
            )
        ]

        if status.offset_seconds is not None:
            signals.append(
                Measurement(
                    name="offset_seconds",
                    value=round(abs(status.offset_seconds), 3),
                    thresholds=self.threshold(context, "offset_seconds"),
                    label="Clock offset",
                    unit=" seconds",
                    recommendation=(
                        "Clock drift is elevated; resynchronize with "
                        "w32tm /resync /rediscover."
                    ),
                    critical_recommendation=(
                        "Clock offset approaches the Kerberos skew tolerance; "
                        "resynchronize immediately with w32tm /resync /force."
                    ),
                )
            )

        source_signal = await self._source_signal(context, probes, status, data)
        if source_signal is not None:
            signals.append(source_signal)

        return Gathered(signals=signals, data=data)

    async def _source_signal(
        self,
        context: CheckContext,
        probes: ProbeLog,
        status: TimeStatus,
        data: Dict[str, Any],
    ) -> Optional[Probe]:
        holders = await self.probe(
            context,
            probes,
            "PDC emulator",
            self._directory.get_role_holders(
                credentials=context.credentials, timeout=context.probe_timeout
            ),
        )
        if not holders.ok:
            return None

        pdc = (holders.value or {}).get(FsmoRole.PDC_EMULATOR)
        is_pdc = bool(pdc) and _same_host(pdc, context.target)
        data["is_pdc_emulator"] = is_pdc
        if not is_pdc:
            return None

        local_sources = [
            source.lower()
            for source in context.parameter("local_clock_sources", LOCAL_CLOCK_SOURCES)
        ]
        source = (status.source or "").strip()
        return Probe(
            name="pdc_time_source",
            passed=bool(source) and source.lower() not in local_sources,
            failure_status=HealthStatus.WARNING,
            failure_message=(
                f"PDC emulator uses {source or 'no configured source'} "
                "instead of an external time source"
            ),
            recommendation=(
                "Configure an external NTP source on the PDC emulator: "
                'w32tm /config /manualpeerlist:"pool.ntp.org" '
                "/syncfromflags:manual /reliable:yes /update"
            ),
        )
