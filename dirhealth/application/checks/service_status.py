"""Service status check: directory-critical Windows services."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Sequence

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Probe
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)

DEFAULT_SERVICES = ("NTDS", "DNS", "Netlogon", "Kdc", "W32Time", "DFSR", "ADWS")


class ServiceStatusCheck(ServerHealthCheck):
    """Every required service must exist, run, and start automatically."""

    category = CheckCategory.SERVICES
    check_name = "CriticalServices"
    display_name = "service status"
    healthy_message = "All critical directory services are running"
    closing_recommendations = (
        "All critical services are running. Continue regular monitoring.",
    )
    default_parameters = MappingProxyType({"services": DEFAULT_SERVICES})

    def __init__(self, remote_gateway: IRemoteManagementGateway) -> None:
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        names: Sequence[str] = tuple(context.parameter("services", DEFAULT_SERVICES))
        outcome = await self.probe(
            context,
            probes,
            "service query",
            self._remote.get_services(
                context.target,
                names,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        found = {state.name.lower(): state for state in outcome.value or []}
        signals: List[Probe] = []
        services: List[Dict[str, Any]] = []
        stopped: List[str] = []

        for name in names:
            state = found.get(name.lower())
            if state is None:
                services.append({"name": name, "status": "NotFound"})
                stopped.append(name)
                signals.append(
                    Probe(
                        name=f"{name}.present",
                        passed=False,
                        failure_message=f"Service {name} is not installed",
                        recommendation=(
                            f"Service {name} is missing; verify the server role "
                            "installation."
                        ),
                    )
                )
                continue

            services.append(
                {
                    "name": state.name,
                    "display_name": state.display_name,
                    "status": state.status,
                    "start_type": state.start_type,
                }
            )
            if not state.is_running:
                stopped.append(state.name)
            signals.append(
                Probe(
                    name=f"{state.name}.running",
                    passed=state.is_running,
                    failure_message=f"Service {state.name} is {state.status}",
                    recommendation=(
                        f"Start service {state.name}: "
                        f"Start-Service -Name {state.name}"
                    ),
                )
            )
            signals.append(
                Probe(
                    name=f"{state.name}.start_type",
                    passed=state.is_automatic,
                    failure_status=HealthStatus.WARNING,
                    failure_message=(
                        f"Service {state.name} start type is {state.start_type}, "
                        "expected Automatic"
                    ),
                    recommendation=(
                        f"Set service {state.name} to start automatically: "
                        f"Set-Service -Name {state.name} -StartupType Automatic"
                    ),
                )
            )

        extra = []
        if stopped:
            extra.append(
                "Review the System event log for service control manager "
                "errors (event IDs 7000-7043)."
            )

        return Gathered(
            signals=signals,
            data={"services": services, "stopped_services": stopped},
            extra_recommendations=extra,
        )
