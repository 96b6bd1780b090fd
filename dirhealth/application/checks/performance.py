"""Performance check: processor, memory and database volume free space."""

from __future__ import annotations

from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import PerformanceSnapshot
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)
from dirhealth.domain.services.severity_evaluator import assess


class PerformanceCheck(ServerHealthCheck):
    category = CheckCategory.PERFORMANCE
    check_name = "ResourceUtilization"
    display_name = "performance"
    healthy_message = "Resource utilization is within normal limits"
    closing_recommendations = (
        "Resource utilization is healthy. Continue regular monitoring.",
    )

    def __init__(self, remote_gateway: IRemoteManagementGateway) -> None:
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        outcome = await self.probe(
            context,
            probes,
            "performance counters",
            self._remote.get_performance(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        snapshot: PerformanceSnapshot = outcome.value
        signals: List[Measurement] = []
        if snapshot.cpu_percent is not None:
            signals.append(
                Measurement(
                    name="cpu_percent",
                    value=round(snapshot.cpu_percent, 1),
                    thresholds=self.threshold(context, "cpu_percent"),
                    label="CPU usage",
                    unit="%",
                    recommendation=(
                        "Processor usage is high; identify the busiest processes "
                        "and review expensive LDAP queries with field engineering "
                        "logging."
                    ),
                )
            )
        if snapshot.memory_percent is not None:
            signals.append(
                Measurement(
                    name="memory_percent",
                    value=round(snapshot.memory_percent, 1),
                    thresholds=self.threshold(context, "memory_percent"),
                    label="Memory usage",
                    unit="%",
                    recommendation=(
                        "Memory pressure is high; verify the server has enough "
                        "RAM to cache the directory database."
                    ),
                )
            )
        if snapshot.disk_free_percent is not None:
            volume = snapshot.database_volume or "database volume"
            signals.append(
                Measurement(
                    name="disk_free_percent",
                    value=round(snapshot.disk_free_percent, 1),
                    thresholds=self.threshold(context, "disk_free_percent"),
                    label=f"Free space on {volume}",
                    unit="%",
                    recommendation=(
                        f"Free space on {volume} is low; clean up or extend the "
                        "volume hosting the directory database."
                    ),
                )
            )

        data: Dict[str, Any] = {
            "cpu_percent": snapshot.cpu_percent,
            "memory_percent": snapshot.memory_percent,
            "disk_free_percent": snapshot.disk_free_percent,
            "database_volume": snapshot.database_volume,
            "performance_issues": [
                assessment.as_dict()
                for assessment in map(assess, signals)
                if assessment.status is not HealthStatus.HEALTHY
            ],
        }
        if context.include_extended:
            data["counters"] = dict(snapshot.counters)
        return Gathered(signals=list(signals), data=data)
