"""SYSVOL check: replication engine, shares, backlog and lag."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import FileReplicationState
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)


class SysvolCheck(ServerHealthCheck):
    category = CheckCategory.SYSVOL
    check_name = "SysvolReplication"
    display_name = "SYSVOL replication"
    healthy_message = "SYSVOL is shared and replicating normally"
    closing_recommendations = (
        "SYSVOL replication is healthy. Continue regular monitoring.",
    )

    def __init__(self, remote_gateway: IRemoteManagementGateway) -> None:
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        outcome = await self.probe(
            context,
            probes,
            "SYSVOL state",
            self._remote.get_file_replication_state(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        state: FileReplicationState = outcome.value
        engine = state.engine
        data: Dict[str, Any] = {
            "engine": engine,
            "service_running": state.service_running,
            "sysvol_shared": state.sysvol_shared,
            "netlogon_shared": state.netlogon_shared,
            "backlog_count": state.backlog_count,
        }
        signals: List[Signal] = [
            Probe(
                name="service_running",
                passed=state.service_running,
                failure_message=f"{engine} service is not running",
                recommendation=f"Start the {engine} service: Start-Service {engine}",
            ),
            Probe(
                name="sysvol_shared",
                passed=state.sysvol_shared,
                failure_message="SYSVOL share is not published",
                recommendation=(
                    "Verify SysvolReady in the Netlogon parameters and review "
                    f"the {engine} event log for initial sync errors."
                ),
            ),
            Probe(
                name="netlogon_shared",
                passed=state.netlogon_shared,
                failure_message="NETLOGON share is not published",
                recommendation=(
                    "Restart the Netlogon service once SYSVOL is shared: "
                    "Restart-Service Netlogon"
                ),
            ),
        ]

        if state.backlog_count is not None:
            signals.append(
                Measurement(
                    name="backlog_count",
                    value=state.backlog_count,
                    thresholds=self.threshold(context, "backlog_count"),
                    label="SYSVOL replication backlog",
                    unit=" files",
                    recommendation=(
                        "SYSVOL backlog is growing; check dfsrdiag backlog "
                        "output and the replication partner health."
                    ),
                )
            )

        if state.last_replication is not None:
            now = datetime.now(timezone.utc)
            lag = round(
                max(0.0, (now - state.last_replication).total_seconds() / 60), 1
            )
            data["last_replication"] = state.last_replication.isoformat()
            data["replication_lag_minutes"] = lag
            signals.append(
                Measurement(
                    name="replication_lag_minutes",
                    value=lag,
                    thresholds=self.threshold(context, "replication_lag_minutes"),
                    label="SYSVOL replication lag",
                    unit=" minutes",
                    recommendation=(
                        "SYSVOL has not replicated recently; review the DFS "
                        "Replication event log on this server and its partners."
                    ),
                )
            )

        return Gathered(signals=signals, data=data)
