"""Directory database check: file presence, whitespace, backups, log volume."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import DatabaseState
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)


class DatabaseCheck(ServerHealthCheck):
    category = CheckCategory.DATABASE
    check_name = "DirectoryDatabase"
    display_name = "directory database"
    healthy_message = "Directory database is present, compact and backed up"
    closing_recommendations = (
        "Directory database is healthy. Keep system state backups current.",
    )

    def __init__(self, remote_gateway: IRemoteManagementGateway) -> None:
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        outcome = await self.probe(
            context,
            probes,
            "database state",
            self._remote.get_database_state(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        state: DatabaseState = outcome.value
        data: Dict[str, Any] = {
            "database_path": state.database_path,
            "database_size_mb": state.database_size_mb,
            "whitespace_mb": state.whitespace_mb,
            "fragmentation_percent": state.fragmentation_percent,
            "log_path": state.log_path,
            "log_volume_free_percent": state.log_volume_free_percent,
        }
        signals: List[Signal] = [
            Probe(
                name="database_exists",
                passed=state.database_exists,
                failure_message=(
                    f"Directory database {state.database_path or 'ntds.dit'} "
                    "was not found"
                ),
                recommendation=(
                    "Verify the DSA Database file path under the NTDS "
                    "Parameters registry key and restore from backup if needed."
                ),
            )
        ]
        if not state.database_exists:
            return Gathered(signals=signals, data=data)

        if state.fragmentation_percent is not None:
            signals.append(
                Measurement(
                    name="fragmentation_percent",
                    value=state.fragmentation_percent,
                    thresholds=self.threshold(context, "fragmentation_percent"),
                    label="Database whitespace",
                    unit="%",
                    recommendation=(
                        "Schedule an offline defragmentation with ntdsutil "
                        '"files" "compact to" during a maintenance window.'
                    ),
                )
            )

        if state.last_backup is None:
            data["backup_age_days"] = None
            signals.append(
                Probe(
                    name="backup_recorded",
                    passed=False,
                    failure_message="No directory backup has been recorded",
                    recommendation=(
                        "Take a system state backup: wbadmin start systemstatebackup"
                    ),
                )
            )
        else:
            now = datetime.now(timezone.utc)
            age = round((now - state.last_backup).total_seconds() / 86400, 1)
            data["last_backup"] = state.last_backup.isoformat()
            data["backup_age_days"] = age
            signals.append(
                Measurement(
                    name="backup_age_days",
                    value=age,
                    thresholds=self.threshold(context, "backup_age_days"),
                    label="Last backup age",
                    unit=" days",
                    recommendation=(
                        "Backups are getting stale; verify the scheduled system "
                        "state backup job."
                    ),
                    critical_recommendation=(
                        "The last backup is older than the tombstone-safe "
                        "window; take a system state backup now."
                    ),
                )
            )

        if state.log_volume_free_percent is not None:
            signals.append(
                Measurement(
                    name="disk_free_percent",
                    value=round(state.log_volume_free_percent, 1),
                    thresholds=self.threshold(context, "disk_free_percent"),
                    label="Free space on the log volume",
                    unit="%",
                    recommendation=(
                        "Free space on the transaction log volume is low; "
                        "extend the volume or relocate the logs."
                    ),
                )
            )

        return Gathered(signals=signals, data=data)
