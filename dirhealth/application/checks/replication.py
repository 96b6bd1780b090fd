"""Replication check: inbound partner latency and consecutive failures."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import ReplicationFailure, ReplicationPartner
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.directory_gateway import IDirectoryGateway


class ReplicationCheck(ServerHealthCheck):
    category = CheckCategory.REPLICATION
    check_name = "ReplicationStatus"
    display_name = "replication"
    healthy_message = "Replication is current with all inbound partners"
    closing_recommendations = (
        "Replication is healthy. Continue regular monitoring with "
        "repadmin /replsummary.",
    )

    def __init__(self, directory_gateway: IDirectoryGateway) -> None:
        self._directory = directory_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        partners_outcome = await self.probe(
            context,
            probes,
            "replication partners",
            self._directory.get_replication_partners(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        failures_outcome = await self.probe(
            context,
            probes,
            "replication failures",
            self._directory.get_replication_failures(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )

        partners: Optional[List[ReplicationPartner]] = partners_outcome.value
        failures: Optional[List[ReplicationFailure]] = failures_outcome.value
        signals: List[Signal] = []
        data: Dict[str, Any] = {}

        if failures is not None:
            data["failure_count"] = len(failures)
            if context.include_extended:
                data["failures"] = [
                    {
                        "partner": failure.partner,
                        "failure_count": failure.failure_count,
                        "first_failure_time": (
                            failure.first_failure_time.isoformat()
                            if failure.first_failure_time
                            else None
                        ),
                        "last_error": failure.last_error,
                    }
                    for failure in failures
                ]

        if partners is None:
            if failures is not None:
                signals.append(
                    self._failures_signal(
                        context, sum(f.failure_count for f in failures)
                    )
                )
            return Gathered(signals=signals, data=data)

        data["partners"] = [partner.as_dict() for partner in partners]
        if not partners:
            signals.append(
                Probe(
                    name="partners_present",
                    passed=False,
                    failure_status=HealthStatus.WARNING,
                    failure_message="No inbound replication partners reported",
                    recommendation=(
                        "Verify the KCC generated connection objects: "
                        "repadmin /kcc and repadmin /showrepl."
                    ),
                )
            )
            return Gathered(signals=signals, data=data)

        now = datetime.now(timezone.utc)
        consecutive = sum(partner.consecutive_failures for partner in partners)
        data["consecutive_failures"] = consecutive
        signals.append(self._failures_signal(context, consecutive))

        latencies = [
            partner.minutes_since_success(now)
            for partner in partners
            if partner.last_success is not None
        ]
        never = [p.partner for p in partners if p.last_success is None]
        for name in never:
            signals.append(
                Probe(
                    name=f"{name}.ever_succeeded",
                    passed=False,
                    failure_message=f"Replication from {name} has never succeeded",
                    recommendation=(
                        f"Force replication from {name} with repadmin /syncall "
                        "and review Directory Service event log errors."
                    ),
                )
            )

        if latencies:
            latency = round(max(latencies), 1)
            data["latency_minutes"] = latency
            signals.append(
                Measurement(
                    name="latency_minutes",
                    value=latency,
                    thresholds=self.threshold(context, "latency_minutes"),
                    label="Replication latency",
                    unit=" minutes",
                    recommendation=(
                        "Replication latency is elevated; check site link "
                        "schedules and WAN connectivity between sites."
                    ),
                    critical_recommendation=(
                        "Replication has not completed within the critical "
                        "window; run repadmin /showrepl to find the stalled "
                        "partner and force replication with repadmin /syncall /AdeP."
                    ),
                )
            )

        return Gathered(signals=signals, data=data)

    def _failures_signal(self, context: CheckContext, count: int) -> Measurement:
        return Measurement(
            name="consecutive_failures",
            value=count,
            thresholds=self.threshold(context, "consecutive_failures"),
            label="Consecutive replication failures",
            message_template="{value} consecutive replication failures detected",
            recommendation=(
                "Investigate replication errors with repadmin /showrepl and "
                "dcdiag /test:replications."
            ),
        )
