"""Event log check: critical and error events over a recent window."""

from __future__ import annotations

from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import EventRecord
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.signals import Measurement
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)

DEFAULT_LOGS = ("Directory Service", "DNS Server", "DFS Replication", "System")
DEFAULT_WINDOW_HOURS = 24
DEFAULT_MAX_EVENTS = 500
TOP_EVENTS = 5
TOP_EVENTS_EXTENDED = 20


class EventLogCheck(ServerHealthCheck):
    """Counts critical and error entries and ranks the most frequent ones."""

    category = CheckCategory.EVENT_LOGS
    check_name = "EventLogErrors"
    display_name = "event logs"
    healthy_message = "No significant errors in the directory event logs"
    closing_recommendations = (
        "Event logs are clean. Continue regular review.",
    )
    default_parameters = MappingProxyType(
        {
            "logs": DEFAULT_LOGS,
            "window_hours": DEFAULT_WINDOW_HOURS,
            "max_events": DEFAULT_MAX_EVENTS,
        }
    )

    def __init__(self, remote_gateway: IRemoteManagementGateway) -> None:
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        logs = tuple(context.parameter("logs", DEFAULT_LOGS))
        window = int(context.parameter("window_hours", DEFAULT_WINDOW_HOURS))
        max_events = int(context.parameter("max_events", DEFAULT_MAX_EVENTS))

        outcome = await self.probe(
            context,
            probes,
            "event logs",
            self._remote.get_events(
                context.target,
                logs,
                window_hours=window,
                max_events=max_events,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return Gathered()

        events: List[EventRecord] = list(outcome.value or [])[:max_events]
        levels = Counter(event.level.lower() for event in events)
        critical_count = levels.get("critical", 0)
        error_count = levels.get("error", 0)

        top = TOP_EVENTS_EXTENDED if context.include_extended else TOP_EVENTS
        ranked = Counter(
            (event.log_name, event.event_id, event.source)
            for event in events
            if event.level.lower() in ("critical", "error")
        ).most_common(top)

        data: Dict[str, Any] = {
            "logs": list(logs),
            "window_hours": window,
            "events_examined": len(events),
            "critical_events": critical_count,
            "error_events": error_count,
            "warning_events": levels.get("warning", 0),
            "top_events": [
                {"log": log, "event_id": event_id, "source": source, "count": count}
                for (log, event_id, source), count in ranked
            ],
        }

        signals = [
            Measurement(
                name="critical_events",
                value=critical_count,
                thresholds=self.threshold(context, "critical_events"),
                label="Critical events",
                message_template=(
                    f"{{value}} critical events in the last {window} hours"
                ),
                recommendation=(
                    "Review the critical events listed in top_events and "
                    "resolve their root cause."
                ),
            ),
            Measurement(
                name="error_events",
                value=error_count,
                thresholds=self.threshold(context, "error_events"),
                label="Error events",
                message_template=f"{{value}} error events in the last {window} hours",
                recommendation=(
                    "Review the recurring error events listed in top_events."
                ),
            ),
        ]
        return Gathered(signals=list(signals), data=data)
