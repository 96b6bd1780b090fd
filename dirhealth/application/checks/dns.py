"""DNS check: forward resolution, DNS server service and locator records."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import DnsLookup
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.network_gateway import INetworkGateway
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)

DNS_SERVICE = "DNS"


def _host_matches(record: str, target: str) -> bool:
    """Compare an SRV target with a server name, FQDN or short name."""
    record = record.lower().rstrip(".")
    target = target.lower().rstrip(".")
    if record == target:
        return True
    return record.split(".", 1)[0] == target.split(".", 1)[0]


class DnsCheck(ServerHealthCheck):
    """DNS health as seen by clients locating this directory server."""

    category = CheckCategory.DNS
    check_name = "DnsHealth"
    display_name = "DNS"
    healthy_message = "DNS resolution and locator records are healthy"
    closing_recommendations = (
        "DNS is healthy. Continue regular monitoring with dcdiag /test:dns.",
    )

    def __init__(
        self,
        network_gateway: INetworkGateway,
        remote_gateway: IRemoteManagementGateway,
    ) -> None:
        self._network = network_gateway
        self._remote = remote_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        target = context.target
        signals: List[Signal] = []
        data: Dict[str, Any] = {}

        resolved = await self.probe(
            context,
            probes,
            "forward resolution",
            self._network.resolve(target, context.probe_timeout),
        )
        if resolved.ok:
            addresses = resolved.value or []
            data["ip_addresses"] = addresses
            signals.append(
                Probe(
                    name="forward_resolution",
                    passed=bool(addresses),
                    failure_message=f"Forward lookup of {target} returned no address",
                    recommendation=(
                        f"Register the host record of {target}: "
                        "ipconfig /registerdns and restart Netlogon."
                    ),
                    detail=addresses or None,
                )
            )

        services = await self.probe(
            context,
            probes,
            "DNS service",
            self._remote.get_services(
                target,
                (DNS_SERVICE,),
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if services.ok:
            state = next(
                (
                    service
                    for service in services.value or []
                    if service.name.lower() == DNS_SERVICE.lower()
                ),
                None,
            )
            data["dns_service"] = state.status if state else "NotFound"
            signals.append(
                Probe(
                    name="dns_service",
                    passed=bool(state and state.is_running),
                    failure_message=(
                        f"DNS Server service is {data['dns_service']} on {target}"
                    ),
                    recommendation="Start the DNS Server service: Start-Service DNS",
                )
            )

        lookup = await self.probe(
            context,
            probes,
            "query time",
            self._remote.resolve_dns_record(
                target,
                target,
                "A",
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if lookup.ok and lookup.value.query_time_ms is not None:
            data["query_time_ms"] = lookup.value.query_time_ms
            signals.append(
                Measurement(
                    name="query_time_ms",
                    value=lookup.value.query_time_ms,
                    thresholds=self.threshold(context, "query_time_ms"),
                    label="DNS query time",
                    unit=" ms",
                    recommendation=(
                        "DNS responses are slow; review forwarders, zone "
                        "scavenging and server load."
                    ),
                )
            )

        signal = await self._locator_signal(context, probes, data)
        if signal is not None:
            signals.append(signal)

        return Gathered(signals=signals, data=data)

    async def _locator_signal(
        self, context: CheckContext, probes: ProbeLog, data: Dict[str, Any]
    ) -> Optional[Probe]:
        domain = context.parameter("domain", context.domain)
        if not domain:
            return None

        record = f"_ldap._tcp.dc._msdcs.{domain}"
        outcome = await self.probe(
            context,
            probes,
            "locator records",
            self._remote.resolve_dns_record(
                context.target,
                record,
                "SRV",
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if not outcome.ok:
            return None

        lookup: DnsLookup = outcome.value
        registered = any(
            _host_matches(entry, context.target) for entry in lookup.records
        )
        data["srv_records"] = list(lookup.records)
        return Probe(
            name="locator_registration",
            passed=registered,
            failure_status=HealthStatus.WARNING,
            failure_message=f"{context.target} is not registered in {record}",
            recommendation=(
                "Re-register locator records: restart Netlogon or run "
                "nltest /dsregdns."
            ),
        )
