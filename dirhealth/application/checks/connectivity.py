"""Network reachability check: name resolution, ICMP and directory ports."""

from __future__ import annotations

import asyncio
from types import MappingProxyType
from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Probe, Signal
from dirhealth.domain.gateways.network_gateway import INetworkGateway

DEFAULT_PORTS = (
    {"name": "LDAP", "port": 389, "required": True},
    {"name": "Kerberos", "port": 88, "required": True},
    {"name": "GlobalCatalog", "port": 3268, "required": False},
    {"name": "WinRM", "port": 5985, "required": False},
)


class ConnectivityCheck(ServerHealthCheck):
    """Resolve the server, then probe ICMP and the configured TCP ports.

    Name resolution is load-bearing: when it fails no further probe is
    attempted and the result is critical.
    """

    category = CheckCategory.CONNECTIVITY
    check_name = "NetworkConnectivity"
    display_name = "network connectivity"
    healthy_message = "Server is resolvable and all directory ports are reachable"
    closing_recommendations = (
        "Network connectivity is healthy. Continue regular monitoring.",
    )
    default_parameters = MappingProxyType({"ports": DEFAULT_PORTS, "ping": True})

    def __init__(self, network_gateway: INetworkGateway) -> None:
        self._network = network_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        target = context.target
        resolved = await self.probe(
            context,
            probes,
            "name resolution",
            self._network.resolve(target, context.probe_timeout),
        )
        addresses = resolved.value or []
        if not addresses:
            return Gathered(
                signals=[
                    Probe(
                        name="dns_resolution",
                        passed=False,
                        failure_message=f"Cannot resolve {target} to an address",
                        recommendation=(
                            f"Verify the A record for {target} and the DNS "
                            "client configuration of the probing host."
                        ),
                    )
                ],
                data={"ip_addresses": [], "ports": [], "ping": None},
            )

        signals: List[Signal] = [
            Probe(
                name="dns_resolution",
                passed=True,
                failure_message=f"Cannot resolve {target} to an address",
                detail=addresses,
            )
        ]
        data: Dict[str, Any] = {"ip_addresses": addresses}

        if context.parameter("ping", True):
            ping = await self.probe(
                context,
                probes,
                "icmp",
                self._network.ping(target, context.probe_timeout),
            )
            data["ping"] = ping.value
            if ping.ok:
                signals.append(
                    Probe(
                        name="icmp",
                        passed=bool(ping.value),
                        failure_status=HealthStatus.WARNING,
                        failure_message=f"{target} does not answer ICMP echo requests",
                        recommendation=(
                            "Check host firewall rules for ICMP echo; the server "
                            "may still be reachable on TCP."
                        ),
                    )
                )
        else:
            data["ping"] = None

        ports = list(context.parameter("ports", DEFAULT_PORTS))
        outcomes = await asyncio.gather(
            *(
                self.probe(
                    context,
                    probes,
                    f"port {entry['port']}",
                    self._network.check_port(
                        target, int(entry["port"]), context.probe_timeout
                    ),
                )
                for entry in ports
            )
        )

        port_data: List[Dict[str, Any]] = []
        for entry, outcome in zip(ports, outcomes):
            name, port = entry["name"], int(entry["port"])
            port_data.append({"name": name, "port": port, "open": outcome.value})
            if not outcome.ok:
                continue
            signals.append(
                Probe(
                    name=f"port_{port}",
                    passed=bool(outcome.value),
                    failure_status=(
                        HealthStatus.CRITICAL
                        if entry.get("required", True)
                        else HealthStatus.WARNING
                    ),
                    failure_message=f"{name} port {port} is not reachable on {target}",
                    recommendation=(
                        f"Verify that the service listening on port {port} is "
                        "running and that firewalls allow the traffic."
                    ),
                )
            )
        data["ports"] = port_data

        return Gathered(signals=signals, data=data)
