"""Certificate check: expiry and trust of the LDAPS certificate."""

from __future__ import annotations

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import CertificateInfo
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.network_gateway import INetworkGateway

LDAPS_PORT = 636


class CertificateCheck(ServerHealthCheck):
    """Inspect the certificate a server presents on its TLS directory port.

    An unreachable port or a failed handshake leaves the result ``unknown``;
    a port that completes the handshake without a certificate is a warning.
    """

    category = CheckCategory.CERTIFICATES
    check_name = "LdapsCertificate"
    display_name = "certificates"
    healthy_message = "Certificate is valid and not close to expiration"
    closing_recommendations = (
        "Certificate is healthy. Track its renewal date.",
    )
    default_parameters = MappingProxyType({"port": LDAPS_PORT})

    def __init__(self, network_gateway: INetworkGateway) -> None:
        self._network = network_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        port = int(context.parameter("port", LDAPS_PORT))
        outcome = await self.probe(
            context,
            probes,
            f"certificate on port {port}",
            self._network.get_certificate(context.target, port, context.probe_timeout),
        )
        if not outcome.ok:
            return Gathered(data={"port": port})

        certificate: Optional[CertificateInfo] = outcome.value
        if certificate is None:
            return Gathered(
                signals=[
                    Probe(
                        name="certificate_present",
                        passed=False,
                        failure_status=HealthStatus.WARNING,
                        failure_message=f"No certificate presented on port {port}",
                        recommendation=(
                            "Enroll a server authentication certificate so "
                            "LDAPS is available."
                        ),
                    )
                ],
                data={"port": port, "certificate": None},
            )

        now = datetime.now(timezone.utc)
        days = certificate.days_until_expiration(now)
        data: Dict[str, Any] = {
            "port": port,
            "subject": certificate.subject,
            "issuer": certificate.issuer,
            "not_before": certificate.not_before.isoformat(),
            "not_after": certificate.not_after.isoformat(),
            "thumbprint": certificate.thumbprint,
            "days_until_expiration": days,
            "self_signed": certificate.is_self_signed,
        }
        if context.include_extended:
            data["serial_number"] = certificate.serial_number

        expired = certificate.not_after <= now
        signals: List[Signal] = [self._expiry_signal(context, days, expired)]
        signals.append(
            Probe(
                name="issuer_trusted",
                passed=not certificate.is_self_signed,
                failure_status=HealthStatus.WARNING,
                failure_message=f"Certificate {certificate.subject} is self-signed",
                recommendation=(
                    "Replace the self-signed certificate with one issued by "
                    "the enterprise certification authority."
                ),
            )
        )
        return Gathered(signals=signals, data=data)

    def _expiry_signal(
        self, context: CheckContext, days: int, expired: bool
    ) -> Measurement:
        if expired:
            template = f"Certificate expired {abs(days)} days ago"
        else:
            template = "Certificate expires in {value}"
        return Measurement(
            name="days_until_expiration",
            value=days,
            thresholds=self.threshold(context, "days_until_expiration"),
            label="Days until expiration",
            unit=" days",
            message_template=template,
            recommendation="Plan renewal of the directory server certificate.",
            critical_recommendation=(
                "Renew the directory server certificate immediately; LDAPS "
                "clients will fail once it expires."
            ),
        )
