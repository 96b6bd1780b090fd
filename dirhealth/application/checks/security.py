"""Security check: lockouts, failed logons, NTLM share and trust health."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List

from dirhealth.application.checks.base import Gathered, ProbeLog, ServerHealthCheck
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import SecuritySummary, TrustRelationship
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from dirhealth.domain.entities.signals import Measurement, Probe, Signal
from dirhealth.domain.gateways.directory_gateway import IDirectoryGateway
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)

DEFAULT_WINDOW_HOURS = 24


class SecurityCheck(ServerHealthCheck):
    """Authentication activity over a window plus trust verification."""

    category = CheckCategory.SECURITY
    check_name = "SecurityPosture"
    display_name = "security"
    healthy_message = "No abnormal authentication activity detected"
    closing_recommendations = (
        "Security indicators are healthy. Continue regular auditing.",
    )
    default_parameters = MappingProxyType({"window_hours": DEFAULT_WINDOW_HOURS})

    def __init__(
        self,
        remote_gateway: IRemoteManagementGateway,
        directory_gateway: IDirectoryGateway,
    ) -> None:
        self._remote = remote_gateway
        self._directory = directory_gateway

    async def gather(self, context: CheckContext, probes: ProbeLog) -> Gathered:
        window = int(context.parameter("window_hours", DEFAULT_WINDOW_HOURS))
        signals: List[Signal] = []
        data: Dict[str, Any] = {"window_hours": window}

        summary_outcome = await self.probe(
            context,
            probes,
            "security events",
            self._remote.get_security_summary(
                context.target,
                window_hours=window,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if summary_outcome.ok:
            signals.extend(self._summary_signals(context, summary_outcome.value, data))

        trusts_outcome = await self.probe(
            context,
            probes,
            "trusts",
            self._directory.get_trusts(
                context.target,
                credentials=context.credentials,
                timeout=context.probe_timeout,
            ),
        )
        if trusts_outcome.ok:
            trusts: List[TrustRelationship] = trusts_outcome.value or []
            data["trusts"] = [
                {
                    "name": trust.name,
                    "direction": trust.direction,
                    "trust_type": trust.trust_type,
                    "verified": trust.verified,
                    "error": trust.error,
                }
                for trust in trusts
            ]
            for trust in trusts:
                if trust.verified is None:
                    continue
                signals.append(
                    Probe(
                        name=f"trust.{trust.name}",
                        passed=trust.verified,
                        failure_status=HealthStatus.WARNING,
                        failure_message=(
                            f"Trust with {trust.name} failed verification"
                            + (f": {trust.error}" if trust.error else "")
                        ),
                        recommendation=(
                            f"Verify and reset the trust with {trust.name}: "
                            f"netdom trust /verify /domain:{trust.name}"
                        ),
                    )
                )

        return Gathered(signals=signals, data=data)

    def _summary_signals(
        self, context: CheckContext, summary: SecuritySummary, data: Dict[str, Any]
    ) -> List[Signal]:
        window = summary.window_hours
        data.update(
            {
                "account_lockouts": summary.account_lockouts,
                "failed_authentications": summary.failed_authentications,
                "ntlm_authentications": summary.ntlm_authentications,
                "kerberos_authentications": summary.kerberos_authentications,
                "ntlm_percent": summary.ntlm_percent,
            }
        )
        if context.include_extended:
            data["locked_accounts"] = list(summary.locked_accounts)

        signals: List[Signal] = [
            Measurement(
                name="account_lockouts",
                value=summary.account_lockouts,
                thresholds=self.threshold(context, "account_lockouts"),
                label="Account lockouts",
                message_template=(
                    f"{{value}} account lockouts in the last {window} hours"
                ),
                recommendation=(
                    "Investigate the lockout sources (event 4740) for password "
                    "spraying or stale credentials."
                ),
            ),
            Measurement(
                name="failed_authentications",
                value=summary.failed_authentications,
                thresholds=self.threshold(context, "failed_authentications"),
                label="Failed authentications",
                message_template=(
                    f"{{value}} failed authentications in the last {window} hours"
                ),
                recommendation=(
                    "Review failed logon events (4625, 4771) for brute force "
                    "attempts."
                ),
            ),
        ]
        if summary.ntlm_percent is not None:
            signals.append(
                Measurement(
                    name="ntlm_percent",
                    value=summary.ntlm_percent,
                    thresholds=self.threshold(context, "ntlm_percent"),
                    label="NTLM share of authentications",
                    unit="%",
                    recommendation=(
                        "NTLM usage is high; audit NTLM with the Restrict NTLM "
                        "policies and move applications to Kerberos."
                    ),
                )
            )
        return signals
