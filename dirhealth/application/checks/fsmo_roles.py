"""Operations master role availability (infrastructure-wide)."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from dirhealth.application.checks.base import BaseHealthCheck, ProbeLog, ProbeOutcome
from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import FsmoRole
from dirhealth.domain.entities.health import (
    CheckCategory,
    HealthCheckResult,
    HealthStatus,
)
from dirhealth.domain.entities.signals import Probe, Signal
from dirhealth.domain.gateways.directory_gateway import IDirectoryGateway
from dirhealth.domain.gateways.network_gateway import INetworkGateway
from dirhealth.domain.services.severity_evaluator import evaluate_signals

LDAP_PORT = 389

Reachability = Dict[str, Tuple[ProbeOutcome[bool], ProbeLog]]


class FsmoRoleCheck(BaseHealthCheck):
    """One result per role: an unassigned role is always critical."""

    category = CheckCategory.FSMO_ROLES
    check_name = "RoleHolders"
    display_name = "operations master roles"
    closing_recommendations = (
        "Role holder is available. Document role placement for disaster "
        "recovery.",
    )

    def __init__(
        self,
        directory_gateway: IDirectoryGateway,
        network_gateway: INetworkGateway,
    ) -> None:
        self._directory = directory_gateway
        self._network = network_gateway

    async def run(self, context: CheckContext) -> List[HealthCheckResult]:
        probes = ProbeLog()
        holders_outcome = await self.probe(
            context,
            probes,
            "role holders",
            self._directory.get_role_holders(
                credentials=context.credentials, timeout=context.probe_timeout
            ),
        )
        if not holders_outcome.ok:
            return [self.unknown_result(context, probes, {})]

        holders: Dict[FsmoRole, Optional[str]] = holders_outcome.value or {}
        reachability = await self._probe_holders(context, holders)

        return [
            self._evaluate_role(context, role, holders.get(role), reachability)
            for role in FsmoRole
        ]

    async def _probe_holders(
        self, context: CheckContext, holders: Dict[FsmoRole, Optional[str]]
    ) -> Reachability:
        unique = sorted({holder for holder in holders.values() if holder})
        results: Reachability = {}

        async def _check(holder: str) -> None:
            log = ProbeLog()
            outcome = await self.probe(
                context,
                log,
                f"{holder} reachability",
                self._network.check_port(holder, LDAP_PORT, context.probe_timeout),
            )
            results[holder] = (outcome, log)

        await asyncio.gather(*(_check(holder) for holder in unique))
        return results

    def _evaluate_role(
        self,
        context: CheckContext,
        role: FsmoRole,
        holder: Optional[str],
        reachability: Reachability,
    ) -> HealthCheckResult:
        data = {"role": role.value, "scope": role.scope, "holder": holder}

        if not holder:
            return self.build_result(
                context,
                check_name=role.value,
                status=HealthStatus.CRITICAL,
                message=f"{role.value} role has no assigned holder",
                data={**data, "reachable": None, "signals": []},
                recommendations=(
                    f"Seize the {role.value} role onto a healthy server with "
                    "Move-ADDirectoryServerOperationMasterRole -Force.",
                ),
            )

        outcome, log = reachability[holder]
        signals: List[Signal] = [
            Probe(
                name="holder_assigned",
                passed=True,
                failure_message=f"{role.value} role has no assigned holder",
                detail=holder,
            )
        ]
        if outcome.ok:
            healthy_message = f"{role.value} role is held by {holder} and reachable"
            signals.append(
                Probe(
                    name="holder_reachable",
                    passed=bool(outcome.value),
                    failure_message=(
                        f"{role.value} holder {holder} is not reachable on "
                        f"port {LDAP_PORT}"
                    ),
                    recommendation=(
                        f"Restore connectivity to {holder}, or transfer the "
                        f"{role.value} role if the server is permanently lost."
                    ),
                )
            )
        else:
            healthy_message = (
                f"{role.value} role is held by {holder}; reachability could "
                "not be verified"
            )

        evaluation = evaluate_signals(
            signals,
            healthy_message=healthy_message,
            closing_recommendations=self.closing_recommendations,
        )
        result_data = {
            **data,
            "reachable": bool(outcome.value) if outcome.ok else None,
            "signals": evaluation.signals_data(),
        }
        error = log.as_error()
        if error:
            result_data["error"] = error

        return self.build_result(
            context,
            check_name=role.value,
            status=evaluation.status,
            message=evaluation.message,
            data=result_data,
            recommendations=evaluation.recommendations,
        )
