from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import pytest

from dirhealth.application.models import AssessmentDefaults
from dirhealth.application.use_cases import HealthAssessmentUseCase
from dirhealth.domain.entities.assessment import AssessmentRequest, CheckContext
from dirhealth.domain.entities.directory import Credentials
from dirhealth.domain.entities.errors import (
    DiscoveryError,
    ProbeExecutionError,
    ThresholdConfigurationError,
)
from dirhealth.domain.entities.health import (
    INFRASTRUCTURE_SCOPE,
    CheckCategory,
    HealthCheckResult,
    HealthStatus,
)
from tests.conftest import DC01, DC02, DOMAIN, StubDirectoryGateway

DC03 = "dc03.corp.example.com"


class _StubCheck:
    def __init__(
        self,
        category: CheckCategory,
        status: HealthStatus = HealthStatus.HEALTHY,
        raise_for: Sequence[str] = (),
        delay: float = 0.0,
        results_per_run: int = 1,
        default_parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.category = category
        self.check_name = f"{category.value}-check"
        self.status = status
        self.raise_for = set(raise_for)
        self.delay = delay
        self.results_per_run = results_per_run
        self.default_parameters = default_parameters or {}
        self.contexts: List[CheckContext] = []

    async def run(self, context: CheckContext) -> List[HealthCheckResult]:
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if context.target in self.raise_for:
            raise RuntimeError("remote registry unavailable")
        return [
            HealthCheckResult(
                category=self.category,
                check_name=self.check_name,
                target=context.target,
                status=self.status,
                message=f"{self.category.value} {self.status.value}",
            )
            for _ in range(self.results_per_run)
        ]


def _use_case(checks, directory=None, **defaults) -> HealthAssessmentUseCase:
    directory = directory or StubDirectoryGateway()
    return HealthAssessmentUseCase(
        checks={check.category: check for check in checks},
        topology_gateway=directory,
        directory_gateway=directory,
        defaults=AssessmentDefaults(**defaults),
    )


@pytest.mark.asyncio
async def test_failing_target_does_not_affect_the_others() -> None:
    services = _StubCheck(CheckCategory.SERVICES)
    replication = _StubCheck(
        CheckCategory.REPLICATION, HealthStatus.WARNING, raise_for=[DC02]
    )
    use_case = _use_case([services, replication])

    run = await use_case.execute(
        AssessmentRequest(targets=[DC01, DC02, DC03], include_healthy=True)
    )

    assert len(run.results) == 6
    assert [(r.target, r.category) for r in run.results] == [
        (DC01, CheckCategory.SERVICES),
        (DC01, CheckCategory.REPLICATION),
        (DC02, CheckCategory.SERVICES),
        (DC02, CheckCategory.REPLICATION),
        (DC03, CheckCategory.SERVICES),
        (DC03, CheckCategory.REPLICATION),
    ]
    failed = run.results[3]
    assert failed.status is HealthStatus.UNKNOWN
    assert failed.message == f"The replication check could not complete on {DC02}"
    assert failed.error == "RuntimeError: remote registry unavailable"
    assert run.failures[0].target == DC02
    assert run.failures[0].category is CheckCategory.REPLICATION
    assert run.summary.warning == 2
    assert run.summary.unknown == 1
    assert run.summary.overall_status is HealthStatus.WARNING


@pytest.mark.asyncio
async def test_summary_is_invariant_under_include_healthy() -> None:
    checks = [
        _StubCheck(CheckCategory.SERVICES),
        _StubCheck(CheckCategory.DNS, HealthStatus.CRITICAL),
    ]
    use_case = _use_case(checks)

    with_healthy = await use_case.execute(
        AssessmentRequest(targets=[DC01, DC02], include_healthy=True)
    )
    without_healthy = await use_case.execute(
        AssessmentRequest(targets=[DC01, DC02], include_healthy=False)
    )

    assert with_healthy.summary == without_healthy.summary
    assert with_healthy.summary.total == 4
    assert with_healthy.summary.target_count == 2
    assert len(with_healthy.results) == 4
    assert [r.status for r in without_healthy.results] == [
        HealthStatus.CRITICAL,
        HealthStatus.CRITICAL,
    ]


@pytest.mark.asyncio
async def test_infrastructure_categories_run_once_after_servers() -> None:
    services = _StubCheck(CheckCategory.SERVICES)
    roles = _StubCheck(CheckCategory.FSMO_ROLES, results_per_run=5)
    use_case = _use_case([services, roles])

    run = await use_case.execute(
        AssessmentRequest(targets=[DC01, DC02], include_healthy=True)
    )

    assert [c.target for c in roles.contexts] == [INFRASTRUCTURE_SCOPE]
    assert [r.target for r in run.results] == [DC01, DC02] + [INFRASTRUCTURE_SCOPE] * 5
    assert run.categories == [CheckCategory.SERVICES, CheckCategory.FSMO_ROLES]


@pytest.mark.asyncio
async def test_targets_are_discovered_when_not_given() -> None:
    directory = StubDirectoryGateway(servers=[DC01, "DC01.corp.example.com", DC02])
    use_case = _use_case([_StubCheck(CheckCategory.SERVICES)], directory=directory)

    run = await use_case.execute(AssessmentRequest(include_healthy=True))

    assert run.targets == [DC01, DC02]
    assert ("servers", ()) in directory.calls


@pytest.mark.asyncio
async def test_configured_targets_skip_discovery() -> None:
    directory = StubDirectoryGateway()
    use_case = _use_case(
        [_StubCheck(CheckCategory.SERVICES)], directory=directory, targets=(DC03,)
    )

    run = await use_case.execute(AssessmentRequest())

    assert run.targets == [DC03]
    assert directory.calls == []


@pytest.mark.asyncio
async def test_discovery_failure_is_fatal() -> None:
    directory = StubDirectoryGateway(servers=ProbeExecutionError("no domain"))
    use_case = _use_case([_StubCheck(CheckCategory.SERVICES)], directory=directory)

    with pytest.raises(DiscoveryError) as exc_info:
        await use_case.execute(AssessmentRequest())

    assert exc_info.value.message == "Server discovery failed: no domain"


@pytest.mark.asyncio
async def test_empty_discovery_is_fatal() -> None:
    directory = StubDirectoryGateway(servers=[])
    use_case = _use_case([_StubCheck(CheckCategory.SERVICES)], directory=directory)

    with pytest.raises(DiscoveryError):
        await use_case.execute(AssessmentRequest())


@pytest.mark.asyncio
async def test_invalid_categories_and_thresholds_are_rejected_before_running() -> None:
    check = _StubCheck(CheckCategory.SERVICES)
    use_case = _use_case([check])

    with pytest.raises(ThresholdConfigurationError) as exc_info:
        await use_case.execute(
            AssessmentRequest(targets=[DC01], categories=["services", "bogus", "dns"])
        )
    assert exc_info.value.errors == [
        "Unknown check category 'bogus'.",
        "No evaluator is registered for 'dns'.",
    ]

    with pytest.raises(ThresholdConfigurationError):
        await use_case.execute(
            AssessmentRequest(
                targets=[DC01],
                threshold_overrides={
                    CheckCategory.REPLICATION: {"latency_minutes": (60, 15)}
                },
            )
        )

    with pytest.raises(ThresholdConfigurationError):
        await use_case.execute(AssessmentRequest(targets=[DC01], categories=[]))

    assert check.contexts == []


@pytest.mark.asyncio
async def test_context_carries_thresholds_parameters_and_credentials() -> None:
    replication = _StubCheck(
        CheckCategory.REPLICATION, default_parameters={"a": 1, "b": 2}
    )
    credentials = Credentials(username="svc", password="pw")
    use_case = _use_case(
        [replication],
        credentials=credentials,
        probe_timeout=3.0,
        threshold_overrides={
            CheckCategory.REPLICATION: {"latency_minutes": (20, 80)}
        },
    )

    await use_case.execute(
        AssessmentRequest(
            targets=[DC01],
            include_extended=True,
            parameters={CheckCategory.REPLICATION: {"b": 3}},
            threshold_overrides={
                CheckCategory.REPLICATION: {"consecutive_failures": (1, 5)}
            },
        )
    )

    [context] = replication.contexts
    assert context.credentials is credentials
    assert context.probe_timeout == 3.0
    assert context.include_extended is True
    assert dict(context.parameters) == {"a": 1, "b": 3}
    assert context.thresholds["latency_minutes"].warning == 20
    assert context.thresholds["consecutive_failures"].critical == 5


@pytest.mark.asyncio
async def test_domain_is_looked_up_only_for_dns() -> None:
    directory = StubDirectoryGateway()
    dns = _StubCheck(CheckCategory.DNS)
    use_case = _use_case([dns, _StubCheck(CheckCategory.SERVICES)], directory=directory)

    await use_case.execute(AssessmentRequest(targets=[DC01], categories=["services"]))
    assert ("domain", ()) not in directory.calls

    await use_case.execute(AssessmentRequest(targets=[DC01], categories=["dns"]))
    assert dns.contexts[0].domain == DOMAIN


@pytest.mark.asyncio
async def test_domain_lookup_failure_is_not_fatal() -> None:
    directory = StubDirectoryGateway(domain=ProbeExecutionError("no forest"))
    dns = _StubCheck(CheckCategory.DNS)
    use_case = _use_case([dns], directory=directory)

    run = await use_case.execute(AssessmentRequest(targets=[DC01]))

    assert dns.contexts[0].domain is None
    assert run.summary.total == 1


@pytest.mark.asyncio
async def test_unexpected_domain_lookup_error_is_not_fatal() -> None:
    directory = StubDirectoryGateway(domain=OSError("LDAP socket reset"))
    dns = _StubCheck(CheckCategory.DNS)
    use_case = _use_case([dns], directory=directory)

    run = await use_case.execute(
        AssessmentRequest(
            targets=[DC01, DC02], categories=["dns"], include_healthy=True
        )
    )

    assert len(dns.contexts) == 2
    assert all(context.domain is None for context in dns.contexts)
    assert [result.target for result in run.results] == [DC01, DC02]
    assert run.failures == []


@pytest.mark.asyncio
async def test_check_timeout_yields_unknown_and_failure() -> None:
    slow = _StubCheck(CheckCategory.SERVICES, delay=5)
    use_case = _use_case([slow], check_timeout=0.05)

    run = await use_case.execute(AssessmentRequest(targets=[DC01]))

    [result] = run.results
    assert result.status is HealthStatus.UNKNOWN
    assert result.error == "check timed out after 0.05s"
    assert run.failures[0].error == "check timed out after 0.05s"


@pytest.mark.asyncio
async def test_concurrency_is_bounded() -> None:
    active = 0
    peak = 0

    class _Tracking(_StubCheck):
        async def run(self, context):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await super().run(context)

    targets = [f"dc{i:02d}.corp.example.com" for i in range(6)]
    use_case = _use_case([_Tracking(CheckCategory.SERVICES)])

    run = await use_case.execute(
        AssessmentRequest(targets=targets, max_concurrency=2, include_healthy=True)
    )

    assert peak == 2
    assert [r.target for r in run.results] == targets


@pytest.mark.asyncio
async def test_cancellation_returns_partial_results() -> None:
    cancel_event = asyncio.Event()
    fast = _StubCheck(CheckCategory.SERVICES)
    slow = _StubCheck(CheckCategory.REPLICATION, delay=5)
    use_case = _use_case([fast, slow])

    async def _cancel_soon() -> None:
        await asyncio.sleep(0.05)
        cancel_event.set()

    canceller = asyncio.create_task(_cancel_soon())
    run = await asyncio.wait_for(
        use_case.execute(
            AssessmentRequest(
                targets=[DC01, DC02], include_healthy=True, cancel_event=cancel_event
            )
        ),
        timeout=2,
    )
    await canceller

    assert run.cancelled is True
    assert [r.category for r in run.results] == [
        CheckCategory.SERVICES,
        CheckCategory.SERVICES,
    ]
    assert run.summary.total == 2


@pytest.mark.asyncio
async def test_cancel_before_start_produces_no_results() -> None:
    cancel_event = asyncio.Event()
    cancel_event.set()
    check = _StubCheck(CheckCategory.SERVICES)
    use_case = _use_case([check])

    run = await use_case.execute(
        AssessmentRequest(targets=[DC01], cancel_event=cancel_event)
    )

    assert run.cancelled is True
    assert run.results == []
    assert check.contexts == []
