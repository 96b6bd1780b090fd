"""
Application Use Cases - Health Assessment

Runs every selected category evaluator against every target and aggregates
the results into a :class:`HealthRun`.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from dirhealth.application.models import AssessmentDefaults
from dirhealth.domain.entities.assessment import AssessmentRequest, CheckContext
from dirhealth.domain.entities.errors import (
    DiscoveryError,
    ProbeError,
    ThresholdConfigurationError,
)
from dirhealth.domain.entities.health import (
    INFRASTRUCTURE_SCOPE,
    CheckCategory,
    CheckFailure,
    HealthCheckResult,
    HealthRun,
    HealthStatus,
    HealthSummary,
)
from dirhealth.domain.entities.thresholds import (
    ThresholdPair,
    merge_thresholds,
    thresholds_for,
)
from dirhealth.domain.gateways.directory_gateway import (
    IDirectoryGateway,
    ITopologyGateway,
)
from dirhealth.domain.ports.health_check import IHealthCheck
from dirhealth.domain.services import validate_thresholds

logger = structlog.get_logger(__name__)

ThresholdTables = Mapping[CheckCategory, Mapping[str, ThresholdPair]]


class HealthAssessmentUseCase:
    """Use case orchestrating one assessment run."""

    def __init__(
        self,
        checks: Mapping[CheckCategory, IHealthCheck],
        topology_gateway: ITopologyGateway,
        directory_gateway: IDirectoryGateway,
        defaults: Optional[AssessmentDefaults] = None,
    ) -> None:
        """
        Initialize the health assessment use case.

        Args:
            checks: Evaluator for each supported category
            topology_gateway: Source of the server list when no targets are given
            directory_gateway: Used to look up the domain name when unset
            defaults: Timeouts, concurrency, credentials and base thresholds
        """
        self._checks = dict(checks)
        self._topology = topology_gateway
        self._directory = directory_gateway
        self._defaults = defaults or AssessmentDefaults()

    async def execute(self, request: AssessmentRequest) -> HealthRun:
        """
        Execute an assessment.

        Args:
            request: Targets, categories, overrides and options of the run

        Returns:
            HealthRun: Ordered results, summary and failure bookkeeping

        Raises:
            ThresholdConfigurationError: If categories or thresholds are invalid
            DiscoveryError: If no target was given and discovery failed
        """
        categories = self._resolve_categories(request.categories)
        thresholds = self._resolve_thresholds(request)

        started_at = datetime.now(timezone.utc)
        targets = await self._resolve_targets(request.targets)
        domain = await self._resolve_domain(categories)

        server_categories = [c for c in categories if not c.is_infrastructure_wide]
        infrastructure_categories = [c for c in categories if c.is_infrastructure_wide]
        concurrency = max(
            1, request.max_concurrency or self._defaults.max_concurrency
        )

        logger.info(
            "assessment.run.started",
            targets=len(targets),
            categories=[category.value for category in categories],
            max_concurrency=concurrency,
        )

        run = _RunState(
            request=request,
            thresholds=thresholds,
            domain=domain,
            cancel_event=request.cancel_event,
        )
        semaphore = asyncio.Semaphore(concurrency)

        async def _bucket(
            scope: str, scope_categories: Sequence[CheckCategory]
        ) -> None:
            async with semaphore:
                for category in scope_categories:
                    if run.is_cancelled():
                        return
                    results = await self._evaluate(run, scope, category)
                    run.buckets[scope].extend(results)

        scopes: List[tuple] = []
        if server_categories:
            scopes.extend((target, server_categories) for target in targets)
        if infrastructure_categories:
            scopes.append((INFRASTRUCTURE_SCOPE, infrastructure_categories))
        for scope, _ in scopes:
            run.buckets.setdefault(scope, [])

        tasks = [
            asyncio.create_task(_bucket(scope, scope_categories))
            for scope, scope_categories in scopes
        ]
        await _wait_or_cancel(tasks, request.cancel_event)

        all_results = [
            result for scope, _ in scopes for result in run.buckets[scope]
        ]
        summary = HealthSummary.from_results(all_results, target_count=len(targets))
        visible = [
            result
            for result in all_results
            if request.include_healthy or result.status is not HealthStatus.HEALTHY
        ]
        cancelled = run.is_cancelled()

        health_run = HealthRun(
            results=visible,
            summary=summary,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            targets=list(targets),
            categories=list(categories),
            failures=list(run.failures),
            cancelled=cancelled,
        )

        logger.info(
            "assessment.run.cancelled" if cancelled else "assessment.run.completed",
            overall_status=summary.overall_status.value,
            critical=summary.critical,
            warning=summary.warning,
            healthy=summary.healthy,
            unknown=summary.unknown,
            failures=len(run.failures),
            elapsed_seconds=round(health_run.elapsed_seconds, 3),
        )
        return health_run

    def _resolve_categories(
        self, requested: Optional[Iterable[Any]]
    ) -> List[CheckCategory]:
        if requested is None:
            requested = self._defaults.categories
        if requested is None:
            return [c for c in CheckCategory.ordered() if c in self._checks]

        errors: List[str] = []
        selected: List[CheckCategory] = []
        for value in requested:
            try:
                category = CheckCategory(value)
            except ValueError:
                errors.append(f"Unknown check category '{value}'.")
                continue
            if category not in self._checks:
                errors.append(f"No evaluator is registered for '{category.value}'.")
                continue
            selected.append(category)

        if errors:
            raise ThresholdConfigurationError(errors)
        if not selected:
            raise ThresholdConfigurationError(["At least one category is required."])
        return CheckCategory.ordered(selected)

    def _resolve_thresholds(
        self, request: AssessmentRequest
    ) -> Dict[CheckCategory, Dict[str, ThresholdPair]]:
        base = merge_thresholds(self._defaults.threshold_overrides)
        merged = merge_thresholds(request.threshold_overrides, base=base)
        validate_thresholds(merged)
        return merged

    async def _resolve_targets(self, requested: Optional[Sequence[str]]) -> List[str]:
        explicit = list(requested or self._defaults.targets or [])
        if explicit:
            return _unique(explicit)

        timeout = self._defaults.probe_timeout
        try:
            discovered = await asyncio.wait_for(
                self._topology.discover_servers(
                    credentials=self._defaults.credentials, timeout=timeout
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise DiscoveryError(
                f"Server discovery timed out after {timeout:g}s"
            ) from exc
        except ProbeError as exc:
            raise DiscoveryError(
                f"Server discovery failed: {exc.message}", exc.details
            ) from exc

        targets = _unique(discovered or [])
        if not targets:
            raise DiscoveryError("Server discovery returned no servers")

        logger.info("assessment.discovery.completed", servers=len(targets))
        return targets

    async def _resolve_domain(
        self, categories: Sequence[CheckCategory]
    ) -> Optional[str]:
        if self._defaults.domain or CheckCategory.DNS not in categories:
            return self._defaults.domain

        timeout = self._defaults.probe_timeout
        try:
            return await asyncio.wait_for(
                self._directory.get_domain_name(
                    credentials=self._defaults.credentials, timeout=timeout
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = f"domain lookup timed out after {timeout:g}s"
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
        logger.warning("assessment.domain.unavailable", error=error)
        return None

    async def _evaluate(
        self, run: "_RunState", target: str, category: CheckCategory
    ) -> List[HealthCheckResult]:
        check = self._checks[category]
        context = CheckContext(
            target=target,
            category=category,
            thresholds=thresholds_for(category, run.thresholds),
            probe_timeout=self._defaults.probe_timeout,
            credentials=self._defaults.credentials,
            include_extended=run.request.include_extended,
            parameters={
                **check.default_parameters,
                **run.request.parameters.get(category, {}),
            },
            domain=run.domain,
        )
        timeout = self._defaults.check_timeout

        try:
            return list(await asyncio.wait_for(check.run(context), timeout=timeout))
        except asyncio.TimeoutError:
            error = f"check timed out after {timeout:g}s"
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"

        logger.warning(
            "check.failed", target=target, category=category.value, error=error
        )
        run.failures.append(CheckFailure(target=target, category=category, error=error))
        return [
            HealthCheckResult(
                category=category,
                check_name=getattr(check, "check_name", category.value),
                target=target,
                status=HealthStatus.UNKNOWN,
                message=f"The {category.value} check could not complete on {target}",
                data={"error": error},
                recommendations=(
                    f"Re-run the {category.value} check on {target} and review "
                    "the assessment logs for the failure.",
                ),
            )
        ]


class _RunState:
    """Mutable bookkeeping of one run, touched only from the event loop."""

    def __init__(
        self,
        request: AssessmentRequest,
        thresholds: ThresholdTables,
        domain: Optional[str],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        self.request = request
        self.thresholds = thresholds
        self.domain = domain
        self.cancel_event = cancel_event
        self.buckets: Dict[str, List[HealthCheckResult]] = {}
        self.failures: List[CheckFailure] = []

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


async def _wait_or_cancel(
    tasks: List["asyncio.Task[None]"], cancel_event: Optional[asyncio.Event]
) -> None:
    """Wait for every task, cancelling the remainder once the event is set."""
    if not tasks:
        return
    if cancel_event is None:
        await asyncio.gather(*tasks)
        return

    watcher = asyncio.create_task(cancel_event.wait())
    pending = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(
                pending | {watcher}, return_when=asyncio.FIRST_COMPLETED
            )
            pending.discard(watcher)
            for task in done:
                if task is not watcher:
                    task.result()
            if watcher in done:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                logger.info("assessment.run.cancelling", in_flight=len(pending))
                return
    finally:
        watcher.cancel()


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for value in values:
        key = value.lower()
        if key not in seen:
            seen.add(key)
            ordered.append(value)
    return ordered
