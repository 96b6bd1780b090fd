from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from dirhealth.domain.entities.health import (
    CheckCategory,
    HealthCheckResult,
    HealthRun,
    HealthStatus,
    HealthSummary,
    worst_status,
)


def _result(status: HealthStatus, category=CheckCategory.SERVICES, target="dc01"):
    return HealthCheckResult(
        category=category,
        check_name="Check",
        target=target,
        status=status,
        message="message",
    )


def test_severity_ranks_unknown_outside_the_scale() -> None:
    assert HealthStatus.HEALTHY.severity < HealthStatus.WARNING.severity
    assert HealthStatus.WARNING.severity < HealthStatus.CRITICAL.severity
    assert HealthStatus.UNKNOWN.severity is None


def test_worst_status_picks_most_severe() -> None:
    statuses = [HealthStatus.WARNING, HealthStatus.CRITICAL, HealthStatus.HEALTHY]
    assert worst_status(statuses) is HealthStatus.CRITICAL
    assert worst_status([]) is HealthStatus.HEALTHY


def test_worst_status_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        worst_status([HealthStatus.UNKNOWN])


def test_categories_ordered_canonically() -> None:
    ordered = CheckCategory.ordered(
        [CheckCategory.CERTIFICATES, CheckCategory.SERVICES, CheckCategory.SERVICES]
    )
    assert ordered == [CheckCategory.SERVICES, CheckCategory.CERTIFICATES]
    assert CheckCategory.ordered()[0] is CheckCategory.SERVICES
    assert len(CheckCategory.ordered()) == 12


def test_only_role_check_is_infrastructure_wide() -> None:
    wide = [c for c in CheckCategory if c.is_infrastructure_wide]
    assert wide == [CheckCategory.FSMO_ROLES]


def test_result_is_immutable() -> None:
    result = HealthCheckResult(
        category=CheckCategory.DNS,
        check_name="DnsHealth",
        target="dc01",
        status=HealthStatus.HEALTHY,
        message="ok",
        data={"error": "partial"},
        recommendations=["one"],
    )

    assert result.recommendations == ("one",)
    assert result.error == "partial"
    with pytest.raises(TypeError):
        result.data["error"] = "changed"  # type: ignore[index]
    with pytest.raises(AttributeError):
        result.status = HealthStatus.CRITICAL  # type: ignore[misc]


def test_summary_counts_and_overall_status() -> None:
    results = [
        _result(HealthStatus.HEALTHY),
        _result(HealthStatus.WARNING),
        _result(HealthStatus.UNKNOWN),
    ]
    summary = HealthSummary.from_results(results, target_count=2)

    assert (summary.critical, summary.warning, summary.healthy, summary.unknown) == (
        0,
        1,
        1,
        1,
    )
    assert summary.total == 3
    assert summary.target_count == 2
    assert summary.overall_status is HealthStatus.WARNING


def test_summary_with_only_unknown_is_unknown() -> None:
    summary = HealthSummary.from_results([_result(HealthStatus.UNKNOWN)])
    assert summary.overall_status is HealthStatus.UNKNOWN
    assert HealthSummary().overall_status is HealthStatus.UNKNOWN


def test_run_groups_results_by_category() -> None:
    started = datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)
    results = [
        _result(HealthStatus.HEALTHY, CheckCategory.SERVICES, "dc01"),
        _result(HealthStatus.CRITICAL, CheckCategory.DNS, "dc01"),
        _result(HealthStatus.WARNING, CheckCategory.SERVICES, "dc02"),
    ]
    run = HealthRun(
        results=results,
        summary=HealthSummary.from_results(results),
        started_at=started,
        finished_at=started + timedelta(seconds=3),
    )

    grouped = run.by_category()
    assert [r.target for r in grouped[CheckCategory.SERVICES]] == ["dc01", "dc02"]
    assert run.with_status(HealthStatus.CRITICAL) == [results[1]]
    assert run.elapsed_seconds == 3.0
