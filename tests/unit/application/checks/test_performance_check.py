from __future__ import annotations

import pytest

from dirhealth.application.checks import PerformanceCheck
from dirhealth.domain.entities.directory import PerformanceSnapshot
from dirhealth.domain.entities.errors import ProbeTimeoutError
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from tests.conftest import StubRemoteGateway


def _snapshot(cpu, memory, disk, **kwargs) -> PerformanceSnapshot:
    return PerformanceSnapshot(
        cpu_percent=cpu,
        memory_percent=memory,
        disk_free_percent=disk,
        database_volume="D:",
        **kwargs,
    )


async def _run(make_context, performance, **context):
    check = PerformanceCheck(StubRemoteGateway(performance=performance))
    [result] = await check.run(make_context(CheckCategory.PERFORMANCE, **context))
    return result


@pytest.mark.asyncio
async def test_high_cpu_is_the_only_issue(make_context) -> None:
    result = await _run(make_context, _snapshot(95, 50, 50))

    assert result.status is HealthStatus.CRITICAL
    assert result.message == "CPU usage of 95% exceeds the 90% critical threshold"
    issues = result.data["performance_issues"]
    assert len(issues) == 1
    assert issues[0]["name"] == "cpu_percent"
    assert issues[0]["status"] == "critical"


@pytest.mark.asyncio
async def test_low_disk_space_is_reported(make_context) -> None:
    result = await _run(make_context, _snapshot(10, 85, 15))

    assert result.status is HealthStatus.WARNING
    assert [i["name"] for i in result.data["performance_issues"]] == [
        "memory_percent",
        "disk_free_percent",
    ]
    assert any("D:" in text for text in result.recommendations)


@pytest.mark.asyncio
async def test_missing_counters_are_skipped(make_context) -> None:
    snapshot = _snapshot(30, None, None, counters={"ldap_searches": 12.5})

    result = await _run(make_context, snapshot, include_extended=True)

    assert result.status is HealthStatus.HEALTHY
    assert [s["name"] for s in result.data["signals"]] == ["cpu_percent"]
    assert result.data["counters"] == {"ldap_searches": 12.5}


@pytest.mark.asyncio
async def test_no_counter_at_all_is_unknown(make_context) -> None:
    result = await _run(make_context, _snapshot(None, None, None))
    assert result.status is HealthStatus.UNKNOWN


@pytest.mark.asyncio
async def test_timeout_is_unknown(make_context) -> None:
    result = await _run(make_context, ProbeTimeoutError("counter sample", 15))

    assert result.status is HealthStatus.UNKNOWN
    assert result.error == "performance counters: counter sample timed out after 15s"
