from __future__ import annotations

import pytest

from dirhealth.application.checks import CertificateCheck
from dirhealth.domain.entities.errors import ProbeExecutionError
from dirhealth.domain.entities.health import CheckCategory, HealthStatus
from tests.conftest import StubNetworkGateway, make_certificate


async def _run(make_context, gateway, **context):
    check = CertificateCheck(gateway)
    [result] = await check.run(make_context(CheckCategory.CERTIFICATES, **context))
    return result


@pytest.mark.asyncio
async def test_valid_certificate_is_healthy(make_context) -> None:
    gateway = StubNetworkGateway(certificate=make_certificate(days_left=200.5))

    result = await _run(make_context, gateway)

    assert result.status is HealthStatus.HEALTHY
    assert result.data["days_until_expiration"] == 200
    assert result.data["port"] == 636
    assert result.data["self_signed"] is False
    assert "serial_number" not in result.data
    assert gateway.calls == [("get_certificate", ("dc01.corp.example.com", 636))]


@pytest.mark.asyncio
async def test_expired_certificate_is_critical(make_context) -> None:
    gateway = StubNetworkGateway(certificate=make_certificate(days_left=-1.05))

    result = await _run(make_context, gateway)

    assert result.status is HealthStatus.CRITICAL
    assert "expired 1 days ago" in result.message
    assert result.recommendations[0].startswith("Renew the directory server")


@pytest.mark.asyncio
async def test_certificate_close_to_expiry_is_a_warning(make_context) -> None:
    gateway = StubNetworkGateway(certificate=make_certificate(days_left=20.5))

    result = await _run(make_context, gateway)

    assert result.status is HealthStatus.WARNING
    assert result.message == "Certificate expires in 20 days"


@pytest.mark.asyncio
async def test_self_signed_certificate_is_a_warning(make_context) -> None:
    certificate = make_certificate(issuer="CN=dc01.corp.example.com")
    gateway = StubNetworkGateway(certificate=certificate)

    result = await _run(make_context, gateway, include_extended=True)

    assert result.status is HealthStatus.WARNING
    assert result.message.endswith("is self-signed")
    assert result.data["serial_number"] == "1F2E3D"


@pytest.mark.asyncio
async def test_missing_certificate_is_a_warning(make_context) -> None:
    gateway = StubNetworkGateway()
    gateway.certificate = None

    result = await _run(make_context, gateway, parameters={"port": 3269})

    assert result.status is HealthStatus.WARNING
    assert result.message == "No certificate presented on port 3269"


@pytest.mark.asyncio
async def test_handshake_failure_is_unknown(make_context) -> None:
    gateway = StubNetworkGateway(
        certificate=ProbeExecutionError("TLS handshake failed")
    )

    result = await _run(make_context, gateway)

    assert result.status is HealthStatus.UNKNOWN
    assert result.data["port"] == 636
    assert "TLS handshake failed" in result.error


@pytest.mark.asyncio
async def test_certificate_expired_within_the_last_day_reads_as_expired(
    make_context,
) -> None:
    gateway = StubNetworkGateway(certificate=make_certificate(days_left=-0.5))

    result = await _run(make_context, gateway)

    assert result.status is HealthStatus.CRITICAL
    assert result.message == "Certificate expired 0 days ago"
    assert result.data["days_until_expiration"] == 0
