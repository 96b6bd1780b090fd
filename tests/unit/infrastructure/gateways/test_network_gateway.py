from __future__ import annotations

import asyncio
import socket
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from dirhealth.domain.entities.errors import ProbeExecutionError
from dirhealth.infrastructure.gateways import SocketNetworkGateway, certificate_from_der


def _self_signed_der(common_name: str, not_after: datetime) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(0x1F2E3D)
        .not_valid_before(not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.DER)


class _StubWriter:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


def test_certificate_from_der_extracts_identity_and_validity() -> None:
    not_after = datetime(2027, 3, 1, 12, 0, tzinfo=timezone.utc)

    info = certificate_from_der(_self_signed_der("dc01.corp.example.com", not_after))

    assert info.subject == "CN=dc01.corp.example.com"
    assert info.issuer == "CN=dc01.corp.example.com"
    assert info.not_after == not_after
    assert info.not_before == not_after - timedelta(days=365)
    assert info.serial_number == "1F2E3D"
    assert len(info.thumbprint) == 40
    assert info.thumbprint == info.thumbprint.upper()


def test_certificate_from_der_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        certificate_from_der(b"not a certificate")


@pytest.mark.asyncio
async def test_check_port_reports_open_port(monkeypatch) -> None:
    writer = _StubWriter()

    async def _open(host, port):
        return object(), writer

    monkeypatch.setattr("asyncio.open_connection", _open)

    assert await SocketNetworkGateway().check_port("dc01", 389, timeout=1) is True
    assert writer.closed is True


@pytest.mark.asyncio
async def test_check_port_reports_refused_port(monkeypatch) -> None:
    async def _open(host, port):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr("asyncio.open_connection", _open)

    assert await SocketNetworkGateway().check_port("dc01", 3268, timeout=1) is False


@pytest.mark.asyncio
async def test_check_port_times_out(monkeypatch) -> None:
    async def _open(host, port):
        await asyncio.sleep(5)

    monkeypatch.setattr("asyncio.open_connection", _open)

    assert await SocketNetworkGateway().check_port("dc01", 88, timeout=0.05) is False


@pytest.mark.asyncio
async def test_resolve_returns_unique_addresses(monkeypatch) -> None:
    async def _getaddrinfo(host, port, type=0):
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.10", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.10", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.11", 0)),
        ]

    monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", _getaddrinfo)

    addresses = await SocketNetworkGateway().resolve("dc01", timeout=1)

    assert addresses == ["10.0.0.10", "10.0.0.11"]


@pytest.mark.asyncio
async def test_resolve_treats_unknown_name_as_empty(monkeypatch) -> None:
    async def _getaddrinfo(host, port, type=0):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", _getaddrinfo)

    assert await SocketNetworkGateway().resolve("ghost", timeout=1) == []


@pytest.mark.asyncio
async def test_resolve_surfaces_resolver_failures(monkeypatch) -> None:
    async def _getaddrinfo(host, port, type=0):
        raise socket.gaierror(socket.EAI_AGAIN, "Temporary failure")

    monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", _getaddrinfo)

    with pytest.raises(ProbeExecutionError):
        await SocketNetworkGateway().resolve("dc01", timeout=1)


@pytest.mark.asyncio
async def test_ping_uses_exit_code(monkeypatch) -> None:
    class _Process:
        def __init__(self, returncode):
            self.returncode = returncode

        async def wait(self):
            return self.returncode

    calls = []

    async def _spawn(*args, **kwargs):
        calls.append(args)
        return _Process(0 if args[-1] == "dc01" else 1)

    monkeypatch.setattr("asyncio.create_subprocess_exec", _spawn)
    gateway = SocketNetworkGateway()

    assert await gateway.ping("dc01", timeout=1) is True
    assert await gateway.ping("dc99", timeout=1) is False
    assert calls[0][0] == "ping"
