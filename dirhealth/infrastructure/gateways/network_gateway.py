"""Socket based network gateway implementation."""

from __future__ import annotations

import asyncio
import contextlib
import socket
import ssl
import sys
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from dirhealth.domain.entities.directory import CertificateInfo
from dirhealth.domain.entities.errors import ProbeExecutionError, ProbeTimeoutError
from dirhealth.domain.gateways.network_gateway import INetworkGateway
from dirhealth.shared import get_logger

logger = get_logger(__name__)


def certificate_from_der(der: bytes) -> CertificateInfo:
    """Build a :class:`CertificateInfo` from a DER encoded certificate."""
    certificate = x509.load_der_x509_certificate(der)
    return CertificateInfo(
        subject=certificate.subject.rfc4514_string(),
        issuer=certificate.issuer.rfc4514_string(),
        not_before=certificate.not_valid_before_utc,
        not_after=certificate.not_valid_after_utc,
        thumbprint=certificate.fingerprint(hashes.SHA1()).hex().upper(),
        serial_number=format(certificate.serial_number, "X"),
    )


class SocketNetworkGateway(INetworkGateway):
    """Network probes using asyncio sockets and the system ping binary."""

    def __init__(self, ping_executable: str = "ping") -> None:
        self._ping = ping_executable

    async def resolve(self, host: str, timeout: float) -> List[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(host, None, type=socket.SOCK_STREAM),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProbeTimeoutError(f"resolve {host}", timeout) from exc
        except socket.gaierror as exc:
            if exc.errno in (socket.EAI_NONAME, getattr(socket, "EAI_NODATA", None)):
                return []
            raise ProbeExecutionError(
                f"Name resolution of {host} failed: {exc}", {"host": host}
            ) from exc

        addresses: List[str] = []
        for _family, _type, _proto, _canonname, sockaddr in infos:
            address = sockaddr[0]
            if address not in addresses:
                addresses.append(address)
        return addresses

    def _ping_command(self, host: str, timeout: float) -> List[str]:
        if sys.platform.startswith("win"):
            return [self._ping, "-n", "1", "-w", str(int(timeout * 1000)), host]
        return [self._ping, "-c", "1", "-W", str(max(1, int(timeout))), host]

    async def ping(self, host: str, timeout: float) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                *self._ping_command(host, timeout),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ProbeExecutionError(
                f"Cannot run '{self._ping}': {exc}", {"host": host}
            ) from exc

        try:
            returncode = await asyncio.wait_for(process.wait(), timeout=timeout + 1)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            return False
        return returncode == 0

    async def check_port(self, host: str, port: int, timeout: float) -> bool:
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except (asyncio.TimeoutError, OSError) as exc:
            logger.debug("network.port_closed", host=host, port=port, error=str(exc))
            return False
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True

    async def get_certificate(
        self, host: str, port: int, timeout: float
    ) -> Optional[CertificateInfo]:
        # Expired and self-signed certificates must still be inspected.
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    host, port, ssl=context, server_hostname=host
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            operation = f"TLS handshake with {host}:{port}"
            raise ProbeTimeoutError(operation, timeout) from exc
        except (OSError, ssl.SSLError) as exc:
            raise ProbeExecutionError(
                f"TLS handshake with {host}:{port} failed: {exc}",
                {"host": host, "port": port},
            ) from exc

        try:
            ssl_object = writer.get_extra_info("ssl_object")
            der = ssl_object.getpeercert(binary_form=True) if ssl_object else None
        finally:
            writer.close()
            with contextlib.suppress(OSError, ssl.SSLError):
                await writer.wait_closed()

        if not der:
            return None
        try:
            return certificate_from_der(der)
        except ValueError as exc:
            raise ProbeExecutionError(
                f"Certificate presented by {host}:{port} cannot be parsed: {exc}",
                {"host": host, "port": port},
            ) from exc
