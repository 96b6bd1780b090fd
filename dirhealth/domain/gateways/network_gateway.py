"""
Network Gateway Interface - Domain Layer

This module defines the interface for host-level network probes.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from dirhealth.domain.entities.directory import CertificateInfo


class INetworkGateway(ABC):
    """Interface for name resolution, reachability and TLS probes."""

    @abstractmethod
    async def resolve(self, host: str, timeout: float) -> List[str]:
        """
        Resolve a host name to its addresses.

        Args:
            host: Server name to resolve
            timeout: Seconds before the lookup is abandoned

        Returns:
            List[str]: Resolved addresses, empty when the name does not exist

        Raises:
            ProbeError: If the resolver itself could not be queried
        """
        pass

    @abstractmethod
    async def ping(self, host: str, timeout: float) -> bool:
        """Return True when the host answers an ICMP echo request."""
        pass

    @abstractmethod
    async def check_port(self, host: str, port: int, timeout: float) -> bool:
        """Return True when a TCP connection to ``host:port`` succeeds."""
        pass

    @abstractmethod
    async def get_certificate(
        self, host: str, port: int, timeout: float
    ) -> Optional[CertificateInfo]:
        """
        Retrieve the certificate presented on a TLS port.

        Returns:
            CertificateInfo, or None when the handshake succeeds without
            a peer certificate

        Raises:
            ProbeError: If the port cannot be reached or the handshake fails
        """
        pass
