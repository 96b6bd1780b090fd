"""
Directory Gateway Interfaces - Domain Layer

This module defines the interfaces for topology discovery and directory
metadata queries (replication, operations master roles, trusts).
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from dirhealth.domain.entities.directory import (
    Credentials,
    FsmoRole,
    ReplicationFailure,
    ReplicationPartner,
    TrustRelationship,
)


class ITopologyGateway(ABC):
    """Interface for discovering the servers of the infrastructure."""

    @abstractmethod
    async def discover_servers(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> List[str]:
        """
        Return the host names of every directory server.

        Raises:
            ProbeError: If the topology cannot be read
        """
        pass


class IDirectoryGateway(ABC):
    """Interface for directory metadata queries."""

    @abstractmethod
    async def get_domain_name(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> str:
        """Return the DNS name of the directory domain."""
        pass

    @abstractmethod
    async def get_replication_partners(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ReplicationPartner]:
        """Return inbound replication partner metadata for ``server``."""
        pass

    @abstractmethod
    async def get_replication_failures(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ReplicationFailure]:
        """Return replication failures for ``server``; empty when none."""
        pass

    @abstractmethod
    async def get_role_holders(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> Dict[FsmoRole, Optional[str]]:
        """Return the holder of every role; None for an unassigned role."""
        pass

    @abstractmethod
    async def get_trusts(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[TrustRelationship]:
        """Return the trusts visible from ``server`` with their verification."""
        pass
