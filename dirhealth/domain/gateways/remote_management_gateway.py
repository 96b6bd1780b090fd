"""
Remote Management Gateway Interface - Domain Layer

This module defines the interface for queries executed on a target server
(services, counters, event logs, file system and time service state).
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from dirhealth.domain.entities.directory import (
    Credentials,
    DatabaseState,
    DnsLookup,
    EventRecord,
    FileReplicationState,
    PerformanceSnapshot,
    SecuritySummary,
    ServiceState,
    TimeStatus,
)


class IRemoteManagementGateway(ABC):
    """Interface for remote management queries against one server.

    Every method accepts optional alternate ``credentials`` and a
    ``timeout`` in seconds, and raises ``ProbeError`` when the query cannot
    be completed.
    """

    @abstractmethod
    async def get_services(
        self,
        server: str,
        names: Sequence[str],
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ServiceState]:
        """
        Retrieve the state of the named services.

        Services that do not exist on the server are omitted from the result.
        """
        pass

    @abstractmethod
    async def get_performance(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> PerformanceSnapshot:
        """Sample CPU, memory and database volume free space."""
        pass

    @abstractmethod
    async def get_time_status(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> TimeStatus:
        """Read time service state, configured source and clock offset."""
        pass

    @abstractmethod
    async def get_file_replication_state(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> FileReplicationState:
        """Read SYSVOL share and replication backlog information."""
        pass

    @abstractmethod
    async def get_database_state(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> DatabaseState:
        """Read directory database location, size and backup information."""
        pass

    @abstractmethod
    async def get_events(
        self,
        server: str,
        logs: Sequence[str],
        *,
        window_hours: int,
        max_events: int,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[EventRecord]:
        """Return critical, error and warning events from the given logs."""
        pass

    @abstractmethod
    async def get_security_summary(
        self,
        server: str,
        *,
        window_hours: int,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> SecuritySummary:
        """Count lockouts, failed logons and authentication protocols."""
        pass

    @abstractmethod
    async def resolve_dns_record(
        self,
        server: str,
        name: str,
        record_type: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> DnsLookup:
        """Query the DNS server running on ``server`` for a record."""
        pass
