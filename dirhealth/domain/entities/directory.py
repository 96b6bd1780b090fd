"""
Directory infrastructure entities.

Raw observations returned by collaborator gateways (remote management,
directory metadata, network probes) before any classification happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Credentials:
    """Alternate identity used for remote probes."""

    username: str
    password: str = field(repr=False)


class FsmoRole(str, Enum):
    """Single-holder operations master roles."""

    SCHEMA_MASTER = "SchemaMaster"
    DOMAIN_NAMING_MASTER = "DomainNamingMaster"
    PDC_EMULATOR = "PDCEmulator"
    RID_MASTER = "RIDMaster"
    INFRASTRUCTURE_MASTER = "InfrastructureMaster"

    @property
    def scope(self) -> str:
        if self in (FsmoRole.SCHEMA_MASTER, FsmoRole.DOMAIN_NAMING_MASTER):
            return "forest"
        return "domain"


@dataclass(frozen=True)
class ServiceState:
    """State of one Windows service on a server."""

    name: str
    status: str
    start_type: str
    display_name: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.status.lower() == "running"

    @property
    def is_automatic(self) -> bool:
        return self.start_type.lower() in ("auto", "automatic")


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Resource utilization sampled on a server."""

    cpu_percent: Optional[float]
    memory_percent: Optional[float]
    disk_free_percent: Optional[float]
    database_volume: Optional[str] = None
    counters: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class TimeStatus:
    """Clock synchronization status of a server."""

    offset_seconds: Optional[float]
    source: Optional[str]
    service_running: bool
    last_sync: Optional[datetime] = None


@dataclass(frozen=True)
class FileReplicationState:
    """SYSVOL replication status of a server."""

    service_running: bool
    sysvol_shared: bool
    netlogon_shared: bool
    backlog_count: Optional[int] = None
    last_replication: Optional[datetime] = None
    engine: str = "DFSR"


@dataclass(frozen=True)
class DatabaseState:
    """Directory database file statistics of a server."""

    database_path: Optional[str]
    database_exists: bool
    database_size_mb: Optional[float] = None
    whitespace_mb: Optional[float] = None
    log_path: Optional[str] = None
    log_volume_free_percent: Optional[float] = None
    last_backup: Optional[datetime] = None

    @property
    def fragmentation_percent(self) -> Optional[float]:
        if not self.database_size_mb or self.whitespace_mb is None:
            return None
        return round(self.whitespace_mb / self.database_size_mb * 100, 2)


@dataclass(frozen=True)
class EventRecord:
    """One event log entry."""

    log_name: str
    level: str
    event_id: int
    source: str
    time_created: Optional[datetime] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class SecuritySummary:
    """Authentication activity over a time window."""

    account_lockouts: int
    failed_authentications: int
    ntlm_authentications: int
    kerberos_authentications: int
    window_hours: int
    locked_accounts: List[str] = field(default_factory=list)

    @property
    def ntlm_percent(self) -> Optional[float]:
        total = self.ntlm_authentications + self.kerberos_authentications
        if total <= 0:
            return None
        return round(self.ntlm_authentications / total * 100, 2)


@dataclass(frozen=True)
class DnsLookup:
    """Answer of a DNS query executed against a specific server."""

    name: str
    record_type: str
    records: List[str]
    query_time_ms: Optional[float] = None


@dataclass(frozen=True)
class ReplicationPartner:
    """Inbound replication metadata for one partner and partition."""

    partner: str
    partition: Optional[str] = None
    last_success: Optional[datetime] = None
    last_attempt: Optional[datetime] = None
    consecutive_failures: int = 0
    last_result: int = 0

    def minutes_since_success(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.last_success is None:
            return None
        reference = now or datetime.now(timezone.utc)
        return max(0.0, (reference - self.last_success).total_seconds() / 60)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "partner": self.partner,
            "partition": self.partition,
            "last_success": _isoformat(self.last_success),
            "last_attempt": _isoformat(self.last_attempt),
            "consecutive_failures": self.consecutive_failures,
            "last_result": self.last_result,
        }


@dataclass(frozen=True)
class ReplicationFailure:
    """Failure record reported for a replication partner."""

    partner: str
    failure_count: int
    first_failure_time: Optional[datetime] = None
    last_error: Optional[int] = None


@dataclass(frozen=True)
class TrustRelationship:
    """Trust with another domain and the outcome of its verification."""

    name: str
    direction: str
    trust_type: str
    verified: Optional[bool] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CertificateInfo:
    """Certificate presented on a TLS port."""

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    thumbprint: str
    serial_number: Optional[str] = None

    @property
    def is_self_signed(self) -> bool:
        return self.subject == self.issuer

    def days_until_expiration(self, now: Optional[datetime] = None) -> int:
        reference = now or datetime.now(timezone.utc)
        return int((self.not_after - reference).total_seconds() / 86400)
