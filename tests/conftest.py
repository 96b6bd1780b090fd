from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from dirhealth.domain.entities.assessment import CheckContext
from dirhealth.domain.entities.directory import (
    CertificateInfo,
    Credentials,
    DatabaseState,
    DnsLookup,
    EventRecord,
    FileReplicationState,
    FsmoRole,
    PerformanceSnapshot,
    ReplicationFailure,
    ReplicationPartner,
    SecuritySummary,
    ServiceState,
    TimeStatus,
    TrustRelationship,
)
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.entities.thresholds import thresholds_for
from dirhealth.domain.gateways import (
    IDirectoryGateway,
    INetworkGateway,
    IRemoteManagementGateway,
    ITopologyGateway,
)

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DC01 = "dc01.corp.example.com"
DC02 = "dc02.corp.example.com"
DOMAIN = "corp.example.com"


def _answer(value: Any, *args: Any) -> Any:
    """Return a canned answer: callables are invoked, exceptions raised."""
    if callable(value) and not isinstance(value, type):
        value = value(*args)
    if isinstance(value, BaseException):
        raise value
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def running_services(names: Sequence[str]) -> List[ServiceState]:
    return [
        ServiceState(name=name, status="Running", start_type="Automatic")
        for name in names
    ]


def make_certificate(
    days_left: float = 200, issuer: str = "CN=Corp Issuing CA"
) -> CertificateInfo:
    now = _now()
    return CertificateInfo(
        subject=f"CN={DC01}",
        issuer=issuer,
        not_before=now - timedelta(days=165),
        not_after=now + timedelta(days=days_left),
        thumbprint="AB" * 20,
        serial_number="1F2E3D",
    )


class StubNetworkGateway(INetworkGateway):
    def __init__(
        self,
        addresses: Any = ("10.0.0.10",),
        ping: Any = True,
        port: Any = True,
        certificate: Any = None,
    ) -> None:
        self.addresses = addresses
        self.ping_answer = ping
        self.port_answer = port
        if certificate is None:
            certificate = make_certificate()
        self.certificate = certificate
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    async def resolve(self, host: str, timeout: float) -> List[str]:
        self.calls.append(("resolve", (host,)))
        return list(_answer(self.addresses, host))

    async def ping(self, host: str, timeout: float) -> bool:
        self.calls.append(("ping", (host,)))
        return _answer(self.ping_answer, host)

    async def check_port(self, host: str, port: int, timeout: float) -> bool:
        self.calls.append(("check_port", (host, port)))
        return _answer(self.port_answer, host, port)

    async def get_certificate(
        self, host: str, port: int, timeout: float
    ) -> Optional[CertificateInfo]:
        self.calls.append(("get_certificate", (host, port)))
        return _answer(self.certificate, host, port)


def _default_dns(server: str, name: str, record_type: str) -> DnsLookup:
    records = [f"{server}."] if record_type == "SRV" else ["10.0.0.10"]
    return DnsLookup(
        name=name, record_type=record_type, records=records, query_time_ms=12.0
    )


class StubRemoteGateway(IRemoteManagementGateway):
    def __init__(self, **answers: Any) -> None:
        now = _now()
        self.answers: Dict[str, Any] = {
            "services": lambda server, names: running_services(names),
            "performance": PerformanceSnapshot(
                cpu_percent=20.0,
                memory_percent=40.0,
                disk_free_percent=60.0,
                database_volume="C:",
            ),
            "time": TimeStatus(
                offset_seconds=0.2,
                source="time.windows.com,0x9",
                service_running=True,
                last_sync=now - timedelta(minutes=10),
            ),
            "file_replication": FileReplicationState(
                service_running=True,
                sysvol_shared=True,
                netlogon_shared=True,
                backlog_count=0,
                last_replication=now - timedelta(minutes=5),
            ),
            "database": DatabaseState(
                database_path=r"C:\Windows\NTDS\ntds.dit",
                database_exists=True,
                database_size_mb=1000.0,
                whitespace_mb=50.0,
                log_path=r"C:\Windows\NTDS",
                log_volume_free_percent=60.0,
                last_backup=now - timedelta(days=1),
            ),
            "events": [],
            "security": SecuritySummary(
                account_lockouts=0,
                failed_authentications=2,
                ntlm_authentications=10,
                kerberos_authentications=90,
                window_hours=24,
            ),
            "dns": _default_dns,
        }
        self.answers.update(answers)
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _reply(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        return _answer(self.answers[name], *args)

    async def get_services(self, server, names, *, credentials=None, timeout):
        return self._reply("services", server, tuple(names))

    async def get_performance(self, server, *, credentials=None, timeout):
        return self._reply("performance", server)

    async def get_time_status(self, server, *, credentials=None, timeout):
        return self._reply("time", server)

    async def get_file_replication_state(self, server, *, credentials=None, timeout):
        return self._reply("file_replication", server)

    async def get_database_state(self, server, *, credentials=None, timeout):
        return self._reply("database", server)

    async def get_events(
        self, server, logs, *, window_hours, max_events, credentials=None, timeout
    ):
        return self._reply("events", server)

    async def get_security_summary(
        self, server, *, window_hours, credentials=None, timeout
    ):
        return self._reply("security", server)

    async def resolve_dns_record(
        self, server, name, record_type, *, credentials=None, timeout
    ):
        return self._reply("dns", server, name, record_type)


class StubDirectoryGateway(ITopologyGateway, IDirectoryGateway):
    def __init__(self, **answers: Any) -> None:
        self.answers: Dict[str, Any] = {
            "servers": [DC01, DC02],
            "domain": DOMAIN,
            "partners": lambda server: [
                ReplicationPartner(
                    partner="DC02" if server == DC01 else "DC01",
                    partition=f"DC={DOMAIN.split('.')[0]}",
                    last_success=_now() - timedelta(minutes=5),
                    last_attempt=_now() - timedelta(minutes=5),
                )
            ],
            "failures": [],
            "roles": {role: DC01 for role in FsmoRole},
            "trusts": [],
        }
        self.answers.update(answers)
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _reply(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        return _answer(self.answers[name], *args)

    async def discover_servers(self, *, credentials=None, timeout):
        return self._reply("servers")

    async def get_domain_name(self, *, credentials=None, timeout):
        return self._reply("domain")

    async def get_replication_partners(self, server, *, credentials=None, timeout):
        return self._reply("partners", server)

    async def get_replication_failures(self, server, *, credentials=None, timeout):
        return self._reply("failures", server)

    async def get_role_holders(self, *, credentials=None, timeout):
        return self._reply("roles")

    async def get_trusts(self, server, *, credentials=None, timeout):
        return self._reply("trusts", server)


@pytest.fixture()
def network_gateway() -> StubNetworkGateway:
    return StubNetworkGateway()


@pytest.fixture()
def remote_gateway() -> StubRemoteGateway:
    return StubRemoteGateway()


@pytest.fixture()
def directory_gateway() -> StubDirectoryGateway:
    return StubDirectoryGateway()


@pytest.fixture()
def make_context() -> Callable[..., CheckContext]:
    def _factory(
        category: CheckCategory,
        target: str = DC01,
        **overrides: Any,
    ) -> CheckContext:
        values: Dict[str, Any] = {
            "target": target,
            "category": category,
            "thresholds": thresholds_for(category),
            "probe_timeout": 1.0,
            "domain": DOMAIN,
        }
        values.update(overrides)
        return CheckContext(**values)

    return _factory


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(username="CORP\\svc-health", password="s3cret")


@pytest.fixture()
def sample_events() -> List[EventRecord]:
    now = _now()
    return [
        EventRecord("Directory Service", "Error", 1311, "NTDS KCC", now),
        EventRecord("Directory Service", "Error", 1311, "NTDS KCC", now),
        EventRecord("System", "Warning", 1014, "DNS Client Events", now),
        EventRecord("DFS Replication", "Error", 2213, "DFSR", now),
    ]


@pytest.fixture()
def failing_replication() -> List[ReplicationFailure]:
    return [ReplicationFailure(partner="DC02", failure_count=3, last_error=8524)]


@pytest.fixture()
def broken_trust() -> TrustRelationship:
    return TrustRelationship(
        name="partner.example.org",
        direction="Bidirectional",
        trust_type="Forest",
        verified=False,
        error="ERROR_NO_LOGON_SERVERS",
    )
