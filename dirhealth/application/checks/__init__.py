"""Category evaluators and their registry."""

from typing import Dict

from dirhealth.application.checks.base import (
    BaseHealthCheck,
    Gathered,
    ProbeLog,
    ProbeOutcome,
    ServerHealthCheck,
)
from dirhealth.application.checks.certificates import CertificateCheck
from dirhealth.application.checks.connectivity import ConnectivityCheck
from dirhealth.application.checks.database import DatabaseCheck
from dirhealth.application.checks.dns import DnsCheck
from dirhealth.application.checks.event_logs import EventLogCheck
from dirhealth.application.checks.fsmo_roles import FsmoRoleCheck
from dirhealth.application.checks.performance import PerformanceCheck
from dirhealth.application.checks.replication import ReplicationCheck
from dirhealth.application.checks.security import SecurityCheck
from dirhealth.application.checks.service_status import ServiceStatusCheck
from dirhealth.application.checks.sysvol import SysvolCheck
from dirhealth.application.checks.time_sync import TimeSyncCheck
from dirhealth.domain.entities.health import CheckCategory
from dirhealth.domain.gateways.directory_gateway import IDirectoryGateway
from dirhealth.domain.gateways.network_gateway import INetworkGateway
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)


def build_checks(
    network_gateway: INetworkGateway,
    remote_gateway: IRemoteManagementGateway,
    directory_gateway: IDirectoryGateway,
) -> Dict[CheckCategory, BaseHealthCheck]:
    """Instantiate one evaluator per category, keyed in canonical order."""
    checks = (
        ServiceStatusCheck(remote_gateway),
        ConnectivityCheck(network_gateway),
        ReplicationCheck(directory_gateway),
        FsmoRoleCheck(directory_gateway, network_gateway),
        DnsCheck(network_gateway, remote_gateway),
        SysvolCheck(remote_gateway),
        TimeSyncCheck(remote_gateway, directory_gateway),
        PerformanceCheck(remote_gateway),
        SecurityCheck(remote_gateway, directory_gateway),
        DatabaseCheck(remote_gateway),
        EventLogCheck(remote_gateway),
        CertificateCheck(network_gateway),
    )
    registry = {check.category: check for check in checks}
    return {category: registry[category] for category in CheckCategory.ordered()}


__all__ = [
    "BaseHealthCheck",
    "CertificateCheck",
    "ConnectivityCheck",
    "DatabaseCheck",
    "DnsCheck",
    "EventLogCheck",
    "FsmoRoleCheck",
    "Gathered",
    "PerformanceCheck",
    "ProbeLog",
    "ProbeOutcome",
    "ReplicationCheck",
    "SecurityCheck",
    "ServerHealthCheck",
    "ServiceStatusCheck",
    "SysvolCheck",
    "TimeSyncCheck",
    "build_checks",
]
