from dirhealth.infrastructure.gateways.directory_gateway import ActiveDirectoryGateway
from dirhealth.infrastructure.gateways.network_gateway import (
    SocketNetworkGateway,
    certificate_from_der,
)
from dirhealth.infrastructure.gateways.remote_management_gateway import (
    PowerShellRemoteManagementGateway,
)

__all__ = [
    "ActiveDirectoryGateway",
    "PowerShellRemoteManagementGateway",
    "SocketNetworkGateway",
    "certificate_from_der",
]
