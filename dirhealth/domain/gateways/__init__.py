"""Domain gateway interfaces for external collaborators."""

from .directory_gateway import IDirectoryGateway, ITopologyGateway
from .network_gateway import INetworkGateway
from .remote_management_gateway import IRemoteManagementGateway

__all__ = [
    "IDirectoryGateway",
    "ITopologyGateway",
    "INetworkGateway",
    "IRemoteManagementGateway",
]
