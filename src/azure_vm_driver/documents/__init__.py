"""Request and response documents for the management API."""

from azure_vm_driver.documents.network import (
    DnsServer,
    Gateway,
    LocalNetworkConnection,
    LocalNetworkSite,
    NetworkConfiguration,
    Subnet,
    VirtualNetworkSite,
)
from azure_vm_driver.documents.role import (
    ConfigurationSet,
    InputEndpoint,
    OSVirtualHardDisk,
    PublicKey,
    ResourceExtensionParameter,
    ResourceExtensionReference,
    Role,
    RoleBuilder,
    RoleInstance,
    VMDeployment,
)
from azure_vm_driver.documents.services import Location, RoleSize, StorageService

__all__ = [
    'DnsServer',
    'Gateway',
    'LocalNetworkConnection',
    'LocalNetworkSite',
    'NetworkConfiguration',
    'Subnet',
    'VirtualNetworkSite',
    'ConfigurationSet',
    'InputEndpoint',
    'OSVirtualHardDisk',
    'PublicKey',
    'ResourceExtensionParameter',
    'ResourceExtensionReference',
    'Role',
    'RoleBuilder',
    'RoleInstance',
    'VMDeployment',
    'Location',
    'RoleSize',
    'StorageService',
]
