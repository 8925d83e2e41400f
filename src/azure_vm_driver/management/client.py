"""Entry point wiring transport, tracker and sub-clients together."""

import logging
from pathlib import Path
from typing import Optional

from azure_vm_driver.config import ApiPaths, ClientConfig, load_client_config
from azure_vm_driver.management.hosted_service import HostedServiceClient
from azure_vm_driver.management.image import ImageClient
from azure_vm_driver.management.location import LocationClient
from azure_vm_driver.management.storage import StorageServiceClient
from azure_vm_driver.management.tracker import OperationTracker
from azure_vm_driver.management.vm import VmClient
from azure_vm_driver.management.vnet import VnetClient
from azure_vm_driver.transport import RequestsTransport, Transport

logger = logging.getLogger(__name__)


class ManagementClient:
    """Handle for one subscription.

    Sub-clients share the transport and tracker:

        client = ManagementClient.from_config_file()
        builder = client.vm.create_vm_configuration('myvm', 'Small', image, 'West US')
        client.vm.add_linux_provisioning_config(builder, 'azureuser', password='Secret1')
        client.vm.create_vm(builder.build(), 'myvm', 'West US')
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        tracker: Optional[OperationTracker] = None,
    ):
        self.config = config
        self.transport = transport or RequestsTransport(config)
        self.tracker = tracker or OperationTracker(
            self.transport,
            poll_interval=config.poll_interval,
            timeout=config.operation_timeout,
        )
        self.hosted_services = HostedServiceClient(self)
        self.locations = LocationClient(self)
        self.storage = StorageServiceClient(self)
        self.images = ImageClient(self)
        self.vm = VmClient(self)
        self.vnet = VnetClient(self)
        logger.debug(f"Management client for subscription {config.subscription_id}")

    @property
    def paths(self) -> ApiPaths:
        return self.transport.paths

    @classmethod
    def from_config_file(cls, path: Optional[Path] = None) -> 'ManagementClient':
        return cls(load_client_config(path))
