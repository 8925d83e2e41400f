"""Virtual network configuration for the active subscription.

The configuration is one document per subscription and every update
replaces it whole. Network operations are not safe to run concurrently
on the same subscription.
"""

import logging

from azure_vm_driver.common import AsyncOperation
from azure_vm_driver.documents.network import NetworkConfiguration
from azure_vm_driver.errors import ParameterNotSpecifiedError

logger = logging.getLogger(__name__)

NETWORK_CONFIGURATION_CONTENT_TYPE = 'text/plain'


class VnetClient:

    def __init__(self, client):
        self.client = client

    def get_virtual_network_configuration(self) -> NetworkConfiguration:
        data = self.client.transport.get(self.client.paths.network_configuration)
        return NetworkConfiguration.from_bytes(data)

    def set_virtual_network_configuration(self, network_configuration: NetworkConfiguration) -> AsyncOperation:
        """Replace the subscription network configuration and wait for it."""
        if network_configuration is None:
            raise ParameterNotSpecifiedError('network_configuration')

        body = network_configuration.to_bytes()
        logger.info(
            f"Updating network configuration "
            f"({len(network_configuration.virtual_network_sites)} virtual networks)"
        )
        request_id = self.client.transport.put(
            self.client.paths.network_configuration,
            NETWORK_CONFIGURATION_CONTENT_TYPE,
            body,
        )
        return self.client.tracker.wait(request_id)
