"""Hosted service (cloud service) submissions."""

import logging

from azure_vm_driver.common import require
from azure_vm_driver.documents.base import to_bytes
from azure_vm_driver.documents.services import create_hosted_service_document

logger = logging.getLogger(__name__)


class HostedServiceClient:
    """Create and delete hosted services. Both return the request id."""

    def __init__(self, client):
        self.client = client

    def create(self, name: str, location: str, description: str = '') -> str:
        require(name=name, location=location)
        body = to_bytes(create_hosted_service_document(name, location, description))
        logger.info(f"Creating hosted service '{name}' in {location}")
        return self.client.transport.post(self.client.paths.hosted_services, body)

    def delete(self, name: str) -> str:
        require(name=name)
        logger.info(f"Deleting hosted service '{name}'")
        return self.client.transport.delete(self.client.paths.hosted_service.format(service=name))
