"""Storage service lookups and creation.

Creation is itself an asynchronous operation: submit, wait, then read the
service back to learn its endpoints.
"""

import logging
from typing import Optional

from azure_vm_driver.common import require
from azure_vm_driver.documents.base import to_bytes
from azure_vm_driver.documents.services import (
    StorageService,
    create_storage_service_document,
    parse_storage_service,
    parse_storage_services,
)
from azure_vm_driver.errors import ManagementError

logger = logging.getLogger(__name__)


class StorageServiceClient:

    def __init__(self, client):
        self.client = client

    def list(self) -> list[StorageService]:
        return parse_storage_services(self.client.transport.get(self.client.paths.storage_services))

    def get(self, name: str) -> StorageService:
        require(name=name)
        path = self.client.paths.storage_service.format(service=name)
        return parse_storage_service(self.client.transport.get(path))

    def get_by_location(self, location: str) -> Optional[StorageService]:
        """First storage service in location, or None."""
        require(location=location)
        for service in self.list():
            if service.location == location:
                return service
        return None

    def create(self, name: str, location: str) -> StorageService:
        require(name=name, location=location)
        body = to_bytes(create_storage_service_document(name, location))
        logger.info(f"Creating storage service '{name}' in {location}")
        request_id = self.client.transport.post(self.client.paths.storage_services, body)
        self.client.tracker.wait(request_id)
        return self.get(name)

    def blob_endpoint(self, service: StorageService) -> str:
        """Blob endpoint URL of service, always ending with '/'.

        Raises:
            ManagementError: If the service lists no blob endpoint
        """
        for endpoint in service.endpoints:
            if '.blob.' in endpoint:
                return endpoint if endpoint.endswith('/') else endpoint + '/'
        raise ManagementError(
            'NoBlobEndpoint', f"Storage service '{service.service_name}' has no blob endpoint"
        )
