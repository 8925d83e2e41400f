"""Documents for hosted services, storage, locations, images and operations."""

import base64
from dataclasses import dataclass
from typing import Optional

from azure_vm_driver.common import AsyncOperation, OperationStatus
from azure_vm_driver.documents.base import int_text, new_document, parse, sub, text, texts
from azure_vm_driver.errors import TransportError


def _label(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def create_hosted_service_document(name: str, location: str, description: str = ''):
    root = new_document('CreateHostedService')
    sub(root, 'ServiceName', name)
    sub(root, 'Label', _label(name))
    sub(root, 'Description', description)
    sub(root, 'Location', location)
    return root


def create_storage_service_document(name: str, location: str, description: str = ''):
    root = new_document('CreateStorageServiceInput')
    sub(root, 'ServiceName', name)
    sub(root, 'Description', description)
    sub(root, 'Label', _label(name))
    sub(root, 'Location', location)
    return root


@dataclass(frozen=True)
class Location:
    name: str
    display_name: str = ''
    available_services: frozenset = frozenset()
    available_instance_sizes: frozenset = frozenset()


@dataclass(frozen=True)
class StorageService:
    service_name: str
    url: str = ''
    location: str = ''
    status: str = ''
    endpoints: tuple[str, ...] = ()


@dataclass(frozen=True)
class RoleSize:
    name: str
    label: str = ''
    cores: Optional[int] = None
    memory_in_mb: Optional[int] = None


@dataclass
class ProviderError:
    code: str = ''
    message: str = ''


def parse_locations(data: bytes) -> list[Location]:
    root = parse(data)
    return [
        Location(
            name=text(loc, 'Name'),
            display_name=text(loc, 'DisplayName'),
            available_services=frozenset(texts(loc, 'AvailableServices/AvailableService')),
            available_instance_sizes=frozenset(
                texts(loc, 'ComputeCapabilities/VirtualMachinesRoleSizes/RoleSize')
            ),
        )
        for loc in root.findall('Location')
    ]


def _parse_storage_service(el) -> StorageService:
    return StorageService(
        service_name=text(el, 'ServiceName'),
        url=text(el, 'Url'),
        location=text(el, 'StorageServiceProperties/Location'),
        status=text(el, 'StorageServiceProperties/Status'),
        endpoints=tuple(texts(el, 'StorageServiceProperties/Endpoints/Endpoint')),
    )


def parse_storage_services(data: bytes) -> list[StorageService]:
    return [_parse_storage_service(el) for el in parse(data).findall('StorageService')]


def parse_storage_service(data: bytes) -> StorageService:
    return _parse_storage_service(parse(data))


def parse_image_names(data: bytes) -> list[str]:
    root = parse(data)
    return texts(root, 'OSImage/Name') + texts(root, 'VMImage/Name')


def parse_role_sizes(data: bytes) -> list[RoleSize]:
    return [
        RoleSize(
            name=text(el, 'Name'),
            label=text(el, 'Label'),
            cores=int_text(el, 'Cores'),
            memory_in_mb=int_text(el, 'MemoryInMb'),
        )
        for el in parse(data).findall('RoleSize')
    ]


def parse_operation(request_id: str, data: bytes) -> AsyncOperation:
    """Parse a GET operations/<id> response.

    Unknown status strings are kept as-is; the tracker treats anything
    non-terminal as still in progress.
    """
    root = parse(data)
    error = root.find('Error')
    return AsyncOperation(
        id=text(root, 'ID', request_id),
        status=text(root, 'Status', OperationStatus.IN_PROGRESS),
        http_status_code=int_text(root, 'HttpStatusCode'),
        error_code=text(error, 'Code') or None,
        error_message=text(error, 'Message') or None,
    )


def parse_error(data: bytes) -> ProviderError:
    """Parse an <Error><Code/><Message/></Error> body; empty on failure."""
    try:
        root = parse(data)
    except TransportError:
        return ProviderError()
    return ProviderError(code=text(root, 'Code'), message=text(root, 'Message'))
