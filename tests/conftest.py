"""Shared pytest fixtures for azure-vm-driver tests."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from azure_vm_driver.common import AsyncOperation  # noqa: E402
from azure_vm_driver.config import ApiPaths, ClientConfig  # noqa: E402
from azure_vm_driver.errors import TransportError  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / 'fixtures'


class FakeClock:
    """Stands in for the time module inside the tracker."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeTransport:
    """Scripted transport recording every call.

    - get_responses: path -> bytes returned by get()
    - submit_errors: (method, path) -> exception raised on submission
    - script(method, path, [...]): statuses (or AsyncOperation/exception)
      returned by successive polls of the request id that submission gets;
      the last entry repeats. Unscripted requests succeed on first poll.
    """

    def __init__(self):
        self.paths = ApiPaths()
        self.calls: list[tuple[str, str]] = []
        self.bodies: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.get_responses: dict[str, bytes] = {}
        self.submit_errors: dict[tuple[str, str], Exception] = {}
        self.polls: list[str] = []
        self._path_scripts: dict[tuple[str, str], list] = {}
        self._operations: dict[str, list] = {}
        self._counter = 0

    def script(self, method: str, path: str, results: list) -> None:
        self._path_scripts[(method, path)] = list(results)

    def script_request(self, request_id: str, results: list) -> None:
        self._operations[request_id] = list(results)

    def submissions(self, method: str = None) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] != 'GET' and (method is None or c[0] == method)]

    def _submit(self, method, path, body=None):
        self.calls.append((method, path))
        if body is not None:
            self.bodies[path] = body
        if (method, path) in self.submit_errors:
            raise self.submit_errors[(method, path)]
        self._counter += 1
        request_id = f'req-{self._counter}'
        if (method, path) in self._path_scripts:
            self._operations[request_id] = list(self._path_scripts[(method, path)])
        return request_id

    def get(self, path):
        self.calls.append(('GET', path))
        if path not in self.get_responses:
            raise TransportError(f"No fixture for {path}", code='ResourceNotFound', status_code=404)
        return self.get_responses[path]

    def post(self, path, body):
        return self._submit('POST', path, body)

    def put(self, path, content_type, body):
        self.content_types[path] = content_type
        return self._submit('PUT', path, body)

    def delete(self, path):
        return self._submit('DELETE', path)

    def poll_operation_status(self, request_id):
        self.polls.append(request_id)
        script = self._operations.get(request_id)
        if not script:
            return AsyncOperation(id=request_id, status='Succeeded')
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return AsyncOperation(id=request_id, status=item)
        return item


@pytest.fixture
def pem_path():
    """Self-signed certificate with a known SHA-1 fingerprint."""
    return FIXTURES_DIR / 'management.pem'


@pytest.fixture
def fake_clock():
    clock = FakeClock()
    with patch('azure_vm_driver.management.tracker.time', clock):
        yield clock


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def client_config(tmp_path):
    return ClientConfig(
        subscription_id='sub-0001',
        cert_path=tmp_path / 'management.pem',
        poll_interval=5,
        operation_timeout=60,
    )


@pytest.fixture
def client(client_config, fake_transport, fake_clock):
    """ManagementClient on a FakeTransport with a fake clock."""
    from azure_vm_driver.management.client import ManagementClient
    return ManagementClient(client_config, transport=fake_transport)


LOCATIONS_XML = b"""<Locations xmlns="http://schemas.microsoft.com/windowsazure">
  <Location>
    <Name>West US</Name>
    <DisplayName>West US</DisplayName>
    <AvailableServices>
      <AvailableService>Compute</AvailableService>
      <AvailableService>Storage</AvailableService>
    </AvailableServices>
    <ComputeCapabilities>
      <VirtualMachinesRoleSizes>
        <RoleSize>Small</RoleSize>
        <RoleSize>Medium</RoleSize>
      </VirtualMachinesRoleSizes>
    </ComputeCapabilities>
  </Location>
  <Location>
    <Name>East Asia</Name>
    <DisplayName>East Asia</DisplayName>
    <ComputeCapabilities>
      <VirtualMachinesRoleSizes>
        <RoleSize>Small</RoleSize>
      </VirtualMachinesRoleSizes>
    </ComputeCapabilities>
  </Location>
</Locations>"""

IMAGES_XML = b"""<Images xmlns="http://schemas.microsoft.com/windowsazure">
  <OSImage><Name>b39f27a8b8c64d52b05eac6a62ebad85__Ubuntu-14_04-LTS-amd64-server</Name><OS>Linux</OS></OSImage>
  <OSImage><Name>coreos-stable</Name><OS>Linux</OS></OSImage>
</Images>"""

STORAGE_SERVICES_XML = b"""<StorageServices xmlns="http://schemas.microsoft.com/windowsazure">
  <StorageService>
    <Url>https://management.core.windows.net/sub-0001/services/storageservices/portalvhdsabc</Url>
    <ServiceName>portalvhdsabc</ServiceName>
    <StorageServiceProperties>
      <Location>West US</Location>
      <Status>Created</Status>
      <Endpoints>
        <Endpoint>https://portalvhdsabc.blob.core.windows.net/</Endpoint>
        <Endpoint>https://portalvhdsabc.queue.core.windows.net/</Endpoint>
      </Endpoints>
    </StorageServiceProperties>
  </StorageService>
</StorageServices>"""

ROLE_SIZES_XML = b"""<RoleSizes xmlns="http://schemas.microsoft.com/windowsazure">
  <RoleSize><Name>ExtraSmall</Name><Label>A0</Label><Cores>1</Cores><MemoryInMb>768</MemoryInMb></RoleSize>
  <RoleSize><Name>Small</Name><Label>A1</Label><Cores>1</Cores><MemoryInMb>1792</MemoryInMb></RoleSize>
</RoleSizes>"""


@pytest.fixture
def lookup_responses(fake_transport):
    """Location, image and storage fixtures registered on the transport."""
    fake_transport.get_responses.update({
        'locations': LOCATIONS_XML,
        'services/images': IMAGES_XML,
        'services/storageservices': STORAGE_SERVICES_XML,
        'rolesizes': ROLE_SIZES_XML,
    })
    return fake_transport
