"""Location lookups."""

from azure_vm_driver.common import require
from azure_vm_driver.documents.services import Location, parse_locations
from azure_vm_driver.errors import ValidationError


class LocationClient:

    def __init__(self, client):
        self.client = client

    def list(self) -> list[Location]:
        return parse_locations(self.client.transport.get(self.client.paths.locations))

    def get(self, name: str) -> Location:
        """Location by name.

        Raises:
            ValidationError: If the subscription has no such location
        """
        require(location=name)
        locations = self.list()
        for location in locations:
            if location.name == name:
                return location
        available = ', '.join(loc.name for loc in locations)
        raise ValidationError(f"Invalid location: {name}. Available locations: {available}")
