"""OS image lookups."""

from azure_vm_driver.common import require
from azure_vm_driver.documents.services import parse_image_names
from azure_vm_driver.errors import ValidationError


class ImageClient:

    def __init__(self, client):
        self.client = client

    def list_names(self) -> list[str]:
        return parse_image_names(self.client.transport.get(self.client.paths.images))

    def resolve(self, name: str) -> None:
        """Raise ValidationError unless an image called name exists."""
        require(image_name=name)
        names = self.list_names()
        if name not in names:
            raise ValidationError(
                f"Could not find image with name '{name}'. Available images: {', '.join(names)}"
            )
