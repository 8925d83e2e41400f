"""Common types shared by the transport, tracker and workflows."""

import time
import uuid
from dataclasses import dataclass
from typing import Optional

from azure_vm_driver.errors import ParameterNotSpecifiedError


class OperationStatus:
    """Wire values of an asynchronous operation status."""
    IN_PROGRESS = 'InProgress'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'

    TERMINAL = (SUCCEEDED, FAILED)


@dataclass
class AsyncOperation:
    """Status of a long-running request as reported by the provider."""
    id: str
    status: str = OperationStatus.IN_PROGRESS
    http_status_code: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in OperationStatus.TERMINAL

    @property
    def succeeded(self) -> bool:
        return self.status == OperationStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == OperationStatus.FAILED


def new_unique_token(length: int = 14) -> str:
    """Return a random lowercase alphanumeric token (storage-name safe)."""
    return uuid.uuid4().hex[:length]


def timestamp_suffix(now: Optional[float] = None) -> str:
    """Local time formatted as YYYYmmddHHMMSS."""
    return time.strftime('%Y%m%d%H%M%S', time.localtime(now))


def require(**params) -> None:
    """Raise ParameterNotSpecifiedError for the first empty parameter.

    Usage: ``require(dns_name=dns_name, location=location)``.
    """
    for name, value in params.items():
        if value is None or (isinstance(value, str) and not value):
            raise ParameterNotSpecifiedError(name)
