"""Exception hierarchy for management API calls.

Every error carries a short ``code`` and a human readable ``message``:
- ValidationError: bad caller input, detected before any remote call
- TransportError: network failure or HTTP error response
- RemoteOperationFailed: an asynchronous operation ended in Failed
- OperationTimeout: the wait ceiling elapsed before a terminal status
- CompensationFailed: a rollback step failed (attached, never raised in
  place of the error that triggered it)
"""

from typing import Optional


class ManagementError(Exception):
    """Base exception for management client errors."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        self.compensation_failures: list['CompensationFailed'] = []
        self.workflow = None
        super().__init__(f"{code}: {message}")


class ValidationError(ManagementError):
    """Caller input rejected locally."""

    def __init__(self, message: str, code: str = 'InvalidParameter'):
        super().__init__(code, message)


class ParameterNotSpecifiedError(ValidationError):
    """Required parameter missing or empty."""

    def __init__(self, param: str):
        super().__init__(f"Parameter {param} was not specified.", code='MissingParameter')
        self.param = param


class TransportError(ManagementError):
    """Request could not be completed by the transport.

    ``retryable`` is set for failures where asking again may succeed
    (connection errors, timeouts, 5xx and 429 responses).
    """

    def __init__(
        self,
        message: str,
        code: str = 'TransportError',
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(code, message)
        self.status_code = status_code
        self.retryable = retryable


class RemoteOperationFailed(ManagementError):
    """Asynchronous operation reached the Failed status."""

    def __init__(self, request_id: str, code: Optional[str], message: Optional[str]):
        super().__init__(code or 'OperationFailed', message or 'Operation failed without error details')
        self.request_id = request_id


class OperationTimeout(ManagementError):
    """Operation still in progress when the wait ceiling elapsed."""

    def __init__(self, request_id: str, timeout: float):
        super().__init__(
            'OperationTimeout',
            f"Operation {request_id} did not complete within {timeout:g}s",
        )
        self.request_id = request_id
        self.timeout = timeout


class CompensationFailed(ManagementError):
    """Best-effort rollback step failed."""

    def __init__(self, step: str, cause: Exception):
        super().__init__('CompensationFailed', f"{step} failed: {cause}")
        self.step = step
        self.cause = cause
