"""Blocking wait for asynchronous operations.

Polls the provider with a request id until the operation is Succeeded or
Failed, or until the wait ceiling elapses. Retryable transport errors
are not operation failures: they are logged and polling continues.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from azure_vm_driver.common import AsyncOperation, OperationStatus
from azure_vm_driver.errors import OperationTimeout, RemoteOperationFailed, TransportError
from azure_vm_driver.transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class OperationTracker:
    """Waits for one request id at a time per call.

    Attributes:
        transport: Used for poll_operation_status()
        poll_interval: Seconds between polls
        timeout: Wait ceiling in seconds
    """
    transport: Transport
    poll_interval: float = 10.0
    timeout: float = 1800.0

    def wait(self, request_id: str) -> AsyncOperation:
        """Block until request_id reaches a terminal status.

        Returns:
            The Succeeded operation

        Raises:
            RemoteOperationFailed: Status became Failed
            OperationTimeout: Ceiling elapsed first (chained to the last
                transport error when polling never got an answer)
            TransportError: Non-retryable error while polling
        """
        start = time.time()
        deadline = start + self.timeout
        polls = 0
        last_error: Optional[TransportError] = None

        logger.debug(f"Waiting for operation {request_id} (timeout {self.timeout:g}s)")
        while True:
            polls += 1
            try:
                operation = self.transport.poll_operation_status(request_id)
            except TransportError as e:
                if not e.retryable:
                    raise
                last_error = e
                logger.warning(f"Poll {polls} for operation {request_id} failed, retrying: {e}")
            else:
                last_error = None
                if operation.status == OperationStatus.SUCCEEDED:
                    logger.debug(
                        f"Operation {request_id} succeeded after {polls} polls "
                        f"({time.time() - start:.1f}s)"
                    )
                    return operation
                if operation.status == OperationStatus.FAILED:
                    logger.error(
                        f"Operation {request_id} failed: "
                        f"{operation.error_code}: {operation.error_message}"
                    )
                    raise RemoteOperationFailed(request_id, operation.error_code, operation.error_message)
                logger.debug(f"Operation {request_id} is {operation.status}, poll {polls}")

            remaining = deadline - time.time()
            if remaining <= 0:
                logger.error(f"Timed out waiting for operation {request_id} after {polls} polls")
                raise OperationTimeout(request_id, self.timeout) from last_error
            time.sleep(min(self.poll_interval, remaining))
