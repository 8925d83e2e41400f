"""HTTP transport for the service management API.

Mutating calls return the provider's request id (x-ms-request-id header);
completion is observed separately through poll_operation_status().
Authentication is a client certificate: cert_path must be a PEM file
holding both the certificate and its private key.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import requests

from azure_vm_driver.common import AsyncOperation
from azure_vm_driver.config import ApiPaths, ClientConfig
from azure_vm_driver.documents.services import parse_error, parse_operation
from azure_vm_driver.errors import TransportError

logger = logging.getLogger(__name__)

XML_CONTENT_TYPE = 'application/xml'
REQUEST_ID_HEADER = 'x-ms-request-id'
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@runtime_checkable
class Transport(Protocol):
    """What the tracker and workflows need from a transport."""
    paths: ApiPaths

    def get(self, path: str) -> bytes:
        """Return the response body."""

    def post(self, path: str, body: bytes) -> str:
        """Submit body, return the request id."""

    def put(self, path: str, content_type: str, body: bytes) -> str:
        """Submit body, return the request id."""

    def delete(self, path: str) -> str:
        """Submit a delete, return the request id."""

    def poll_operation_status(self, request_id: str) -> AsyncOperation:
        """Current status of an asynchronous operation."""


class RequestsTransport:
    """Transport backed by a requests.Session."""

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        """Initialize transport.

        Args:
            config: Subscription settings (base URL, certificate, timeouts)
            session: Pre-built session, mainly for tests
        """
        self.config = config
        self.paths = config.paths
        self.session = session or requests.Session()
        self.session.cert = str(config.cert_path)
        self.session.headers.update({'x-ms-version': config.api_version})

    def _url(self, path: str) -> str:
        return self.config.base_url + path.lstrip('/')

    def _send(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> requests.Response:
        url = self._url(path)
        headers = {'Content-Type': content_type} if content_type else {}
        logger.debug(f"{method} {url}")

        try:
            resp = self.session.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        except requests.exceptions.SSLError as e:
            raise TransportError(f"TLS error calling {url}: {e}", code='SSLError') from e
        except requests.exceptions.Timeout as e:
            raise TransportError(
                f"Timeout calling {method} {path}", code='RequestTimeout', retryable=True
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(
                f"Cannot connect to {url}: {e}", code='ConnectionError', retryable=True
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            error = parse_error(resp.content)
            raise TransportError(
                error.message or f"HTTP {resp.status_code} from {method} {path}",
                code=error.code or f"HTTP{resp.status_code}",
                status_code=resp.status_code,
                retryable=resp.status_code in RETRYABLE_STATUS_CODES,
            )
        return resp

    def _request_id(self, resp: requests.Response, method: str, path: str) -> str:
        request_id = resp.headers.get(REQUEST_ID_HEADER)
        if not request_id:
            raise TransportError(
                f"{method} {path} returned no {REQUEST_ID_HEADER} header", code='InvalidResponse'
            )
        logger.debug(f"{method} {path} accepted as request {request_id}")
        return request_id

    def get(self, path: str) -> bytes:
        return self._send('GET', path).content

    def post(self, path: str, body: bytes) -> str:
        resp = self._send('POST', path, body=body, content_type=XML_CONTENT_TYPE)
        return self._request_id(resp, 'POST', path)

    def put(self, path: str, content_type: str, body: bytes) -> str:
        resp = self._send('PUT', path, body=body, content_type=content_type)
        return self._request_id(resp, 'PUT', path)

    def delete(self, path: str) -> str:
        resp = self._send('DELETE', path)
        return self._request_id(resp, 'DELETE', path)

    def poll_operation_status(self, request_id: str) -> AsyncOperation:
        path = self.paths.operation_status.format(request_id=request_id)
        return parse_operation(request_id, self.get(path))
