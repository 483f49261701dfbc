"""
Transport collaborator for blob storage requests.

The client never opens sockets itself; it hands a signed request to a
Transport and receives status, headers and body back.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol

import httpx

from zureblob.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Raw HTTP response handed back by a transport."""
    
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""
    
    def __post_init__(self):
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers or {})
    
    @property
    def is_successful(self) -> bool:
        return self.status_code < 400
    
    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name)


class Transport(Protocol):
    """Anything able to execute one HTTP exchange."""
    
    def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        ...


class HttpxTransport:
    """
    Transport backed by httpx.Client.
    
    Example:
        transport = HttpxTransport(timeout=30.0)
        response = transport.execute("GET", url, headers)
    """
    
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ):
        """
        Args:
            client: Preconfigured httpx client (takes precedence over other options)
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, verify=verify_ssl)
    
    def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        try:
            response = self._client.request(method, url, headers=dict(headers), content=body)
        except httpx.HTTPError as exc:
            logger.error(f"{method} {url.split('?', 1)[0]} failed: {exc}")
            raise TransportError(f"HTTP exchange failed: {exc}") from exc
        
        return HttpResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.content,
        )
    
    def close(self) -> None:
        if self._owns_client:
            self._client.close()
    
    def __enter__(self) -> "HttpxTransport":
        return self
    
    def __exit__(self, *exc_info) -> None:
        self.close()
