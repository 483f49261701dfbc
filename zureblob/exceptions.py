"""
Exceptions raised by the ZureBlob client.

Three families exist:
- ValidationError: bad arguments, raised locally before any request is sent
- TransportError: the HTTP exchange itself could not be completed
- ServiceError: the service answered with a failure status (>= 400)

Author: ZureBlob Team
Date: 2026-10-19
"""

from typing import Optional


class StorageError(Exception):
    """Base exception for all blob storage client errors."""

    def __init__(self, message: str, error_code: str = "StorageError"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ValidationError(StorageError, ValueError):
    """Raised when arguments are rejected before any network call."""

    def __init__(self, message: str, error_code: str = "InvalidInput"):
        super().__init__(message, error_code)


class TransportError(StorageError):
    """Raised when the transport could not complete the HTTP exchange."""

    def __init__(self, message: str = "HTTP exchange could not be completed"):
        super().__init__(message, "TransportFailure")


class ServiceError(StorageError):
    """Raised when the service reports a failure status."""

    def __init__(
        self,
        status_code: int,
        message: str = "Resource could not be accessed.",
        error_code: Optional[str] = None,
        authentication_detail: Optional[str] = None,
    ):
        self.status_code = status_code
        self.authentication_detail = authentication_detail
        super().__init__(message, error_code or "ServiceError")

    def __str__(self) -> str:
        text = f"[{self.status_code}] {self.message}"
        if self.authentication_detail:
            text += f"\n{self.authentication_detail}"
        return text
