"""
ZureBlob: Blob Storage Client

Authenticated access to blob storage with SharedKey and shared access
signatures, chunked uploads, and typed responses.
"""

__version__ = "0.1.0"

from .blob.client import BlobClient
from .exceptions import ServiceError, StorageError, TransportError, ValidationError

__all__ = [
    "BlobClient",
    "ServiceError",
    "StorageError",
    "TransportError",
    "ValidationError",
    "__version__",
]
