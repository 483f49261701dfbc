"""
File-like access to blobs.

A BlobStream buffers the blob in a spooled temporary file. Read modes download
the blob when opened; write and append modes upload the buffer on flush() and
close(), creating the container first when it does not exist.

    with open_blob(client, "blob://photos/2026/cat.jpg", "wb") as stream:
        stream.write(data)
"""

import io
import logging
import tempfile
from typing import TYPE_CHECKING, Optional, Tuple
from urllib.parse import urlparse

from zureblob.exceptions import ValidationError

from .models import BlobInstance

if TYPE_CHECKING:
    from .client import BlobClient

logger = logging.getLogger(__name__)

# Buffers above this size spill to disk
SPOOL_SIZE = 8 * 1024 * 1024

_MODES = {"r", "w", "a", "r+", "w+", "a+"}


def parse_blob_url(url: str) -> Tuple[str, str]:
    """
    Split scheme://container/path/to/blob into (container, blob).

    Raises:
        ValidationError: If the URL has no container
    """
    parsed = urlparse(url)
    if not parsed.netloc:
        raise ValidationError(f'Could not parse path "{url}".', "InvalidUri")
    return parsed.netloc, parsed.path.lstrip("/")


class BlobStream(io.RawIOBase):
    """Binary file object backed by a blob."""

    _buffer = None
    _dirty = False

    def __init__(self, client: "BlobClient", container_name: str, blob_name: str, mode: str = "rb"):
        super().__init__()
        normalized = mode.replace("b", "")
        if normalized not in _MODES:
            raise ValidationError(f"Unsupported mode: {mode}")

        self.client = client
        self.container_name = container_name
        self.blob_name = blob_name
        self.mode = mode
        self._readable = normalized.startswith("r") or "+" in normalized
        self._writable = not normalized.startswith("r") or "+" in normalized
        self._buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_SIZE, mode="w+b")
        # "w" creates the blob on close even when nothing was written
        self._dirty = normalized.startswith("w")

        if normalized[0] == "r":
            self._buffer.write(self.client.get_blob_data(container_name, blob_name))
            self._buffer.seek(0)
        elif normalized[0] == "a" and self.client.blob_exists(container_name, blob_name):
            self._buffer.write(self.client.get_blob_data(container_name, blob_name))

    def readable(self) -> bool:
        return self._readable

    def writable(self) -> bool:
        return self._writable

    def seekable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        self._check_closed()
        if not self._readable:
            raise io.UnsupportedOperation("not readable")
        data = self._buffer.read(len(buffer))
        buffer[:len(data)] = data
        return len(data)

    def write(self, data) -> int:
        self._check_closed()
        if not self._writable:
            raise io.UnsupportedOperation("not writable")
        self._buffer.write(data)
        self._dirty = True
        return len(data)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_closed()
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check_closed()
        return self._buffer.tell()

    def flush(self) -> None:
        if self.closed or self._buffer is None:
            return
        self._buffer.flush()
        if self._dirty:
            self._upload()
            self._dirty = False

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            if self._buffer is not None:
                self._buffer.close()

    def stat(self) -> BlobInstance:
        return self.client.get_blob_instance(self.container_name, self.blob_name)

    def _upload(self) -> None:
        self.client.create_container_if_not_exists(self.container_name)
        position = self._buffer.tell()
        self._buffer.seek(0)
        try:
            self.client.upload_blob(self.container_name, self.blob_name, self._buffer)
        finally:
            self._buffer.seek(position)
        logger.debug(f"Uploaded stream buffer to {self.container_name}/{self.blob_name}")

    def _check_closed(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed blob stream.")


def open_blob(client: "BlobClient", url: str, mode: str = "rb") -> BlobStream:
    """Open scheme://container/path/to/blob as a BlobStream."""
    container_name, blob_name = parse_blob_url(url)
    return BlobStream(client, container_name, blob_name, mode)


def unlink_blob(client: "BlobClient", url: str) -> None:
    container_name, blob_name = parse_blob_url(url)
    client.delete_blob(container_name, blob_name)


def rename_blob(client: "BlobClient", source_url: str, destination_url: str) -> None:
    """
    Rename a blob within its container (copy, then delete the source).

    Raises:
        ValidationError: If the URLs name different containers
    """
    source_container, source_blob = parse_blob_url(source_url)
    destination_container, destination_blob = parse_blob_url(destination_url)
    if source_container != destination_container:
        raise ValidationError("Container name can not be changed.")
    if source_blob == destination_blob:
        return
    client.copy_blob(source_container, source_blob, destination_container, destination_blob)
    client.delete_blob(source_container, source_blob)


def stat_blob(client: "BlobClient", url: str) -> Optional[BlobInstance]:
    """Blob properties, or None when the blob does not exist."""
    container_name, blob_name = parse_blob_url(url)
    if not client.blob_exists(container_name, blob_name):
        return None
    return client.get_blob_instance(container_name, blob_name)
