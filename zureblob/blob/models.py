"""
Blob Storage Models

Pydantic records for blobs, containers, blocks, leases and page regions
returned by the client.

Author: ZureBlob Team
Date: 2026-10-19
"""

from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class BlobType(str, Enum):
    """Blob type."""
    BLOCK_BLOB = "BlockBlob"
    PAGE_BLOB = "PageBlob"


class LeaseAction(str, Enum):
    """Blob lease actions."""
    ACQUIRE = "acquire"
    RENEW = "renew"
    RELEASE = "release"
    BREAK = "break"


class PageWriteMethod(str, Enum):
    """Put Page write options."""
    UPDATE = "update"
    CLEAR = "clear"


class PublicAccessLevel(str, Enum):
    """Container public access levels. Private access is expressed as None."""
    BLOB = "blob"
    CONTAINER = "container"


class BlockListType(str, Enum):
    """Block list to retrieve."""
    ALL = "all"
    COMMITTED = "committed"
    UNCOMMITTED = "uncommitted"


class BlockStatus(str, Enum):
    """Upload status of a single block."""
    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"


def _parse_http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class BlockDescriptor(BaseModel):
    """
    One block of a chunked transfer.

    The identifier is derived from the index, so the byte range and the
    identifier always agree.
    """

    index: int = Field(ge=0, description="0-based sequence index")
    block_id: str = Field(description="64-character block identifier (not yet base64-encoded)")
    offset: int = Field(ge=0, description="Byte offset in the source")
    length: int = Field(ge=0, description="Number of bytes in the block")
    status: BlockStatus = Field(default=BlockStatus.PENDING)

    @property
    def end(self) -> int:
        """Exclusive end offset."""
        return self.offset + self.length


class TransferResult(BaseModel):
    """Outcome of a completed upload (single PUT or block list commit)."""

    container: str
    name: str
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    url: str = ""
    size: int = 0
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    cache_control: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def last_modified_datetime(self) -> Optional[datetime]:
        return _parse_http_date(self.last_modified)


class BlobInstance(BaseModel):
    """Blob properties as reported by HEAD or a listing."""

    container: str
    name: str
    snapshot_id: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    url: str = ""
    size: int = 0
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    cache_control: Optional[str] = None
    blob_type: Optional[str] = None
    lease_status: Optional[str] = None
    is_prefix: bool = False
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def last_modified_datetime(self) -> Optional[datetime]:
        return _parse_http_date(self.last_modified)


class BlobContainer(BaseModel):
    """Container name, version tag and metadata."""

    name: str
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class LeaseInstance(BaseModel):
    """Result of a lease operation."""

    container: str
    name: str
    lease_id: Optional[str] = None
    lease_time: Optional[str] = None


class PageRegion(BaseModel):
    """A valid page range of a page blob (inclusive offsets)."""

    start: int
    end: int


class SignedIdentifier(BaseModel):
    """Stored access policy on a container."""

    id: str
    start: str = ""
    expiry: str = ""
    permissions: str = ""


class BlockInfo(BaseModel):
    """A committed or uncommitted block reported by Get Block List."""

    name: str
    size: int = 0


class BlockListing(BaseModel):
    """Get Block List result."""

    committed_blocks: List[BlockInfo] = Field(default_factory=list)
    uncommitted_blocks: List[BlockInfo] = Field(default_factory=list)
