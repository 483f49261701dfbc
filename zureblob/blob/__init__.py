"""
ZureBlob Blob Storage Client

Containers, block and page blobs, leases, snapshots, shared access URLs
and chunked uploads.

Author: ZureBlob Team
Date: 2026-10-19
"""

from .client import URL_CLOUD_BLOB, URL_DEV_BLOB, BlobClient, create_resource_name
from .models import (
    BlobContainer,
    BlobInstance,
    BlobType,
    BlockDescriptor,
    BlockInfo,
    BlockListing,
    BlockListType,
    LeaseAction,
    LeaseInstance,
    PageRegion,
    PageWriteMethod,
    PublicAccessLevel,
    SignedIdentifier,
    TransferResult,
)
from .stream import BlobStream, open_blob
from .transfer import MAX_BLOB_SIZE, MAX_BLOB_TRANSFER_SIZE, ChunkedUploader, plan_blocks

__all__ = [
    "BlobClient",
    "BlobStream",
    "ChunkedUploader",
    "open_blob",
    "plan_blocks",
    "create_resource_name",
    "URL_CLOUD_BLOB",
    "URL_DEV_BLOB",
    "MAX_BLOB_SIZE",
    "MAX_BLOB_TRANSFER_SIZE",
    "BlobContainer",
    "BlobInstance",
    "BlobType",
    "BlockDescriptor",
    "BlockInfo",
    "BlockListing",
    "BlockListType",
    "LeaseAction",
    "LeaseInstance",
    "PageRegion",
    "PageWriteMethod",
    "PublicAccessLevel",
    "SignedIdentifier",
    "TransferResult",
]
