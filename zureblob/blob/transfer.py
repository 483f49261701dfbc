"""
Chunked transfer engine for block blobs.

Per transfer:

    SizeCheck -> SingleShotUpload
    SizeCheck -> Splitting -> BlockUpload (x N) -> CommitBlockList

Blocks are independent and may be staged in any order; the committed block
list alone fixes the byte layout of the final blob.

Author: ZureBlob Team
Date: 2026-10-19
"""

import io
import logging
import math
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING, Iterator, List, Mapping, Optional, Tuple, Union

from zureblob.exceptions import ValidationError

from .models import BlockDescriptor, BlockStatus, TransferResult

if TYPE_CHECKING:
    from .client import BlobClient

logger = logging.getLogger(__name__)

# Largest blob sent as a single PUT (64 MiB)
MAX_BLOB_SIZE = 64 * 1024 * 1024

# Largest block staged by a single Put Block (4 MiB)
MAX_BLOB_TRANSFER_SIZE = 4 * 1024 * 1024

BLOCK_ID_WIDTH = 64

Source = Union[bytes, bytearray, str, os.PathLike, IO[bytes]]


def generate_block_id(index: int) -> str:
    """
    Block identifier for a sequence index.

    The index is left-padded with "0" to 64 characters so every identifier of
    a blob has the same length.
    """
    if index < 0:
        raise ValidationError("Block index must not be negative", "InvalidBlockId")
    block_id = str(index).zfill(BLOCK_ID_WIDTH)
    if len(block_id) > BLOCK_ID_WIDTH:
        raise ValidationError("Block index is too large", "InvalidBlockId")
    return block_id


def plan_blocks(total_length: int, block_size: int = MAX_BLOB_TRANSFER_SIZE) -> List[BlockDescriptor]:
    """
    Split a payload of total_length bytes into ordered block descriptors.

    Args:
        total_length: Payload size in bytes
        block_size: Per-block ceiling

    Returns:
        ceil(total_length / block_size) descriptors in index order
    """
    if block_size <= 0:
        raise ValidationError("Block size must be positive", "OutOfRangeInput")
    if total_length < 0:
        raise ValidationError("Payload length must not be negative", "OutOfRangeInput")

    count = math.ceil(total_length / block_size)
    return [
        BlockDescriptor(
            index=index,
            block_id=generate_block_id(index),
            offset=index * block_size,
            length=min(block_size, total_length - index * block_size),
        )
        for index in range(count)
    ]


@contextmanager
def open_source(source: Source) -> Iterator[Tuple[IO[bytes], int, int]]:
    """
    Open an upload source.

    Yields:
        Tuple of (binary file object, base offset, length in bytes)
    """
    if isinstance(source, (bytes, bytearray)):
        yield io.BytesIO(bytes(source)), 0, len(source)
    elif isinstance(source, (str, os.PathLike)):
        if not os.path.isfile(source):
            raise ValidationError(f"Local file not found: {source}", "InvalidInput")
        with open(source, "rb") as handle:
            yield handle, 0, os.path.getsize(source)
    else:
        base = source.tell()
        source.seek(0, io.SEEK_END)
        length = source.tell() - base
        source.seek(base)
        yield source, base, length


class ChunkedUploader:
    """
    Uploads block blobs of any size.

    Payloads up to max_blob_size go out as one PUT; larger payloads are split
    into blocks of at most max_block_size, staged, and committed in index
    order. A failed block aborts the transfer before the commit; staged
    blocks are left for the service to discard.

    Example:
        uploader = ChunkedUploader(client)
        result = uploader.upload("photos", "holiday.mp4", "/tmp/holiday.mp4")
    """

    def __init__(
        self,
        client: "BlobClient",
        max_blob_size: int = MAX_BLOB_SIZE,
        max_block_size: int = MAX_BLOB_TRANSFER_SIZE,
        max_workers: int = 1,
    ):
        if max_block_size <= 0 or max_blob_size <= 0:
            raise ValidationError("Transfer ceilings must be positive", "OutOfRangeInput")
        if max_workers < 1:
            raise ValidationError("max_workers must be at least 1", "OutOfRangeInput")
        self.client = client
        self.max_blob_size = max_blob_size
        self.max_block_size = max_block_size
        self.max_workers = max_workers

    def is_single_shot(self, total_length: int) -> bool:
        return total_length <= self.max_blob_size

    def plan(self, total_length: int) -> List[BlockDescriptor]:
        return plan_blocks(total_length, self.max_block_size)

    def upload(
        self,
        container_name: str,
        blob_name: str,
        source: Source,
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, str]] = None,
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_language: Optional[str] = None,
        cache_control: Optional[str] = None,
        force_chunked: bool = False,
    ) -> TransferResult:
        """
        Upload a payload as a block blob.

        Args:
            container_name: Container name
            blob_name: Blob name
            source: bytes, local file path, or seekable binary file object
            metadata: Key/value pairs of metadata
            lease_id: Lease identifier of a leased blob
            additional_headers: Extra request headers for the final request
            content_type, content_encoding, content_language, cache_control:
                Descriptive fields stored with the blob
            force_chunked: Use blocks even when the payload fits one PUT

        Returns:
            TransferResult of the final request

        Raises:
            ValidationError: Bad arguments, nothing sent
            ServiceError: A request failed; no commit was issued
        """
        content = {
            "content_type": content_type,
            "content_encoding": content_encoding,
            "content_language": content_language,
            "cache_control": cache_control,
        }

        with open_source(source) as (handle, base, total_length):
            if self.is_single_shot(total_length) and not force_chunked:
                logger.debug(f"Single-shot upload of {total_length} bytes to {container_name}/{blob_name}")
                return self.client.put_blob_data(
                    container_name,
                    blob_name,
                    handle.read(total_length),
                    metadata=metadata,
                    lease_id=lease_id,
                    additional_headers=additional_headers,
                    **content,
                )

            blocks = self.plan(total_length)
            logger.info(
                f"Chunked upload of {total_length} bytes to {container_name}/{blob_name} "
                f"in {len(blocks)} blocks"
            )
            self._stage_blocks(container_name, blob_name, handle, base, blocks, lease_id)

        result = self.client.put_block_list(
            container_name,
            blob_name,
            [block.block_id for block in blocks],
            metadata=metadata,
            lease_id=lease_id,
            additional_headers=additional_headers,
            **content,
        )
        logger.info(f"Committed {len(blocks)} blocks to {container_name}/{blob_name}")
        return result.model_copy(update={"size": total_length})

    def _stage_blocks(
        self,
        container_name: str,
        blob_name: str,
        handle: IO[bytes],
        base: int,
        blocks: List[BlockDescriptor],
        lease_id: Optional[str],
    ) -> None:
        read_lock = threading.Lock()

        def stage(block: BlockDescriptor) -> None:
            if block.length > self.max_block_size:
                block.status = BlockStatus.FAILED
                raise ValidationError("Block size is too big.", "RequestBodyTooLarge")
            with read_lock:
                handle.seek(base + block.offset)
                data = handle.read(block.length)
            if len(data) != block.length:
                block.status = BlockStatus.FAILED
                raise ValidationError(
                    f"Source ended early at block {block.index}", "InvalidInput"
                )
            try:
                self.client.put_block(container_name, blob_name, block.block_id, data, lease_id)
            except Exception:
                block.status = BlockStatus.FAILED
                raise
            block.status = BlockStatus.UPLOADED

        if self.max_workers == 1:
            for block in blocks:
                stage(block)
            return

        # Commit must wait for every block, so all futures are drained here
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(stage, block) for block in blocks]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in futures:
                if future.done() and not future.cancelled() and future.exception() is not None:
                    raise future.exception()
