"""
Blob Storage Client

Container and blob operations over the blob storage REST API. Every request
goes through perform_request(), which routes it through both signing hooks of
the configured credentials before handing it to the transport.

Author: ZureBlob Team
Date: 2026-10-19
"""

import base64
import logging
import os
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import quote, urlparse

from zureblob.auth.canonicalizer import PREFIX_STORAGE_HEADER
from zureblob.auth.credentials import (
    DEVSTORE_ACCOUNT,
    DEVSTORE_KEY,
    Credentials,
    Permission,
    ResourceType,
    SharedAccessSignatureCredentials,
    SharedKeyCredentials,
)
from zureblob.exceptions import ServiceError, ValidationError
from zureblob.http.transport import HttpResponse, HttpxTransport, Transport

from . import responses
from .models import (
    BlobContainer,
    BlobInstance,
    BlobType,
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
from .transfer import (
    BLOCK_ID_WIDTH,
    MAX_BLOB_SIZE,
    MAX_BLOB_TRANSFER_SIZE,
    ChunkedUploader,
    Source,
)
from .validation import (
    PAGE_SIZE,
    ROOT_CONTAINER,
    ContainerNameValidator,
    require,
    validate_blob_name,
    validate_metadata,
    validate_page_range,
)

if TYPE_CHECKING:
    from zureblob.core.config_manager import ZureBlobConfig

logger = logging.getLogger(__name__)

URL_DEV_BLOB = "http://127.0.0.1:10000"
URL_CLOUD_BLOB = "https://{account}.blob.core.windows.net"

API_VERSION = "2009-09-19"

_DEV_HOSTS = ("127.0.0.1", "localhost")


def create_resource_name(container_name: str = "", blob_name: str = "") -> str:
    """
    Resource path of a container or blob.

    Blobs in the root container are addressed without the container segment.
    """
    if blob_name == "":
        return container_name
    if container_name in ("", ROOT_CONTAINER):
        return blob_name
    return f"{container_name}/{blob_name}"


class BlobClient:
    """
    Client for blob storage.

    Example:
        client = BlobClient(
            host="https://myaccount.blob.core.windows.net",
            account_name="myaccount",
            account_key=key,
        )
        client.create_container("photos")
        client.put_blob("photos", "cat.jpg", "/tmp/cat.jpg")
    """

    def __init__(
        self,
        host: str = URL_DEV_BLOB,
        account_name: str = DEVSTORE_ACCOUNT,
        account_key: str = DEVSTORE_KEY,
        credentials: Optional[Credentials] = None,
        transport: Optional[Transport] = None,
        api_version: str = API_VERSION,
        use_path_style_uri: Optional[bool] = None,
        max_blob_size: int = MAX_BLOB_SIZE,
        max_block_size: int = MAX_BLOB_TRANSFER_SIZE,
        max_workers: int = 1,
    ):
        """
        Args:
            host: Service endpoint, e.g. https://myaccount.blob.core.windows.net
            account_name: Storage account name
            account_key: Base64-encoded account key
            credentials: Signing strategy (defaults to SharedKey with the account key)
            transport: HTTP transport (defaults to HttpxTransport)
            api_version: Value of the x-ms-version header
            use_path_style_uri: Account name is the first path segment;
                defaults to True for local development endpoints
            max_blob_size: Largest payload uploaded with a single PUT
            max_block_size: Largest block staged by Put Block
            max_workers: Parallel block uploads per transfer
        """
        if use_path_style_uri is None:
            use_path_style_uri = urlparse(host).hostname in _DEV_HOSTS

        self.host = host.rstrip("/")
        self.api_version = api_version
        self.credentials = credentials or SharedKeyCredentials(
            account_name, account_key, use_path_style_uri
        )
        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport()
        self.uploader = ChunkedUploader(self, max_blob_size, max_block_size, max_workers)

    @classmethod
    def from_config(cls, config: "ZureBlobConfig", transport: Optional[Transport] = None) -> "BlobClient":
        """Build a client from a loaded configuration."""
        account = config.account
        endpoint = account.endpoint
        if not endpoint:
            endpoint = URL_DEV_BLOB if account.name == DEVSTORE_ACCOUNT else URL_CLOUD_BLOB.format(account=account.name)
        return cls(
            host=endpoint,
            account_name=account.name,
            account_key=account.key,
            transport=transport or HttpxTransport(
                timeout=config.http.timeout, verify_ssl=config.http.verify_ssl
            ),
            api_version=account.api_version,
            use_path_style_uri=account.use_path_style_uri,
            max_blob_size=config.transfer.max_blob_size,
            max_block_size=config.transfer.max_block_size,
            max_workers=config.transfer.max_workers,
        )

    @property
    def account_name(self) -> str:
        return self.credentials.account_name

    @property
    def base_url(self) -> str:
        if self.credentials.use_path_style_uri:
            return f"{self.host}/{self.account_name}"
        return self.host

    def close(self) -> None:
        if self._owns_transport and hasattr(self.transport, "close"):
            self.transport.close()

    def __enter__(self) -> "BlobClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ============================================================================
    # Request pipeline
    # ============================================================================

    def perform_request(
        self,
        path: str = "/",
        query: Optional[Mapping[str, Any]] = None,
        http_verb: str = "GET",
        headers: Optional[Mapping[str, Any]] = None,
        for_table_storage: bool = False,
        raw_data: Optional[bytes] = None,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
    ) -> HttpResponse:
        """
        Sign and send a request.

        Args:
            path: Resource path relative to the account
            query: Query parameters (unescaped values)
            http_verb: HTTP verb
            headers: Request headers
            for_table_storage: Table-style canonicalization
            raw_data: Request body
            resource_type: Resource kind for delegated signing
            required_permission: Permission for delegated signing

        Returns:
            Raw HttpResponse (status not checked)
        """
        http_verb = http_verb.upper()
        query = {key: str(value) for key, value in (query or {}).items()}
        headers = dict(headers or {})
        headers[PREFIX_STORAGE_HEADER + "version"] = self.api_version

        if raw_data is None and http_verb == "PUT":
            raw_data = b""

        if not path.startswith("/"):
            path = "/" + path
        path = quote(path, safe="/$")

        request_url = self.base_url + path
        if query:
            request_url += "?" + "&".join(
                f"{quote(key, safe='')}={quote(value, safe='')}" for key, value in query.items()
            )

        request_url = self.credentials.sign_request_url(
            request_url, resource_type, required_permission
        )
        signed_headers = self.credentials.sign_request_headers(
            http_verb,
            path,
            query,
            headers,
            for_table_storage,
            resource_type,
            required_permission,
            raw_data,
        )

        logger.debug(f"{http_verb} {request_url.split('?', 1)[0]}")
        response = self.transport.execute(http_verb, request_url, signed_headers, raw_data)
        logger.debug(f"{http_verb} {path} -> {response.status_code}")
        return response

    def _request(self, *args, **kwargs) -> HttpResponse:
        return responses.raise_for_status(self.perform_request(*args, **kwargs))

    @staticmethod
    def _headers(
        lease_id: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        validate_metadata(metadata)
        headers: Dict[str, Any] = {}
        if lease_id is not None:
            headers["x-ms-lease-id"] = lease_id
        headers.update(responses.generate_metadata_headers(metadata))
        headers.update(additional_headers or {})
        return headers

    def _blob_url(self, container_name: str, blob_name: str) -> str:
        return f"{self.base_url}/{create_resource_name(container_name, blob_name)}"

    @staticmethod
    def _validate_container(container_name: str) -> None:
        ContainerNameValidator.validate_raise(container_name)

    def _validate_blob(self, container_name: str, blob_name: str) -> None:
        self._validate_container(container_name)
        validate_blob_name(container_name, blob_name)

    # ============================================================================
    # Container Operations
    # ============================================================================

    def container_exists(self, container_name: str) -> bool:
        self._validate_container(container_name)
        try:
            self.get_container(container_name)
        except ServiceError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    def create_container(
        self, container_name: str, metadata: Optional[Mapping[str, str]] = None
    ) -> BlobContainer:
        """
        Create a container.

        Raises:
            ServiceError: 409 if the container already exists
        """
        self._validate_container(container_name)
        response = self._request(
            container_name,
            {"restype": "container"},
            "PUT",
            self._headers(metadata=metadata),
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.WRITE,
        )
        logger.info(f"Created container: {container_name}")
        return BlobContainer(
            name=container_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            metadata=dict(metadata or {}),
        )

    def create_container_if_not_exists(
        self, container_name: str, metadata: Optional[Mapping[str, str]] = None
    ) -> None:
        if not self.container_exists(container_name):
            self.create_container(container_name, metadata)

    def get_container(self, container_name: str) -> BlobContainer:
        self._validate_container(container_name)
        response = self._request(
            container_name,
            {"restype": "container"},
            "GET",
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.READ,
        )
        return BlobContainer(
            name=container_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            metadata=responses.parse_metadata_headers(response.headers),
        )

    def get_container_metadata(self, container_name: str) -> Dict[str, str]:
        return self.get_container(container_name).metadata

    def set_container_metadata(
        self,
        container_name: str,
        metadata: Optional[Mapping[str, str]] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Set container metadata.

        Overwrites all existing metadata; an empty mapping is a no-op.
        """
        self._validate_container(container_name)
        if not metadata:
            return
        self._request(
            container_name,
            {"restype": "container", "comp": "metadata"},
            "PUT",
            self._headers(metadata=metadata, additional_headers=additional_headers),
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.WRITE,
        )

    def get_container_acl(
        self, container_name: str, signed_identifiers: bool = False
    ) -> Union[Optional[str], List[SignedIdentifier]]:
        """
        Get container ACL.

        Args:
            container_name: Container name
            signed_identifiers: Return stored access policies instead of the access level

        Returns:
            None (private), "blob" or "container"; or the signed identifiers
        """
        self._validate_container(container_name)
        response = self._request(
            container_name,
            {"restype": "container", "comp": "acl"},
            "GET",
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.READ,
        )

        if not signed_identifiers:
            access_type = response.get_header("x-ms-blob-public-access")
            if access_type and access_type.lower() == "true":
                return PublicAccessLevel.CONTAINER.value
            return access_type or None

        return responses.parse_signed_identifiers(response.body)

    def set_container_acl(
        self,
        container_name: str,
        acl: Optional[Union[PublicAccessLevel, str]] = None,
        signed_identifiers: Iterable[SignedIdentifier] = (),
    ) -> None:
        self._validate_container(container_name)
        headers = {}
        if acl:
            headers["x-ms-blob-public-access"] = PublicAccessLevel(acl).value

        signed_identifiers = list(signed_identifiers)
        policies = (
            responses.serialize_signed_identifiers(signed_identifiers)
            if signed_identifiers else None
        )

        self._request(
            container_name,
            {"restype": "container", "comp": "acl"},
            "PUT",
            headers,
            raw_data=policies,
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.WRITE,
        )

    def delete_container(
        self, container_name: str, additional_headers: Optional[Mapping[str, Any]] = None
    ) -> None:
        self._validate_container(container_name)
        self._request(
            container_name,
            {"restype": "container"},
            "DELETE",
            self._headers(additional_headers=additional_headers),
            resource_type=ResourceType.CONTAINER,
            required_permission=Permission.DELETE,
        )
        logger.info(f"Deleted container: {container_name}")

    def list_containers(
        self,
        prefix: Optional[str] = None,
        max_results: Optional[int] = None,
        marker: Optional[str] = None,
        include: Optional[str] = None,
    ) -> List[BlobContainer]:
        """
        List containers, following continuation markers.

        Args:
            prefix: Only containers whose name begins with prefix
            max_results: Cap on the number of containers returned
            marker: Continuation marker to start from
            include: "metadata" to include container metadata

        Returns:
            At most max_results containers in service order
        """
        containers: List[BlobContainer] = []
        while True:
            query = {"comp": "list"}
            if prefix is not None:
                query["prefix"] = prefix
            if max_results is not None:
                query["maxresults"] = max_results
            if marker:
                query["marker"] = marker
            if include is not None:
                query["include"] = include

            response = self._request(
                "",
                query,
                "GET",
                resource_type=ResourceType.CONTAINER,
                required_permission=Permission.LIST,
            )
            page, marker = responses.parse_container_enumeration(response.body)
            containers.extend(page)

            if not marker or (max_results is not None and len(containers) >= max_results):
                break

        if max_results is not None:
            containers = containers[:max_results]
        return containers

    # ============================================================================
    # Blob Operations
    # ============================================================================

    def blob_exists(
        self, container_name: str, blob_name: str, snapshot_id: Optional[str] = None
    ) -> bool:
        self._validate_blob(container_name, blob_name)
        try:
            self.get_blob_instance(container_name, blob_name, snapshot_id)
        except ServiceError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    def upload_blob(
        self,
        container_name: str,
        blob_name: str,
        source: Source,
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
        **content_settings: Optional[str],
    ) -> TransferResult:
        """
        Upload bytes, a local file or a binary file object.

        Single PUT up to the single-request ceiling, blocks above it.
        """
        self._validate_blob(container_name, blob_name)
        validate_metadata(metadata)
        return self.uploader.upload(
            container_name,
            blob_name,
            source,
            metadata=metadata,
            lease_id=lease_id,
            additional_headers=additional_headers,
            **content_settings,
        )

    def put_blob(
        self,
        container_name: str,
        blob_name: str,
        local_file_name: Union[str, os.PathLike],
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
        **content_settings: Optional[str],
    ) -> TransferResult:
        """Upload a local file."""
        require(local_file_name, "Local file name is not specified.")
        if not os.path.isfile(local_file_name):
            raise ValidationError(f"Local file not found: {local_file_name}")
        return self.upload_blob(
            container_name, blob_name, local_file_name, metadata, lease_id,
            additional_headers, **content_settings,
        )

    def put_large_blob(
        self,
        container_name: str,
        blob_name: str,
        local_file_name: Union[str, os.PathLike],
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
        **content_settings: Optional[str],
    ) -> TransferResult:
        """Upload a local file as staged blocks regardless of its size."""
        self._validate_blob(container_name, blob_name)
        require(local_file_name, "Local file name is not specified.")
        if not os.path.isfile(local_file_name):
            raise ValidationError(f"Local file not found: {local_file_name}")
        validate_metadata(metadata)
        return self.uploader.upload(
            container_name,
            blob_name,
            local_file_name,
            metadata=metadata,
            lease_id=lease_id,
            additional_headers=additional_headers,
            force_chunked=True,
            **content_settings,
        )

    def put_blob_data(
        self,
        container_name: str,
        blob_name: str,
        data: bytes = b"",
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_language: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> TransferResult:
        """
        Store data as a block blob with a single PUT.

        Returns:
            TransferResult built from the response
        """
        self._validate_blob(container_name, blob_name)
        if isinstance(data, str):
            data = data.encode("utf-8")

        headers = self._headers(lease_id, metadata, additional_headers)
        for name, value in (
            ("Content-Type", content_type),
            ("Content-Encoding", content_encoding),
            ("Content-Language", content_language),
            ("Cache-Control", cache_control),
        ):
            if value is not None:
                headers[name] = value
        headers[PREFIX_STORAGE_HEADER + "blob-type"] = BlobType.BLOCK_BLOB.value

        response = self._request(
            create_resource_name(container_name, blob_name),
            {},
            "PUT",
            headers,
            raw_data=bytes(data),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )

        return TransferResult(
            container=container_name,
            name=blob_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            url=self._blob_url(container_name, blob_name),
            size=len(data),
            content_type=content_type,
            content_encoding=content_encoding,
            content_language=content_language,
            cache_control=cache_control,
            metadata=dict(metadata or {}),
        )

    def put_block(
        self,
        container_name: str,
        blob_name: str,
        identifier: str,
        contents: bytes,
        lease_id: Optional[str] = None,
    ) -> None:
        """
        Stage one block.

        Args:
            identifier: Block identifier (at most 64 characters, sent base64-encoded)
            contents: Block contents (at most max_block_size bytes)
        """
        self._validate_blob(container_name, blob_name)
        require(identifier, "Block identifier is not specified.")
        if len(identifier.encode("utf-8")) > BLOCK_ID_WIDTH:
            raise ValidationError("Block identifier must be at most 64 bytes.", "InvalidBlockId")
        if len(contents) > self.uploader.max_block_size:
            raise ValidationError("Block size is too big.", "RequestBodyTooLarge")

        block_id = base64.b64encode(identifier.encode("utf-8")).decode("ascii")
        self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "block", "blockid": block_id},
            "PUT",
            self._headers(lease_id),
            raw_data=bytes(contents),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )
        logger.debug(f"Staged block {identifier[-8:]} ({len(contents)} bytes) for {container_name}/{blob_name}")

    def put_block_list(
        self,
        container_name: str,
        blob_name: str,
        block_list: Iterable[str],
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_language: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> TransferResult:
        """
        Commit staged blocks.

        The order of block_list is the byte order of the resulting blob. Blocks
        left out of the list are discarded by the service.

        Returns:
            TransferResult; size is 0 because the commit response carries no length
        """
        self._validate_blob(container_name, blob_name)
        block_list = list(block_list)
        require(block_list, "Block list does not contain any elements.")
        if len(set(block_list)) != len(block_list):
            raise ValidationError("Block list contains duplicate identifiers.", "InvalidBlockList")

        headers = self._headers(lease_id, metadata, additional_headers)
        for name, value in (
            ("x-ms-blob-content-type", content_type),
            ("x-ms-blob-content-encoding", content_encoding),
            ("x-ms-blob-content-language", content_language),
            ("x-ms-blob-cache-control", cache_control),
        ):
            if value is not None:
                headers[name] = value

        response = self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "blocklist"},
            "PUT",
            headers,
            raw_data=responses.serialize_block_list(block_list),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )

        return TransferResult(
            container=container_name,
            name=blob_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            url=self._blob_url(container_name, blob_name),
            size=0,
            content_type=content_type,
            content_encoding=content_encoding,
            content_language=content_language,
            cache_control=cache_control,
            metadata=dict(metadata or {}),
        )

    def get_block_list(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
        list_type: Union[BlockListType, str] = BlockListType.ALL,
    ) -> BlockListing:
        self._validate_blob(container_name, blob_name)
        try:
            list_type = BlockListType(list_type)
        except ValueError as exc:
            raise ValidationError("Invalid type of block list to retrieve.") from exc

        query = {"comp": "blocklist", "blocklisttype": list_type.value}
        if snapshot_id is not None:
            query["snapshot"] = snapshot_id

        response = self._request(
            create_resource_name(container_name, blob_name),
            query,
            "GET",
            self._headers(lease_id),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.READ,
        )
        return responses.parse_block_listing(response.body)

    # ============================================================================
    # Page Blob Operations
    # ============================================================================

    def create_page_blob(
        self,
        container_name: str,
        blob_name: str,
        size: int,
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> TransferResult:
        self._validate_blob(container_name, blob_name)
        if size <= 0 or size % PAGE_SIZE != 0:
            raise ValidationError("Page blob size must be a positive multiple of 512.", "OutOfRangeInput")

        headers = self._headers(lease_id, metadata, additional_headers)
        headers[PREFIX_STORAGE_HEADER + "blob-type"] = BlobType.PAGE_BLOB.value
        headers[PREFIX_STORAGE_HEADER + "blob-content-length"] = size

        response = self._request(
            create_resource_name(container_name, blob_name),
            {},
            "PUT",
            headers,
            raw_data=b"",
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )
        return TransferResult(
            container=container_name,
            name=blob_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            url=self._blob_url(container_name, blob_name),
            size=size,
            metadata=dict(metadata or {}),
        )

    def put_page(
        self,
        container_name: str,
        blob_name: str,
        start_byte_offset: int,
        end_byte_offset: int,
        contents: bytes = b"",
        write_method: Union[PageWriteMethod, str] = PageWriteMethod.UPDATE,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Write or clear a page-aligned range of a page blob.

        Raises:
            ValidationError: Misaligned range or oversized contents, nothing sent
        """
        self._validate_blob(container_name, blob_name)
        validate_page_range(start_byte_offset, end_byte_offset)
        write_method = PageWriteMethod(write_method)

        if len(contents) >= self.uploader.max_block_size:
            raise ValidationError(
                f"Page contents must be smaller than {self.uploader.max_block_size} bytes.",
                "RequestBodyTooLarge",
            )
        if write_method == PageWriteMethod.UPDATE and len(contents) != end_byte_offset - start_byte_offset + 1:
            raise ValidationError("Page contents must match the byte range.", "InvalidPageRange")
        if write_method == PageWriteMethod.CLEAR:
            contents = b""

        headers = self._headers(lease_id, additional_headers=additional_headers)
        headers["Range"] = f"bytes={start_byte_offset}-{end_byte_offset}"
        headers[PREFIX_STORAGE_HEADER + "page-write"] = write_method.value

        self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "page"},
            "PUT",
            headers,
            raw_data=bytes(contents),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )

    def get_page_regions(
        self,
        container_name: str,
        blob_name: str,
        start_byte_offset: int = 0,
        end_byte_offset: int = 0,
        lease_id: Optional[str] = None,
    ) -> List[PageRegion]:
        """List valid page ranges; an end offset of 0 means the whole blob."""
        self._validate_blob(container_name, blob_name)
        validate_page_range(start_byte_offset, end_byte_offset, require_end=False)

        headers = self._headers(lease_id)
        if end_byte_offset > 0:
            headers["Range"] = f"bytes={start_byte_offset}-{end_byte_offset}"

        response = self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "pagelist"},
            "GET",
            headers,
            resource_type=ResourceType.BLOB,
            required_permission=Permission.READ,
        )
        return responses.parse_page_regions(response.body)

    # ============================================================================
    # Read, Copy, Metadata
    # ============================================================================

    def copy_blob(
        self,
        source_container_name: str,
        source_blob_name: str,
        destination_container_name: str,
        destination_blob_name: str,
        metadata: Optional[Mapping[str, str]] = None,
        source_snapshot_id: Optional[str] = None,
        destination_lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> BlobInstance:
        self._validate_blob(source_container_name, source_blob_name)
        self._validate_blob(destination_container_name, destination_blob_name)

        headers = self._headers(destination_lease_id, metadata, additional_headers)
        source = create_resource_name(source_container_name, source_blob_name)
        if source_snapshot_id is not None:
            source += f"?snapshot={source_snapshot_id}"
        headers[PREFIX_STORAGE_HEADER + "copy-source"] = f"/{self.account_name}/{source}"

        response = self._request(
            create_resource_name(destination_container_name, destination_blob_name),
            {},
            "PUT",
            headers,
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )
        logger.info(
            f"Copied {source_container_name}/{source_blob_name} to "
            f"{destination_container_name}/{destination_blob_name}"
        )
        return BlobInstance(
            container=destination_container_name,
            name=destination_blob_name,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            url=self._blob_url(destination_container_name, destination_blob_name),
            metadata=dict(metadata or {}),
        )

    def get_blob_data(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        self._validate_blob(container_name, blob_name)
        query = {}
        if snapshot_id is not None:
            query["snapshot"] = snapshot_id

        response = self._request(
            create_resource_name(container_name, blob_name),
            query,
            "GET",
            self._headers(lease_id, additional_headers=additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.READ,
        )
        return response.body

    def get_blob(
        self,
        container_name: str,
        blob_name: str,
        local_file_name: Union[str, os.PathLike],
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Download a blob into a local file."""
        require(local_file_name, "Local file name is not specified.")
        data = self.get_blob_data(container_name, blob_name, snapshot_id, lease_id, additional_headers)
        with open(local_file_name, "wb") as handle:
            handle.write(data)

    def get_blob_instance(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> BlobInstance:
        self._validate_blob(container_name, blob_name)
        query = {}
        if snapshot_id is not None:
            query["snapshot"] = snapshot_id

        response = self._request(
            create_resource_name(container_name, blob_name),
            query,
            "HEAD",
            self._headers(lease_id, additional_headers=additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.READ,
        )

        return BlobInstance(
            container=container_name,
            name=blob_name,
            snapshot_id=snapshot_id,
            etag=response.get_header("Etag"),
            last_modified=response.get_header("Last-Modified"),
            url=self._blob_url(container_name, blob_name),
            size=int(response.get_header("Content-Length") or 0),
            content_type=response.get_header("Content-Type"),
            content_encoding=response.get_header("Content-Encoding"),
            content_language=response.get_header("Content-Language"),
            cache_control=response.get_header("Cache-Control"),
            blob_type=response.get_header("x-ms-blob-type"),
            lease_status=response.get_header("x-ms-lease-status"),
            metadata=responses.parse_metadata_headers(response.headers),
        )

    get_blob_properties = get_blob_instance

    def get_blob_url(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
    ) -> str:
        return self.get_blob_instance(container_name, blob_name, snapshot_id, lease_id).url

    def get_blob_metadata(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
    ) -> Dict[str, str]:
        return self.get_blob_instance(container_name, blob_name, snapshot_id, lease_id).metadata

    def set_blob_metadata(
        self,
        container_name: str,
        blob_name: str,
        metadata: Optional[Mapping[str, str]] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._validate_blob(container_name, blob_name)
        if not metadata:
            return
        self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "metadata"},
            "PUT",
            self._headers(lease_id, metadata, additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )

    def set_blob_properties(
        self,
        container_name: str,
        blob_name: str,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Set system properties, e.g. {"x-ms-blob-content-type": "image/png"}."""
        self._validate_blob(container_name, blob_name)
        require(additional_headers, "No additional headers are specified.")
        self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "properties"},
            "PUT",
            self._headers(lease_id, additional_headers=additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )

    def delete_blob(
        self,
        container_name: str,
        blob_name: str,
        snapshot_id: Optional[str] = None,
        lease_id: Optional[str] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._validate_blob(container_name, blob_name)
        query = {}
        if snapshot_id is not None:
            query["snapshot"] = snapshot_id

        self._request(
            create_resource_name(container_name, blob_name),
            query,
            "DELETE",
            self._headers(lease_id, additional_headers=additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.DELETE,
        )
        logger.info(f"Deleted blob: {container_name}/{blob_name}")

    def snapshot_blob(
        self,
        container_name: str,
        blob_name: str,
        metadata: Optional[Mapping[str, str]] = None,
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """
        Create a read-only snapshot.

        Returns:
            Snapshot identifier
        """
        self._validate_blob(container_name, blob_name)
        response = self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "snapshot"},
            "PUT",
            self._headers(metadata=metadata, additional_headers=additional_headers),
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )
        return response.get_header("x-ms-snapshot")

    def lease_blob(
        self,
        container_name: str,
        blob_name: str,
        lease_action: Union[LeaseAction, str] = LeaseAction.ACQUIRE,
        lease_id: Optional[str] = None,
        lease_duration: Optional[int] = None,
    ) -> LeaseInstance:
        """
        Acquire, renew, release or break a blob lease.

        Args:
            lease_action: One of LeaseAction
            lease_id: Current lease (required for renew and release)
            lease_duration: Lease duration in seconds (-1 for infinite), acquire only
        """
        self._validate_blob(container_name, blob_name)
        try:
            lease_action = LeaseAction(str(getattr(lease_action, "value", lease_action)).lower())
        except ValueError as exc:
            raise ValidationError(f"Invalid lease action: {lease_action}") from exc
        if lease_action in (LeaseAction.RENEW, LeaseAction.RELEASE):
            require(lease_id, "Lease identifier is not specified.")

        headers = self._headers(lease_id)
        headers["x-ms-lease-action"] = lease_action.value
        if lease_duration is not None and lease_action == LeaseAction.ACQUIRE:
            headers["x-ms-lease-duration"] = lease_duration

        response = self._request(
            create_resource_name(container_name, blob_name),
            {"comp": "lease"},
            "PUT",
            headers,
            resource_type=ResourceType.BLOB,
            required_permission=Permission.WRITE,
        )
        return LeaseInstance(
            container=container_name,
            name=blob_name,
            lease_id=response.get_header("x-ms-lease-id"),
            lease_time=response.get_header("x-ms-lease-time"),
        )

    def list_blobs(
        self,
        container_name: str,
        prefix: Optional[str] = None,
        delimiter: Optional[str] = None,
        max_results: Optional[int] = None,
        marker: Optional[str] = None,
        include: Optional[str] = None,
    ) -> List[BlobInstance]:
        """
        List blobs, following continuation markers.

        With a delimiter, virtual directories come back as BlobInstance
        entries with is_prefix set, in the position the service reported them.

        Returns:
            At most max_results entries in service order
        """
        self._validate_container(container_name)
        blobs: List[BlobInstance] = []
        while True:
            query = {"restype": "container", "comp": "list"}
            if prefix:
                query["prefix"] = prefix
            if delimiter:
                query["delimiter"] = delimiter
            if max_results is not None:
                query["maxresults"] = max_results
            if marker:
                query["marker"] = marker
            if include is not None:
                query["include"] = include

            response = self._request(
                container_name,
                query,
                "GET",
                resource_type=ResourceType.CONTAINER,
                required_permission=Permission.LIST,
            )
            page, marker = responses.parse_blob_enumeration(response.body, container_name)
            blobs.extend(page)

            if not marker or (max_results is not None and len(blobs) >= max_results):
                break

        if max_results is not None:
            blobs = blobs[:max_results]
        return blobs

    # ============================================================================
    # Shared Access Signatures
    # ============================================================================

    def generate_shared_access_url(
        self,
        container_name: str,
        blob_name: str = "",
        resource: Union[ResourceType, str] = ResourceType.BLOB,
        permissions: str = "r",
        start: str = "",
        expiry: str = "",
        identifier: str = "",
    ) -> str:
        """
        Build a pre-signed URL granting delegated access.

        Args:
            resource: "b" for a blob, "c" for the whole container
            permissions: Any of "rwdl"
            start: ISO 8601 start time (optional)
            expiry: ISO 8601 expiry time
            identifier: Stored access policy identifier (optional)
        """
        self._validate_container(container_name)
        require(expiry or identifier, "Expiry time is not specified.")

        signer = SharedAccessSignatureCredentials(
            self.account_name,
            base64.b64encode(self.credentials.account_key).decode("ascii"),
        )
        resource_name = create_resource_name(container_name, blob_name)
        query_string = signer.create_signed_query_string(
            resource_name, "", resource, permissions, start, expiry, identifier
        )
        return f"{self.base_url}/{resource_name}?{query_string}"
