"""
Credential strategies for blob storage requests.

Two interchangeable strategies sign outgoing requests:
- SharedKeyCredentials: account-key signing through the Authorization header
- SharedAccessSignatureCredentials: pre-signed, time-boxed grants appended to the URL

Reference: https://docs.microsoft.com/en-us/rest/api/storageservices/delegate-access-with-shared-access-signature

Author: ZureBlob Team
Date: 2026-10-19
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import quote_plus, urlparse

from zureblob.auth.canonicalizer import (
    DATE_HEADER,
    build_canonical_string,
    normalize_path,
    render_header_value,
)
from zureblob.auth.signing import compute_signature, decode_account_key
from zureblob.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Development storage account and key
DEVSTORE_ACCOUNT = "devstoreaccount1"
DEVSTORE_KEY = "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=="


class ResourceType(str, Enum):
    """Signed resource kinds."""
    UNKNOWN = "unknown"
    CONTAINER = "c"
    BLOB = "b"


class Permission(str, Enum):
    """Signed permission flags."""
    READ = "r"
    WRITE = "w"
    DELETE = "d"
    LIST = "l"


def _token(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class Credentials(ABC):
    """
    Immutable account credentials and the request-signing contract.

    Every request is routed through sign_request_url() and then
    sign_request_headers() before it is handed to the transport.
    """

    def __init__(
        self,
        account_name: str = DEVSTORE_ACCOUNT,
        account_key: str = DEVSTORE_KEY,
        use_path_style_uri: bool = False,
    ):
        """
        Args:
            account_name: Storage account name
            account_key: Base64-encoded account key
            use_path_style_uri: Account name is part of the URL path

        Raises:
            ValidationError: If the account key is not valid base64
        """
        if not account_name:
            raise ValidationError("Account name is not specified", "InvalidAccountName")
        self._account_name = account_name
        self._account_key = decode_account_key(account_key)
        self._use_path_style_uri = use_path_style_uri

    @property
    def account_name(self) -> str:
        return self._account_name

    @property
    def account_key(self) -> bytes:
        return self._account_key

    @property
    def use_path_style_uri(self) -> bool:
        return self._use_path_style_uri

    @abstractmethod
    def sign_request_url(
        self,
        request_url: str,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
    ) -> str:
        """Return the URL to send, signed if the strategy signs URLs."""

    @abstractmethod
    def sign_request_headers(
        self,
        http_verb: str = "GET",
        path: str = "/",
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Any]] = None,
        for_table_storage: bool = False,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
        raw_data: Optional[bytes] = None,
    ) -> Dict[str, str]:
        """Return the headers to send, signed if the strategy signs headers."""


class SharedKeyCredentials(Credentials):
    """Full-access signing with the account key (SharedKey scheme)."""

    def __init__(
        self,
        account_name: str = DEVSTORE_ACCOUNT,
        account_key: str = DEVSTORE_KEY,
        use_path_style_uri: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(account_name, account_key, use_path_style_uri)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def sign_request_url(
        self,
        request_url: str,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
    ) -> str:
        return request_url

    def sign_request_headers(
        self,
        http_verb: str = "GET",
        path: str = "/",
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Any]] = None,
        for_table_storage: bool = False,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
        raw_data: Optional[bytes] = None,
    ) -> Dict[str, str]:
        headers = dict(headers or {})

        canonical = build_canonical_string(
            verb=http_verb,
            path=path,
            query=query,
            headers=headers,
            account_name=self._account_name,
            use_path_style_uri=self._use_path_style_uri,
            for_table_storage=for_table_storage,
            raw_data=raw_data,
            now=self._clock(),
        )
        signature = compute_signature(canonical.string_to_sign, self._account_key)

        signed = {name: render_header_value(value) for name, value in headers.items()}
        if canonical.date_generated:
            signed[DATE_HEADER] = canonical.request_date
        signed["Authorization"] = f"SharedKey {self._account_name}:{signature}"

        logger.debug(f"Signed {http_verb.upper()} {path} for account {self._account_name}")
        return signed


class SharedAccessSignatureCredentials(Credentials):
    """
    Delegated signing with pre-signed Shared Access Signature URLs.

    The permission set is searched in order, so fine-grained grants (single
    blobs) should precede coarse-grained ones (whole containers).
    """

    def __init__(
        self,
        account_name: str = DEVSTORE_ACCOUNT,
        account_key: str = DEVSTORE_KEY,
        use_path_style_uri: bool = False,
        permission_set: Iterable[str] = (),
    ):
        super().__init__(account_name, account_key, use_path_style_uri)
        permission_set = tuple(permission_set)
        for url in permission_set:
            if self._account_name not in url:
                raise ValidationError(
                    "The permission set can only contain URLs for the account name "
                    "specified in the credentials.",
                    "InvalidPermissionSet",
                )
        self._permission_set: Tuple[str, ...] = permission_set

    @property
    def permission_set(self) -> Tuple[str, ...]:
        return self._permission_set

    def create_signature(
        self,
        path: str = "/",
        resource: str = "b",
        permissions: str = "r",
        start: str = "",
        expiry: str = "",
        identifier: str = "",
    ) -> str:
        """
        Create a Shared Access Signature.

        String to sign:
            signedpermissions\n
            signedstart\n
            signedexpiry\n
            canonicalizedresource\n
            signedidentifier

        Args:
            path: Resource path ("container" or "container/blob")
            resource: Signed resource - container (c) or blob (b)
            permissions: Signed permissions - r, w, d, l
            start: Time the signature becomes valid (may be empty)
            expiry: Time the signature becomes invalid
            identifier: Signed identifier of a stored access policy (may be empty)

        Returns:
            Base64-encoded signature
        """
        canonicalized_resource = "/" + self._account_name + normalize_path(
            path, self._use_path_style_uri
        )

        string_to_sign = "\n".join([
            permissions,
            start,
            expiry,
            canonicalized_resource,
            identifier,
        ])
        return compute_signature(string_to_sign, self._account_key)

    def create_signed_query_string(
        self,
        path: str = "/",
        query_string: str = "",
        resource: str = "b",
        permissions: str = "r",
        start: str = "",
        expiry: str = "",
        identifier: str = "",
    ) -> str:
        """
        Create a signed query string.

        Parameters are emitted in the order st, se, sr, sp, si, sig; st and si
        are skipped entirely when empty.

        Returns:
            query_string with the signature parameters appended
        """
        resource = _token(resource)
        permissions = _token(permissions)
        signature = self.create_signature(
            path, resource, permissions, start, expiry, identifier
        )

        parts = []
        if start != "":
            parts.append("st=" + quote_plus(start))
        parts.append("se=" + quote_plus(expiry))
        parts.append("sr=" + resource)
        parts.append("sp=" + permissions)
        if identifier != "":
            parts.append("si=" + quote_plus(identifier))
        parts.append("sig=" + quote_plus(signature))

        if query_string != "":
            query_string += "&"
        return query_string + "&".join(parts)

    def permission_matches_request(
        self,
        permission_url: str,
        request_url: str,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
    ) -> bool:
        """
        Check whether a pre-signed URL grants access to a request.

        A request for a blob is also satisfied by a container grant.
        """
        required_resource_type = _token(resource_type)
        if required_resource_type == ResourceType.BLOB.value:
            required_resource_type += ResourceType.CONTAINER.value
        required = _token(required_permission)

        parsed_permission = urlparse(permission_url)
        parsed_request = urlparse(request_url)

        matches = True
        for part in parsed_permission.query.split("&"):
            prop, _, value = part.partition("=")
            if prop == "sr":
                matches = matches and bool(set(value) & set(required_resource_type))
            if prop == "sp":
                matches = matches and bool(set(value) & set(required))

        return matches and parsed_request.path.startswith(parsed_permission.path)

    def sign_request_url(
        self,
        request_url: str,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
    ) -> str:
        for permitted_url in self._permission_set:
            if self.permission_matches_request(
                permitted_url, request_url, resource_type, required_permission
            ):
                separator = "&" if "?" in request_url else "?"
                return request_url + separator + urlparse(permitted_url).query

        logger.debug(f"No shared access grant matches {urlparse(request_url).path}")
        return request_url

    def sign_request_headers(
        self,
        http_verb: str = "GET",
        path: str = "/",
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Any]] = None,
        for_table_storage: bool = False,
        resource_type: ResourceType = ResourceType.UNKNOWN,
        required_permission: Permission = Permission.READ,
        raw_data: Optional[bytes] = None,
    ) -> Dict[str, str]:
        return {name: render_header_value(value) for name, value in (headers or {}).items()}
