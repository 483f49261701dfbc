"""
Response/entity mapping for blob storage.

Turns raw status/headers/XML into typed records, maps failure statuses to
ServiceError, and serializes the XML bodies the client sends.
"""

import base64
import binascii
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from xml.etree import ElementTree as ET

from zureblob.auth.canonicalizer import PREFIX_METADATA
from zureblob.exceptions import ServiceError, ValidationError
from zureblob.http.transport import HttpResponse

from .models import (
    BlobContainer,
    BlobInstance,
    BlockInfo,
    BlockListing,
    PageRegion,
    SignedIdentifier,
)

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

_BOM = b"\xef\xbb\xbf"


def parse_xml(body: Optional[bytes]) -> Optional[ET.Element]:
    """
    Parse an XML response body.

    Returns:
        Root element, or None when the body is empty or not XML
    """
    if not body:
        return None
    if isinstance(body, str):
        body = body.encode("utf-8")
    try:
        return ET.fromstring(body.lstrip(_BOM))
    except ET.ParseError:
        return None


def _text(element: Optional[ET.Element], tag: str, default: str = "") -> str:
    if element is None:
        return default
    child = element.find(tag)
    if child is None or child.text is None:
        return default
    return child.text


def _int(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def raise_for_status(
    response: HttpResponse,
    alternative_error: str = "Resource could not be accessed.",
) -> HttpResponse:
    """
    Raise ServiceError for failure statuses.

    The error document looks like:
        <Error>
          <Code>AuthenticationFailed</Code>
          <Message>...</Message>
          <AuthenticationErrorDetail>...</AuthenticationErrorDetail>
        </Error>

    Returns:
        The response unchanged when it is successful
    """
    if response.is_successful:
        return response

    root = parse_xml(response.body)
    message = _text(root, "Message")
    if message:
        error = ServiceError(
            status_code=response.status_code,
            message=message,
            error_code=_text(root, "Code") or None,
            authentication_detail=_text(root, "AuthenticationErrorDetail") or None,
        )
    else:
        error = ServiceError(
            status_code=response.status_code,
            message=alternative_error,
            error_code=response.get_header("x-ms-error-code"),
        )

    logger.warning(f"Service returned {response.status_code}: {error.message}")
    raise error


def parse_metadata_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Extract x-ms-meta-* headers as a name -> value mapping."""
    metadata = {}
    for key, value in headers.items():
        lower_key = key.lower()
        if lower_key.startswith(PREFIX_METADATA):
            metadata[lower_key[len(PREFIX_METADATA):]] = value
    return metadata


def generate_metadata_headers(metadata: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Convert metadata to x-ms-meta-* headers."""
    return {PREFIX_METADATA + key.lower(): str(value) for key, value in (metadata or {}).items()}


def parse_metadata_element(element: Optional[ET.Element]) -> Dict[str, str]:
    if element is None:
        return {}
    metadata_element = element.find("Metadata")
    if metadata_element is None:
        return {}
    return {child.tag: child.text or "" for child in metadata_element}


def _properties(element: ET.Element) -> ET.Element:
    # Older listings carry the properties directly on the entry
    properties = element.find("Properties")
    return properties if properties is not None else element


def parse_next_marker(root: Optional[ET.Element]) -> str:
    return _text(root, "NextMarker")


def parse_container_enumeration(body: bytes) -> Tuple[List[BlobContainer], str]:
    """
    Parse a List Containers response.

    Returns:
        Tuple of (containers, next_marker)
    """
    root = parse_xml(body)
    containers: List[BlobContainer] = []
    if root is None:
        return containers, ""

    for element in root.findall("./Containers/Container"):
        properties = _properties(element)
        containers.append(BlobContainer(
            name=_text(element, "Name"),
            etag=_text(properties, "Etag") or None,
            last_modified=(
                _text(properties, "Last-Modified") or _text(properties, "LastModified") or None
            ),
            metadata=parse_metadata_element(element),
        ))

    return containers, parse_next_marker(root)


def parse_blob_enumeration(body: bytes, container_name: str) -> Tuple[List[BlobInstance], str]:
    """
    Parse a List Blobs response.

    Blob entries and BlobPrefix placeholders are merged into a single
    sequence in the order the service reported them.

    Returns:
        Tuple of (blobs, next_marker)
    """
    root = parse_xml(body)
    blobs: List[BlobInstance] = []
    if root is None:
        return blobs, ""

    blobs_element = root.find("Blobs")
    if blobs_element is not None:
        for element in blobs_element:
            if element.tag == "Blob":
                properties = _properties(element)
                blobs.append(BlobInstance(
                    container=container_name,
                    name=_text(element, "Name"),
                    snapshot_id=_text(element, "Snapshot") or None,
                    etag=_text(properties, "Etag") or None,
                    last_modified=_text(properties, "Last-Modified") or None,
                    url=_text(element, "Url"),
                    size=_int(_text(properties, "Content-Length")),
                    content_type=_text(properties, "Content-Type") or None,
                    content_encoding=_text(properties, "Content-Encoding") or None,
                    content_language=_text(properties, "Content-Language") or None,
                    cache_control=_text(properties, "Cache-Control") or None,
                    blob_type=_text(properties, "BlobType") or None,
                    lease_status=_text(properties, "LeaseStatus") or None,
                    is_prefix=False,
                    metadata=parse_metadata_element(element),
                ))
            elif element.tag == "BlobPrefix":
                blobs.append(BlobInstance(
                    container=container_name,
                    name=_text(element, "Name"),
                    is_prefix=True,
                    metadata=parse_metadata_element(element),
                ))

    return blobs, parse_next_marker(root)


def serialize_block_list(block_ids: Iterable[str]) -> bytes:
    """
    Serialize a block list commit body.

    Every identifier is base64-encoded inside a <Latest> element, in caller order.
    """
    lines = [XML_DECLARATION, "<BlockList>"]
    lines.extend(
        "  <Latest>" + base64.b64encode(block_id.encode("utf-8")).decode("ascii") + "</Latest>"
        for block_id in block_ids
    )
    lines.append("</BlockList>")
    return "\n".join(lines).encode("utf-8")


def _decode_block_id(encoded: str) -> str:
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid base64 block ID: {encoded}", "InvalidBlockId") from exc


def parse_block_list(body: bytes) -> List[str]:
    """Inverse of serialize_block_list: decoded block ids in document order."""
    root = parse_xml(body)
    if root is None:
        raise ValidationError("Block list body is not valid XML", "InvalidXmlDocument")
    return [
        _decode_block_id(element.text or "")
        for element in root
        if element.tag in ("Latest", "Committed", "Uncommitted")
    ]


def _block_name(encoded: str) -> str:
    # Names staged by other tools are not always base64 of UTF-8 text
    try:
        return _decode_block_id(encoded)
    except ValidationError:
        return encoded


def parse_block_listing(body: bytes) -> BlockListing:
    """Parse a Get Block List response; block names are base64-decoded when possible."""
    root = parse_xml(body)
    listing = BlockListing()
    if root is None:
        return listing

    for section, target in (
        ("CommittedBlocks", listing.committed_blocks),
        ("UncommittedBlocks", listing.uncommitted_blocks),
    ):
        for element in root.findall(f"./{section}/Block"):
            target.append(BlockInfo(
                name=_block_name(_text(element, "Name")),
                size=_int(_text(element, "Size")),
            ))
    return listing


def parse_page_regions(body: bytes) -> List[PageRegion]:
    root = parse_xml(body)
    if root is None:
        return []
    return [
        PageRegion(start=_int(_text(element, "Start")), end=_int(_text(element, "End")))
        for element in root.findall("PageRange")
    ]


def serialize_signed_identifiers(identifiers: Iterable[SignedIdentifier]) -> bytes:
    root = ET.Element("SignedIdentifiers")
    for identifier in identifiers:
        entry = ET.SubElement(root, "SignedIdentifier")
        ET.SubElement(entry, "Id").text = identifier.id
        policy = ET.SubElement(entry, "AccessPolicy")
        if identifier.start:
            ET.SubElement(policy, "Start").text = identifier.start
        if identifier.expiry:
            ET.SubElement(policy, "Expiry").text = identifier.expiry
        if identifier.permissions:
            ET.SubElement(policy, "Permission").text = identifier.permissions
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def parse_signed_identifiers(body: bytes) -> List[SignedIdentifier]:
    root = parse_xml(body)
    if root is None:
        return []
    identifiers = []
    for element in root.findall("SignedIdentifier"):
        policy = element.find("AccessPolicy")
        identifiers.append(SignedIdentifier(
            id=_text(element, "Id"),
            start=_text(policy, "Start"),
            expiry=_text(policy, "Expiry"),
            permissions=_text(policy, "Permission"),
        ))
    return identifiers
