"""
Shared fixtures: an in-memory blob service speaking the REST dialect the
client uses, plugged in through the Transport protocol.
"""

import itertools
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qsl, unquote, urlparse
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape

import pytest

from zureblob.blob.client import BlobClient
from zureblob.http.transport import HttpResponse

HOST = "https://devstoreaccount1.blob.core.windows.net"
LAST_MODIFIED = "Wed, 01 Jan 2020 00:00:00 GMT"
XML_HEADER = '<?xml version="1.0" encoding="utf-8"?>'


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[bytes]

    @property
    def path(self) -> str:
        return unquote(urlparse(self.url).path)

    @property
    def query(self) -> Dict[str, str]:
        return dict(parse_qsl(urlparse(self.url).query, keep_blank_values=True))

    def header(self, name: str) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None


@dataclass
class StoredBlob:
    data: bytes = b""
    blob_type: str = "BlockBlob"
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    committed: Dict[str, bytes] = field(default_factory=dict)
    pages: Dict[int, bytes] = field(default_factory=dict)
    etag: str = ""
    lease_id: Optional[str] = None


@dataclass
class StoredContainer:
    metadata: Dict[str, str] = field(default_factory=dict)
    blobs: Dict[str, StoredBlob] = field(default_factory=dict)
    public_access: Optional[str] = None
    identifiers: bytes = b""
    etag: str = ""


def _error(status: int, code: str, message: str) -> HttpResponse:
    body = f"{XML_HEADER}<Error><Code>{code}</Code><Message>{message}</Message></Error>"
    return HttpResponse(status, {"x-ms-error-code": code}, body.encode("utf-8"))


def _metadata_from(headers: Dict[str, str]) -> Dict[str, str]:
    return {
        key.lower()[len("x-ms-meta-"):]: value
        for key, value in headers.items()
        if key.lower().startswith("x-ms-meta-")
    }


class FakeBlobService:
    """
    In-memory blob service.

    Args:
        page_size: Entries per listing page before a NextMarker is returned
        fail: Optional hook (request) -> status; a non-None status fails the request
    """

    def __init__(self, page_size: int = 1000, fail: Optional[Callable[[RecordedRequest], Optional[int]]] = None):
        self.containers: Dict[str, StoredContainer] = {}
        self.staged: Dict[tuple, Dict[str, bytes]] = {}
        self.requests: List[RecordedRequest] = []
        self.page_size = page_size
        self.fail = fail
        self._etags = itertools.count(1)
        self._leases = itertools.count(1)

    # -- helpers used by tests --------------------------------------------

    def requests_with(self, method: str, comp: Optional[str] = None) -> List[RecordedRequest]:
        return [
            request for request in self.requests
            if request.method == method and request.query.get("comp") == comp
        ]

    def blob(self, container: str, name: str) -> StoredBlob:
        return self.containers[container].blobs[name]

    # -- transport ----------------------------------------------------------

    def execute(self, method, url, headers, body=None) -> HttpResponse:
        request = RecordedRequest(method, url, dict(headers), body)
        self.requests.append(request)

        if self.fail is not None:
            status = self.fail(request)
            if status is not None:
                return _error(status, "InternalError", "Injected failure.")

        parts = request.path.lstrip("/").split("/", 1)
        container = parts[0]
        blob = parts[1] if len(parts) > 1 else ""
        query = request.query

        if not container:
            return self._list_containers(query)
        if not blob:
            return self._container(method, container, query, request)
        if container not in self.containers:
            return _error(404, "ContainerNotFound", "The specified container does not exist.")
        return self._blob(method, container, blob, query, request)

    def _etag(self) -> str:
        return f'"0x{next(self._etags):X}"'

    def _ok(self, status: int = 200, headers: Optional[Dict[str, str]] = None, body: bytes = b"", etag: str = ""):
        response_headers = {"Last-Modified": LAST_MODIFIED}
        if etag:
            response_headers["Etag"] = etag
        response_headers.update(headers or {})
        return HttpResponse(status, response_headers, body)

    def _page(self, names: List[str], query: Dict[str, str]):
        names = sorted(name for name in names if name.startswith(query.get("prefix", "")))
        marker = query.get("marker")
        if marker:
            names = [name for name in names if name >= marker]
        limit = min(int(query.get("maxresults", self.page_size)), self.page_size)
        page, rest = names[:limit], names[limit:]
        return page, (rest[0] if rest else "")

    # -- containers -----------------------------------------------------------

    def _list_containers(self, query):
        page, next_marker = self._page(list(self.containers), query)
        entries = "".join(
            f"<Container><Name>{name}</Name><Properties><Last-Modified>{LAST_MODIFIED}</Last-Modified>"
            f"<Etag>{self.containers[name].etag}</Etag></Properties></Container>"
            for name in page
        )
        body = (
            f'{XML_HEADER}<EnumerationResults AccountName="{HOST}/">'
            f"<Containers>{entries}</Containers><NextMarker>{next_marker}</NextMarker></EnumerationResults>"
        )
        return self._ok(body=body.encode("utf-8"))

    def _container(self, method, name, query, request):
        comp = query.get("comp")
        stored = self.containers.get(name)

        if method == "PUT" and comp is None:
            if stored is not None:
                return _error(409, "ContainerAlreadyExists", "The specified container already exists.")
            stored = StoredContainer(metadata=_metadata_from(request.headers), etag=self._etag())
            self.containers[name] = stored
            return self._ok(201, etag=stored.etag)

        if stored is None:
            return _error(404, "ContainerNotFound", "The specified container does not exist.")

        if method == "GET" and comp == "list":
            return self._list_blobs(name, query)
        if method == "GET" and comp == "acl":
            headers = {"x-ms-blob-public-access": stored.public_access} if stored.public_access else {}
            return self._ok(headers=headers, body=stored.identifiers, etag=stored.etag)
        if method == "PUT" and comp == "acl":
            stored.public_access = request.header("x-ms-blob-public-access")
            stored.identifiers = request.body or b""
            return self._ok()
        if method == "PUT" and comp == "metadata":
            stored.metadata = _metadata_from(request.headers)
            return self._ok()
        if method in ("GET", "HEAD"):
            headers = {f"x-ms-meta-{key}": value for key, value in stored.metadata.items()}
            return self._ok(headers=headers, etag=stored.etag)
        if method == "DELETE":
            del self.containers[name]
            return self._ok(202)
        return _error(400, "UnsupportedHttpVerb", "Unsupported.")

    def _list_blobs(self, container, query):
        blobs = self.containers[container].blobs
        prefix = query.get("prefix", "")
        delimiter = query.get("delimiter")

        names = set()
        for name in blobs:
            if not name.startswith(prefix):
                continue
            rest = name[len(prefix):]
            if delimiter and delimiter in rest:
                names.add(prefix + rest.split(delimiter, 1)[0] + delimiter)
            else:
                names.add(name)

        page, next_marker = self._page(list(names), query)
        entries = []
        for name in page:
            if name in blobs:
                stored = blobs[name]
                entries.append(
                    f"<Blob><Name>{escape(name)}</Name><Url>{HOST}/{container}/{escape(name)}</Url>"
                    f"<Properties><Last-Modified>{LAST_MODIFIED}</Last-Modified><Etag>{stored.etag}</Etag>"
                    f"<Content-Length>{len(stored.data)}</Content-Length>"
                    f"<Content-Type>{stored.content_type or ''}</Content-Type>"
                    f"<BlobType>{stored.blob_type}</BlobType></Properties></Blob>"
                )
            else:
                entries.append(f"<BlobPrefix><Name>{escape(name)}</Name></BlobPrefix>")
        body = (
            f'{XML_HEADER}<EnumerationResults ContainerName="{container}">'
            f"<Blobs>{''.join(entries)}</Blobs><NextMarker>{next_marker}</NextMarker></EnumerationResults>"
        )
        return self._ok(body=body.encode("utf-8"))

    # -- blobs ---------------------------------------------------------------

    def _blob(self, method, container, name, query, request):
        comp = query.get("comp")
        blobs = self.containers[container].blobs
        stored = blobs.get(name)
        key = (container, name)

        if method == "PUT" and comp == "block":
            self.staged.setdefault(key, {})[query["blockid"]] = request.body or b""
            return self._ok(201)

        if method == "PUT" and comp == "blocklist":
            staged = self.staged.get(key, {})
            previous = stored.committed if stored is not None else {}
            sources = {
                "Latest": (staged, previous),
                "Uncommitted": (staged,),
                "Committed": (previous,),
            }
            blocks = {}
            for element in ET.fromstring(request.body):
                found = next(
                    (pool[element.text] for pool in sources.get(element.tag, ()) if element.text in pool),
                    None,
                )
                if found is None:
                    return _error(400, "InvalidBlockList", "The specified block list is invalid.")
                blocks[element.text] = found
            stored = StoredBlob(
                data=b"".join(blocks.values()),
                content_type=request.header("x-ms-blob-content-type"),
                metadata=_metadata_from(request.headers),
                committed=blocks,
                etag=self._etag(),
            )
            blobs[name] = stored
            self.staged.pop(key, None)
            return self._ok(201, etag=stored.etag)

        if method == "PUT" and comp is None and request.header("x-ms-copy-source"):
            source = request.header("x-ms-copy-source").split("/", 3)
            original = self.containers[source[2]].blobs.get(source[3])
            if original is None:
                return _error(404, "BlobNotFound", "The specified blob does not exist.")
            metadata = _metadata_from(request.headers) or dict(original.metadata)
            stored = StoredBlob(
                data=original.data, blob_type=original.blob_type, content_type=original.content_type,
                metadata=metadata, etag=self._etag(),
            )
            blobs[name] = stored
            return self._ok(202, etag=stored.etag)

        if method == "PUT" and comp is None:
            if stored is not None and stored.lease_id and request.header("x-ms-lease-id") != stored.lease_id:
                return _error(412, "LeaseIdMissing", "There is currently a lease on the blob.")
            blob_type = request.header("x-ms-blob-type")
            if blob_type == "PageBlob":
                data = b"\0" * int(request.header("x-ms-blob-content-length"))
            else:
                data = request.body or b""
            stored = StoredBlob(
                data=data,
                blob_type=blob_type,
                content_type=request.header("Content-Type"),
                metadata=_metadata_from(request.headers),
                etag=self._etag(),
            )
            blobs[name] = stored
            return self._ok(201, etag=stored.etag)

        if stored is None:
            return _error(404, "BlobNotFound", "The specified blob does not exist.")

        if method == "PUT" and comp == "page":
            start, end = (int(value) for value in request.header("Range")[len("bytes="):].split("-"))
            if request.header("x-ms-page-write") == "update":
                contents = request.body
            else:
                contents = b"\0" * (end - start + 1)
            stored.data = stored.data[:start] + contents + stored.data[end + 1:]
            for page in range(start // 512, (end + 1) // 512):
                if request.header("x-ms-page-write") == "update":
                    stored.pages[page] = contents
                else:
                    stored.pages.pop(page, None)
            return self._ok(201, etag=stored.etag)

        if method == "GET" and comp == "pagelist":
            ranges, current = [], None
            for page in sorted(stored.pages):
                if current and current[1] + 1 == page * 512:
                    current[1] = page * 512 + 511
                else:
                    current = [page * 512, page * 512 + 511]
                    ranges.append(current)
            body = XML_HEADER + "<PageList>" + "".join(
                f"<PageRange><Start>{start}</Start><End>{end}</End></PageRange>" for start, end in ranges
            ) + "</PageList>"
            return self._ok(body=body.encode("utf-8"))

        if method == "GET" and comp == "blocklist":
            committed = "".join(
                f"<Block><Name>{block_id}</Name><Size>{len(data)}</Size></Block>"
                for block_id, data in stored.committed.items()
            )
            uncommitted = "".join(
                f"<Block><Name>{block_id}</Name><Size>{len(data)}</Size></Block>"
                for block_id, data in self.staged.get(key, {}).items()
            )
            body = (
                f"{XML_HEADER}<BlockList><CommittedBlocks>{committed}</CommittedBlocks>"
                f"<UncommittedBlocks>{uncommitted}</UncommittedBlocks></BlockList>"
            )
            return self._ok(body=body.encode("utf-8"))

        if method == "PUT" and comp == "metadata":
            stored.metadata = _metadata_from(request.headers)
            return self._ok(etag=stored.etag)

        if method == "PUT" and comp == "properties":
            stored.content_type = request.header("x-ms-blob-content-type") or stored.content_type
            return self._ok(etag=stored.etag)

        if method == "PUT" and comp == "snapshot":
            snapshot = "2020-01-01T00:00:00.0000000Z"
            blobs[f"{name}?snapshot={snapshot}"] = StoredBlob(
                data=stored.data, content_type=stored.content_type, metadata=dict(stored.metadata)
            )
            return self._ok(201, headers={"x-ms-snapshot": snapshot}, etag=stored.etag)

        if method == "PUT" and comp == "lease":
            action = request.header("x-ms-lease-action")
            if action == "acquire":
                if stored.lease_id:
                    return _error(409, "LeaseAlreadyPresent", "There is already a lease present.")
                stored.lease_id = f"lease-{next(self._leases)}"
                return self._ok(201, headers={"x-ms-lease-id": stored.lease_id})
            if request.header("x-ms-lease-id") != stored.lease_id and action != "break":
                return _error(409, "LeaseIdMismatch", "The lease ID specified did not match.")
            if action == "renew":
                return self._ok(headers={"x-ms-lease-id": stored.lease_id})
            stored.lease_id = None
            return self._ok(202 if action == "break" else 200, headers={"x-ms-lease-time": "0"})

        if method in ("GET", "HEAD"):
            snapshot = query.get("snapshot")
            if snapshot is not None:
                stored = blobs.get(f"{name}?snapshot={snapshot}")
                if stored is None:
                    return _error(404, "BlobNotFound", "The specified blob does not exist.")
            headers = {
                "Content-Length": str(len(stored.data)),
                "x-ms-blob-type": stored.blob_type,
                "x-ms-lease-status": "locked" if stored.lease_id else "unlocked",
            }
            if stored.content_type:
                headers["Content-Type"] = stored.content_type
            headers.update({f"x-ms-meta-{key}": value for key, value in stored.metadata.items()})
            body = stored.data if method == "GET" else b""
            return self._ok(headers=headers, body=body, etag=stored.etag)

        if method == "DELETE":
            if stored.lease_id and request.header("x-ms-lease-id") != stored.lease_id:
                return _error(412, "LeaseIdMissing", "There is currently a lease on the blob.")
            del blobs[name]
            return self._ok(202)

        return _error(400, "UnsupportedHttpVerb", "Unsupported.")


@pytest.fixture
def host():
    return HOST


@pytest.fixture
def make_service():
    """Factory for services with custom paging or injected failures."""
    return FakeBlobService


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def make_client(host):
    """Factory for clients bound to a given service."""
    def build(service, **options):
        return BlobClient(host=host, transport=service, **options)
    return build


@pytest.fixture
def client(make_client, service):
    return make_client(service)
