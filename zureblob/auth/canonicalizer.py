"""
Request canonicalization for SharedKey authentication.

Builds the exact string that is signed for a blob storage request:

    VERB\n
    Content-Encoding\n
    Content-Language\n
    Content-Length\n
    Content-MD5\n
    Content-Type\n
    Date\n
    If-Modified-Since\n
    If-Match\n
    If-None-Match\n
    If-Unmodified-Since\n
    Range\n
    CanonicalizedHeaders\n
    CanonicalizedResource

Author: ZureBlob Team
Date: 2026-10-19
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import unquote

# Custom header prefixes
PREFIX_STORAGE_HEADER = "x-ms-"
PREFIX_METADATA = "x-ms-meta-"

DATE_HEADER = PREFIX_STORAGE_HEADER + "date"

# RFC 1123
RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

# Verbs that never carry a body, so Content-Length is signed as empty
BODYLESS_VERBS = frozenset({"GET", "DELETE", "HEAD"})

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class CanonicalizedRequest:
    """Result of request canonicalization."""
    
    string_to_sign: str
    canonical_headers: str
    canonical_resource: str
    request_date: str
    date_generated: bool


def format_rfc1123(moment: datetime) -> str:
    """
    Format a timestamp as an RFC 1123 GMT date.
    
    Day and month names are fixed English tokens regardless of locale.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return "%s, %02d %s %04d %02d:%02d:%02d GMT" % (
        _WEEKDAYS[moment.weekday()],
        moment.day,
        _MONTHS[moment.month - 1],
        moment.year,
        moment.hour,
        moment.minute,
        moment.second,
    )


def render_header_value(value: Any) -> str:
    """Render a header value as it is signed and sent."""
    if isinstance(value, bool):
        return "True" if value else "False"
    return str(value)


def normalize_path(path: str, use_path_style_uri: bool = False) -> str:
    """
    Normalize a request path for the canonical resource.
    
    Args:
        path: Request path
        use_path_style_uri: Strip everything before the first "/" when True
    
    Returns:
        Path beginning with "/"
    """
    if use_path_style_uri and "/" in path:
        path = path[path.index("/"):]
    
    if not path.startswith("/"):
        path = "/" + path
    
    return path


def build_canonicalized_headers(headers: Mapping[str, Any], request_date: Optional[str] = None) -> str:
    """
    Build CanonicalizedHeaders string.
    
    Rules:
    1. Include all headers starting with "x-ms-" (case-insensitive)
    2. Lower-case the header name
    3. Format: "header-name:value"
    4. Sort lines ascending, join with newline
    
    Args:
        headers: Request headers
        request_date: Synthesized x-ms-date value to add, if any
    
    Returns:
        Canonicalized headers string
    """
    lines: List[str] = []
    if request_date is not None:
        lines.append(f"{DATE_HEADER}:{request_date}")
    
    for name, value in headers.items():
        lower_name = name.lower()
        if lower_name.startswith(PREFIX_STORAGE_HEADER):
            lines.append(f"{lower_name}:{render_header_value(value)}")
    
    lines.sort()
    return "\n".join(lines)


def build_canonicalized_resource(
    account_name: str,
    path: str,
    query: Optional[Mapping[str, Any]] = None,
    use_path_style_uri: bool = False,
) -> str:
    """
    Build CanonicalizedResource string.
    
    Format:
        /account-name[/account-name]/resource-path
        param1:value1
        param2:value2
    
    Query parameters are sorted by key, keys lower-cased and values URL-decoded.
    """
    resource = "/" + account_name
    if use_path_style_uri:
        resource += "/" + account_name
    resource += normalize_path(path, use_path_style_uri)
    
    if query:
        for key in sorted(query):
            resource += f"\n{key.lower()}:{unquote(render_header_value(query[key]))}"
    
    return resource


def compute_content_length(verb: str, raw_data: Optional[bytes]) -> str:
    """Content-Length value that participates in the signed string."""
    if verb.upper() in BODYLESS_VERBS:
        return ""
    if raw_data is None:
        return "0"
    return str(len(raw_data))


def build_canonical_string(
    verb: str,
    path: str,
    query: Optional[Mapping[str, Any]],
    headers: Optional[Mapping[str, Any]],
    account_name: str,
    use_path_style_uri: bool = False,
    for_table_storage: bool = False,
    raw_data: Optional[bytes] = None,
    now: Optional[datetime] = None,
) -> CanonicalizedRequest:
    """
    Build canonical string for SharedKey signature computation.
    
    Args:
        verb: HTTP verb
        path: Request path
        query: Query parameters (values not yet escaped)
        headers: Request headers (case-insensitive names)
        account_name: Storage account name
        use_path_style_uri: Path-style addressing
        for_table_storage: Omit canonicalized headers (table-style resource)
        raw_data: Request body
        now: Clock value used when x-ms-date must be synthesized
    
    Returns:
        CanonicalizedRequest holding the string to sign and its parts
    """
    headers = dict(headers or {})
    lower_headers: Dict[str, str] = {
        name.lower(): render_header_value(value) for name, value in headers.items()
    }
    
    if DATE_HEADER in lower_headers:
        request_date = lower_headers[DATE_HEADER]
        synthesized = None
    else:
        request_date = format_rfc1123(now or datetime.now(timezone.utc))
        synthesized = request_date
    
    canonical_headers = build_canonicalized_headers(headers, synthesized)
    canonical_resource = build_canonicalized_resource(
        account_name, path, query, use_path_style_uri
    )
    
    parts = [
        verb.upper(),
        lower_headers.get("content-encoding", ""),
        lower_headers.get("content-language", ""),
        compute_content_length(verb, raw_data),
        lower_headers.get("content-md5", ""),
        lower_headers.get("content-type", ""),
        "",  # Date travels in x-ms-date only
        lower_headers.get("if-modified-since", ""),
        lower_headers.get("if-match", ""),
        lower_headers.get("if-none-match", ""),
        lower_headers.get("if-unmodified-since", ""),
        lower_headers.get("range", ""),
    ]
    
    if not for_table_storage and canonical_headers:
        parts.append(canonical_headers)
    
    parts.append(canonical_resource)
    
    return CanonicalizedRequest(
        string_to_sign="\n".join(parts),
        canonical_headers=canonical_headers,
        canonical_resource=canonical_resource,
        request_date=request_date,
        date_generated=synthesized is not None,
    )
