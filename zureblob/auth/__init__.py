"""
ZureBlob Authentication Module.

Canonicalization, signing and the credential strategies used to
authenticate every outgoing blob storage request.

Author: ZureBlob Team
Date: 2026-10-19
"""

from zureblob.auth.canonicalizer import (
    CanonicalizedRequest,
    build_canonical_string,
    format_rfc1123,
)
from zureblob.auth.credentials import (
    DEVSTORE_ACCOUNT,
    DEVSTORE_KEY,
    Credentials,
    Permission,
    ResourceType,
    SharedAccessSignatureCredentials,
    SharedKeyCredentials,
)
from zureblob.auth.signing import compute_signature, decode_account_key

__all__ = [
    # Canonicalization
    "CanonicalizedRequest",
    "build_canonical_string",
    "format_rfc1123",
    # Signing
    "compute_signature",
    "decode_account_key",
    # Credentials
    "DEVSTORE_ACCOUNT",
    "DEVSTORE_KEY",
    "Credentials",
    "Permission",
    "ResourceType",
    "SharedAccessSignatureCredentials",
    "SharedKeyCredentials",
]
