"""
HMAC-SHA256 request signing.

Signature = Base64(HMAC-SHA256(UTF8(StringToSign), Base64Decode(AccountKey)))

Reference: https://docs.microsoft.com/en-us/rest/api/storageservices/authorize-with-shared-key
"""

import base64
import binascii
import hashlib
import hmac

from zureblob.exceptions import ValidationError


def decode_account_key(account_key: str) -> bytes:
    """
    Decode a base64-encoded account key.
    
    Args:
        account_key: Base64-encoded account key
    
    Returns:
        Raw key bytes
    
    Raises:
        ValidationError: If the key is not valid base64
    """
    try:
        return base64.b64decode(account_key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Invalid account key format", "InvalidAccountKey") from exc


def compute_signature(string_to_sign: str, key: bytes) -> str:
    """
    Compute HMAC-SHA256 signature.
    
    Args:
        string_to_sign: Canonical string to sign
        key: Decoded account key
    
    Returns:
        Base64-encoded signature
    """
    signature_bytes = hmac.new(
        key,
        string_to_sign.encode("utf-8"),
        hashlib.sha256
    ).digest()
    
    return base64.b64encode(signature_bytes).decode("utf-8")
