"""
Shiftboard HMAC-SHA1 Request Signing

Every Shiftboard JSON-RPC call is a POST whose body is signed with the
account's secret key. The signature and access key id travel in the query
string; the body must be sent byte-for-byte as it was signed.
"""

import base64
import hashlib
import hmac
from typing import Any
from urllib.parse import urlencode

import orjson

MIN_SECRET_KEY_LENGTH = 16


def build_rpc_body(method: str, params: dict[str, Any] | None = None) -> bytes:
    """Serialize the JSON-RPC 2.0 envelope for a method call."""
    return orjson.dumps(
        {
            "id": 1,
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
        }
    )


def generate_signature(body: bytes, secret_key: str) -> str:
    """Base64-encoded HMAC-SHA1 of the request body."""
    digest = hmac.new(secret_key.encode("utf-8"), body, hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def build_authenticated_post_request(
    base_url: str,
    method: str,
    params: dict[str, Any] | None,
    access_key_id: str,
    secret_key: str,
) -> tuple[str, bytes]:
    """
    Build the signed URL and body for a Shiftboard call.

    Args:
        base_url: Full endpoint URL (https://host/path)
        method: JSON-RPC method name, e.g. 'shift.whosOn'
        params: Method parameters
        access_key_id: Shiftboard access key id
        secret_key: Shiftboard secret key

    Returns:
        Tuple of (url, body) where body is the exact signed payload
    """
    body = build_rpc_body(method, params)
    signature = generate_signature(body, secret_key)
    query = urlencode({"access_key_id": access_key_id, "signature": signature})
    return f"{base_url}?{query}", body


def validate_auth_config(access_key_id: str, secret_key: str) -> None:
    """
    Validate Shiftboard credentials.

    Raises:
        ValueError: If a credential is missing or the secret key is implausibly short
    """
    if not access_key_id or not access_key_id.strip():
        raise ValueError("SHIFTBOARD_ACCESS_KEY_ID is required")

    if not secret_key or not secret_key.strip():
        raise ValueError("SHIFTBOARD_SECRET_KEY is required")

    if len(secret_key) < MIN_SECRET_KEY_LENGTH:
        raise ValueError("SHIFTBOARD_SECRET_KEY appears to be invalid (too short)")
