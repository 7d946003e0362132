"""
Request authentication headers.

L1 headers carry a ClobAuth EIP-712 signature. L2 headers carry an
HMAC-SHA256 over ``timestamp + method + path + body``, where body is
the exact string placed on the wire. Use ``serialize_body`` to produce that
string once and send the same value.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Any

from polymarket_core.clob.signer import Signer
from polymarket_core.clob.types import ApiCreds, RequestArgs

POLY_ADDRESS = "POLY_ADDRESS"
POLY_SIGNATURE = "POLY_SIGNATURE"
POLY_TIMESTAMP = "POLY_TIMESTAMP"
POLY_NONCE = "POLY_NONCE"
POLY_API_KEY = "POLY_API_KEY"
POLY_PASSPHRASE = "POLY_PASSPHRASE"


def serialize_body(body: Any) -> str | None:
    """Compact JSON used both for signing and as the request payload."""
    if body is None:
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"))


def build_hmac_signature(
    secret: str,
    timestamp: str | int,
    method: str,
    request_path: str,
    body: str | None = None,
) -> str:
    """
    HMAC-SHA256 signature, base64url encoded.

    Args:
        secret: base64url encoded API secret
        timestamp: Unix seconds
        method: HTTP method
        request_path: Path including query string
        body: Serialized body; omitted from the message when None
    """
    message = f"{timestamp}{method}{request_path}"
    if body is not None:
        message += body

    key = base64.urlsafe_b64decode(secret)
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8")


def _now() -> str:
    return str(int(time.time()))


def create_level_1_headers(
    signer: Signer,
    nonce: int | None = None,
    timestamp: str | None = None,
) -> dict[str, str]:
    """Headers proving wallet ownership (API key creation/derivation)."""
    timestamp = timestamp or _now()
    nonce = nonce or 0
    return {
        POLY_ADDRESS: signer.address,
        POLY_SIGNATURE: signer.sign_clob_auth(timestamp, nonce),
        POLY_TIMESTAMP: timestamp,
        POLY_NONCE: str(nonce),
    }


def create_level_2_headers(
    signer: Signer,
    creds: ApiCreds,
    request_args: RequestArgs,
    timestamp: str | None = None,
) -> dict[str, str]:
    """Headers for HMAC-authenticated trading endpoints."""
    timestamp = timestamp or _now()
    signature = build_hmac_signature(
        creds.api_secret,
        timestamp,
        request_args.method,
        request_args.request_path,
        request_args.body,
    )
    return {
        POLY_ADDRESS: signer.address,
        POLY_SIGNATURE: signature,
        POLY_TIMESTAMP: timestamp,
        POLY_API_KEY: creds.api_key,
        POLY_PASSPHRASE: creds.api_passphrase,
    }
