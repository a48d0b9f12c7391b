"""Encoding and decoding of the three-part signed token wire format."""

import json
from typing import Any

from jwt.utils import base64url_decode, base64url_encode

from ztgate.core.errors import MalformedTokenError
from ztgate.crypto.types import SignedToken

TOKEN_SEGMENTS = 3


def _decode_segment(segment: str, name: str) -> dict[str, Any]:
    """Decode one base64url JSON object segment."""
    try:
        value = json.loads(base64url_decode(segment).decode("utf-8"))
    except ValueError as exc:
        raise MalformedTokenError(f"token {name} is not base64url JSON") from exc
    if not isinstance(value, dict):
        raise MalformedTokenError(f"token {name} is not a JSON object")
    return value


def _encode_segment(value: dict[str, Any]) -> str:
    raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return base64url_encode(raw.encode("utf-8")).decode("ascii")


def decode(token: str) -> SignedToken:
    """Split a token into header, payload and signature.

    Performs no validation beyond form checking. The signing input is the
    first two segments exactly as received.
    """
    parts = token.split(".")
    if len(parts) != TOKEN_SEGMENTS:
        raise MalformedTokenError("token must have 3 parts")

    header_b64, payload_b64, signature_b64 = parts
    return SignedToken(
        header=_decode_segment(header_b64, "header"),
        payload=_decode_segment(payload_b64, "payload"),
        signature=signature_b64,
        signing_input=f"{header_b64}.{payload_b64}",
    )


def encode(header: dict[str, Any], payload: dict[str, Any]) -> tuple[str, str]:
    """Encode header and payload; returns (wire form, signing input)."""
    encoded = f"{_encode_segment(header)}.{_encode_segment(payload)}"
    return encoded, encoded


def decode_signature(signature: str) -> bytes:
    """Decode the base64url signature segment to raw bytes."""
    try:
        return base64url_decode(signature)
    except ValueError as exc:
        raise MalformedTokenError("token signature is not base64url") from exc
