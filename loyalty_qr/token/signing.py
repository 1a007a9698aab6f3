"""HS256 compact token encoding shared by the issuer and verifier.

Tokens are ``header.payload.signature`` with each part unpadded base64url and the
signature an HMAC-SHA256 over ``header.payload``. Header and payload are canonical
JSON, so a token signed here is also a valid HS256 JWT.
"""

from __future__ import annotations

import hmac
import json
from hashlib import sha256
from typing import Any, Dict

from ..utils.hashing import b64url_decode, b64url_encode, canonical_json

ALGORITHM = "HS256"
HEADER: Dict[str, str] = {"alg": ALGORITHM, "typ": "JWT"}


class SignatureError(ValueError):
    """Token is structurally malformed or its signature does not match."""


def sign(claims: Dict[str, Any], secret: bytes) -> str:
    signing_input = f"{b64url_encode(canonical_json(HEADER))}.{b64url_encode(canonical_json(claims))}"
    sig = hmac.new(secret, signing_input.encode("ascii"), sha256).digest()
    return f"{signing_input}.{b64url_encode(sig)}"


def unsign(token: str, secret: bytes) -> Dict[str, Any]:
    """Return the verified claims of ``token`` or raise :class:`SignatureError`."""
    if not isinstance(token, str):
        raise SignatureError("token must be a string")

    parts = token.split(".")
    if len(parts) != 3:
        raise SignatureError("token must have three segments")
    header_b64, payload_b64, sig_b64 = parts

    try:
        header_raw = b64url_decode(header_b64)
        payload_raw = b64url_decode(payload_b64)
        sig = b64url_decode(sig_b64)
    except ValueError as exc:
        raise SignatureError("token_decode_failed") from exc

    expected = hmac.new(secret, f"{header_b64}.{payload_b64}".encode("ascii"), sha256).digest()
    if not hmac.compare_digest(expected, sig):
        raise SignatureError("invalid_signature")

    header = _load_object(header_raw)
    if header.get("alg") != ALGORITHM:
        raise SignatureError("unsupported_algorithm")
    return _load_object(payload_raw)


def _load_object(raw: bytes) -> Dict[str, Any]:
    try:
        value = json.loads(raw.decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        raise SignatureError("invalid_json") from exc
    if not isinstance(value, dict):
        raise SignatureError("json_not_object")
    return value
