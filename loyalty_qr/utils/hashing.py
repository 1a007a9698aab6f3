"""Hashing and canonical encoding helpers."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any


def sha256_hex(value: str) -> str:
    """Return SHA-256 hex digest for the provided string value."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def canonical_json(value: Any) -> bytes:
    """Return sorted-key compact UTF-8 JSON for a JSON-serializable value."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def b64url_encode(raw: bytes) -> str:
    """Unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Strict inverse of :func:`b64url_encode`.

    Only the exact canonical encoding of some byte string is accepted, so stray
    characters, padding and non-zero trailing bits all raise ``ValueError``.
    """
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except ValueError as exc:
        raise ValueError("invalid base64url segment") from exc
    if b64url_encode(raw) != segment:
        raise ValueError("non-canonical base64url segment")
    return raw
