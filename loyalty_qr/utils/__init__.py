"""Utility helpers for hashing, encoding and time operations."""

from .hashing import b64url_decode, b64url_encode, canonical_json, sha256_hex
from .time import unix_seconds, utc_now

__all__ = ["sha256_hex", "canonical_json", "b64url_encode", "b64url_decode", "utc_now", "unix_seconds"]
