"""HMAC-backed static identity token issuer."""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional

from ..config import IdentityTokenConfig
from ..errors import ConfigurationError, InvalidCustomerIdError
from ..render import render_qr
from ..utils.hashing import sha256_hex
from ..utils.time import unix_seconds, utc_now
from .signing import sign
from .types import IdentityTokenPayload, MintedToken


def format_customer_id(customer_id: int, width: int = 6) -> str:
    """Zero-pad a positive customer id to its canonical printed form."""
    if isinstance(customer_id, bool) or not isinstance(customer_id, int):
        raise InvalidCustomerIdError(f"customer_id must be an int, got {type(customer_id).__name__}.")
    if customer_id <= 0:
        raise InvalidCustomerIdError(f"customer_id must be positive, got {customer_id}.")
    return str(customer_id).zfill(width)


class IdentityTokenIssuer:
    """Mint permanent signed identity tokens and their QR images.

    Tokens carry no expiry. A customer keeps the same token until it is
    explicitly re-minted, so callers should persist the result and reuse it.
    """

    def __init__(self, config: IdentityTokenConfig) -> None:
        self.config = config
        self._secret = config.secret_key.encode("utf-8")

    def build_payload(self, customer_id: int, *, issued_at: Optional[datetime] = None) -> IdentityTokenPayload:
        padded = format_customer_id(customer_id, self.config.customer_id_width)
        try:
            nonce = secrets.token_hex(self.config.nonce_bytes)
        except (OSError, NotImplementedError) as exc:
            raise ConfigurationError("Secure random source unavailable.") from exc

        return IdentityTokenPayload(
            version=self.config.version,
            type=self.config.token_type,
            customer_id=padded,
            issuer=self.config.issuer,
            nonce=nonce,
            issued_at=unix_seconds(issued_at or utc_now()),
        )

    def mint(self, customer_id: int) -> MintedToken:
        created_at = utc_now()
        payload = self.build_payload(customer_id, issued_at=created_at)
        token = sign(payload.to_claims(), self._secret)
        image = render_qr(token, self.config.render, created_at=created_at)
        return MintedToken(
            token=token,
            image=image,
            created_at=created_at,
            payload=payload,
            token_hash=sha256_hex(token),
        )
