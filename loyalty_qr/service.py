"""Customer-facing "show my QR" and staff-facing scan flows over the token core."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .config import IdentityTokenConfig
from .errors import CustomerNotFoundError
from .render import render_qr
from .storage import StaticQRStorage, StoredStaticQR, create_storage_from_env
from .token import (
    IdentityTokenIssuer,
    IdentityTokenVerifier,
    Invalid,
    InvalidReason,
    MintedToken,
    VerificationResult,
    format_customer_id,
)
from .utils.hashing import sha256_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticQR:
    """A customer's static QR as returned to the app."""

    customer_id: str
    token: str
    image_data_url: str
    created_at: Optional[datetime]
    reused: bool


class StaticQRService:
    """Mint-once, reuse-after static QR management plus scan verification."""

    def __init__(
        self,
        *,
        storage: StaticQRStorage,
        issuer: IdentityTokenIssuer,
        verifier: IdentityTokenVerifier,
    ) -> None:
        self.storage = storage
        self.issuer = issuer
        self.verifier = verifier

    @classmethod
    def from_env(cls) -> "StaticQRService":
        config = IdentityTokenConfig.from_env()
        return cls(
            storage=create_storage_from_env(),
            issuer=IdentityTokenIssuer(config),
            verifier=IdentityTokenVerifier(config),
        )

    async def close(self) -> None:
        await self.storage.close()

    async def get_or_create(self, customer_id: int) -> StaticQR:
        """Return the persisted QR, minting and storing one only if none exists.

        Minting again would change the token without changing the identity, so an
        existing token is always reused. A missing cached image is re-rendered.
        When two first requests race, only one mint is stored and both callers get it.
        """
        padded = format_customer_id(customer_id, self.issuer.config.customer_id_width)
        stored = await self.storage.get_static_qr(customer_id)
        if stored is not None and stored.token:
            return self._reuse(padded, stored)

        minted = self.issuer.mint(customer_id)
        written = await self.storage.save_static_qr(
            customer_id,
            token=minted.token,
            image_data_url=minted.image.data_url,
            created_at=minted.created_at,
            only_if_unset=True,
        )
        if not written:
            stored = await self.storage.get_static_qr(customer_id)
            if stored is None or not stored.token:
                raise CustomerNotFoundError(f"Customer {customer_id} not found.")
            return self._reuse(padded, stored)
        return self._minted(minted, action="Minted")

    async def regenerate(self, customer_id: int) -> StaticQR:
        """Administrative re-mint; the previously stored token no longer scans as valid."""
        format_customer_id(customer_id, self.issuer.config.customer_id_width)
        minted = self.issuer.mint(customer_id)
        await self.storage.save_static_qr(
            customer_id,
            token=minted.token,
            image_data_url=minted.image.data_url,
            created_at=minted.created_at,
        )
        return self._minted(minted, action="Regenerated")

    async def scan(self, token: str) -> VerificationResult:
        """Verify a scanned token and require it to be the customer's current stored token."""
        result = self.verifier.verify(token)
        fingerprint = sha256_hex(token)[:12] if isinstance(token, str) else "-"
        if isinstance(result, Invalid):
            logger.warning("Rejected QR scan (token %s): %s", fingerprint, result.reason.value)
            return result

        stored = None
        if result.customer_id.isascii() and result.customer_id.isdigit():
            stored = await self.storage.get_static_qr(int(result.customer_id))
        if stored is None or stored.token != token:
            logger.warning("Rejected QR scan (token %s): superseded or unknown customer %s", fingerprint, result.customer_id)
            return Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)

        logger.info("Accepted QR scan for customer %s (token %s)", result.customer_id, fingerprint)
        return result

    def _reuse(self, padded: str, stored: StoredStaticQR) -> StaticQR:
        assert stored.token is not None
        image_data_url = stored.image_data_url
        if not image_data_url:
            image_data_url = render_qr(stored.token, self.issuer.config.render, created_at=stored.created_at).data_url
        logger.info("Reusing static QR for customer %s (token %s)", padded, sha256_hex(stored.token)[:12])
        return StaticQR(
            customer_id=padded,
            token=stored.token,
            image_data_url=image_data_url,
            created_at=stored.created_at,
            reused=True,
        )

    def _minted(self, minted: MintedToken, *, action: str) -> StaticQR:
        logger.info("%s static QR for customer %s (token %s)", action, minted.payload.customer_id, minted.token_hash[:12])
        return StaticQR(
            customer_id=minted.payload.customer_id,
            token=minted.token,
            image_data_url=minted.image.data_url,
            created_at=minted.created_at,
            reused=False,
        )
