"""Identity token datatypes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Union

if TYPE_CHECKING:
    from ..render import RenderedTokenImage


@dataclass(frozen=True)
class IdentityTokenPayload:
    """Claim set signed into a static loyalty QR token."""

    version: int
    type: str
    customer_id: str
    issuer: str
    nonce: str
    issued_at: int

    def to_claims(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "type": self.type,
            "customer_id": self.customer_id,
            "issuer": self.issuer,
            "nonce": self.nonce,
            "iat": self.issued_at,
        }


@dataclass(frozen=True)
class MintedToken:
    token: str
    image: "RenderedTokenImage"
    created_at: datetime
    payload: IdentityTokenPayload
    token_hash: str


class InvalidReason(str, Enum):
    """Why a scanned token was rejected."""

    MALFORMED_OR_BAD_SIGNATURE = "malformed_or_bad_signature"
    EXPIRED = "expired"
    WRONG_TYPE = "wrong_type"
    MISSING_CUSTOMER_ID = "missing_customer_id"
    UNSUPPORTED_VERSION = "unsupported_version"
    WRONG_ISSUER = "wrong_issuer"

    @property
    def message(self) -> str:
        """Operator-facing text shown by the scan screen."""
        return _MESSAGES[self]


_MESSAGES = {
    InvalidReason.MALFORMED_OR_BAD_SIGNATURE: "Invalid QR code",
    InvalidReason.EXPIRED: "QR code expired",
    InvalidReason.WRONG_TYPE: "Invalid QR code type",
    InvalidReason.MISSING_CUSTOMER_ID: "Missing customer ID",
    InvalidReason.UNSUPPORTED_VERSION: "QR code version not supported",
    InvalidReason.WRONG_ISSUER: "Invalid QR code issuer",
}


@dataclass(frozen=True)
class Valid:
    customer_id: str

    @property
    def valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    reason: InvalidReason

    @property
    def valid(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.reason.message


VerificationResult = Union[Valid, Invalid]
