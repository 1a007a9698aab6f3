"""Static identity token issuance and verification."""

from .issuer import IdentityTokenIssuer, format_customer_id
from .types import IdentityTokenPayload, Invalid, InvalidReason, MintedToken, Valid, VerificationResult
from .verifier import IdentityTokenVerifier

__all__ = [
    "IdentityTokenIssuer",
    "IdentityTokenVerifier",
    "IdentityTokenPayload",
    "MintedToken",
    "InvalidReason",
    "Valid",
    "Invalid",
    "VerificationResult",
    "format_customer_id",
]
