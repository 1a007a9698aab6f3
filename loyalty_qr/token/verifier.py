"""Static identity token verification."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict

from ..config import IdentityTokenConfig
from ..utils.time import utc_now
from .signing import SignatureError, unsign
from .types import Invalid, InvalidReason, Valid, VerificationResult

Clock = Callable[[], datetime]


class IdentityTokenVerifier:
    """Resolve a scanned token string to a customer id or a rejection reason.

    Checks run in a fixed order and the first failure is reported, since the
    scan screen displays that reason to the operator. Nothing here raises for
    bad input.
    """

    def __init__(self, config: IdentityTokenConfig, *, clock: Clock = utc_now) -> None:
        self.config = config
        self._secret = config.secret_key.encode("utf-8")
        self._clock = clock

    def verify(self, token: str) -> VerificationResult:
        try:
            claims = unsign(token, self._secret)
        except SignatureError:
            return Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)

        exp = claims.get("exp")
        if exp is not None:
            if isinstance(exp, bool) or not isinstance(exp, (int, float)):
                return Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
            if self._clock().timestamp() >= exp:
                return Invalid(InvalidReason.EXPIRED)

        return self.check_claims(claims)

    def check_claims(self, claims: Dict[str, Any]) -> VerificationResult:
        """Semantic checks on an already authenticated claim set."""
        if claims.get("type") != self.config.token_type:
            return Invalid(InvalidReason.WRONG_TYPE)

        customer_id = claims.get("customer_id")
        if isinstance(customer_id, bool) or not isinstance(customer_id, (str, int)) or not customer_id:
            return Invalid(InvalidReason.MISSING_CUSTOMER_ID)

        version = claims.get("version")
        if isinstance(version, float) and version.is_integer():
            version = int(version)
        if version is not None:
            if isinstance(version, bool) or not isinstance(version, int):
                return Invalid(InvalidReason.UNSUPPORTED_VERSION)
            if version > self.config.max_supported_version:
                return Invalid(InvalidReason.UNSUPPORTED_VERSION)

        issuer = claims.get("issuer")
        if issuer is not None and issuer != self.config.issuer:
            return Invalid(InvalidReason.WRONG_ISSUER)

        return Valid(customer_id=str(customer_id))
