"""Configuration models for identity token minting, verification and rendering."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEV_SECRET = "dev-only-insecure-secret-do-not-use-in-production"
DEFAULT_ISSUER = "sarnies_loyalty"
IDENTITY_TOKEN_TYPE = "loyalty_id"
ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")


@dataclass(frozen=True)
class QRRenderConfig:
    """Pixel size, quiet margin (in modules), error correction and colours."""

    size: int = 400
    margin: int = 2
    error_correction: str = "M"
    dark: str = "#000000"
    light: str = "#FFFFFF"

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ConfigurationError(f"QR size must be positive, got {self.size}.")
        if self.margin < 0:
            raise ConfigurationError(f"QR margin must not be negative, got {self.margin}.")
        if self.error_correction not in ERROR_CORRECTION_LEVELS:
            raise ConfigurationError(
                f"Unknown error correction level '{self.error_correction}'. "
                f"Expected one of: {', '.join(ERROR_CORRECTION_LEVELS)}."
            )


@dataclass(frozen=True)
class IdentityTokenConfig:
    """Settings shared by the issuer and the verifier.

    ``secret_key`` must be the same on both sides. It is never embedded in a token,
    and changing it invalidates every token minted before the change.
    """

    secret_key: str
    issuer: str = DEFAULT_ISSUER
    token_type: str = IDENTITY_TOKEN_TYPE
    version: int = 1
    max_supported_version: int = 1
    customer_id_width: int = 6
    nonce_bytes: int = 8
    render: QRRenderConfig = field(default_factory=QRRenderConfig)

    def __post_init__(self) -> None:
        if not isinstance(self.secret_key, str) or not self.secret_key:
            raise ConfigurationError("A non-empty signing secret is required.")
        if not self.issuer:
            raise ConfigurationError("Issuer must be a non-empty string.")
        if self.version > self.max_supported_version:
            raise ConfigurationError(
                f"Minting version {self.version} exceeds max supported version {self.max_supported_version}."
            )
        if self.customer_id_width < 1:
            raise ConfigurationError("customer_id_width must be at least 1.")
        if self.nonce_bytes < 8:
            raise ConfigurationError("nonce_bytes must be at least 8.")

    @classmethod
    def from_env(cls, *, render: Optional[QRRenderConfig] = None) -> "IdentityTokenConfig":
        """Build config from ``LOYALTY_QR_*`` variables, falling back to ``JWT_SECRET``."""
        secret = os.getenv("LOYALTY_QR_SECRET") or os.getenv("JWT_SECRET")
        environment = (os.getenv("LOYALTY_QR_ENV") or os.getenv("APP_ENV") or "development").lower()
        if not secret:
            if environment == "production":
                raise ConfigurationError("LOYALTY_QR_SECRET (or JWT_SECRET) must be set in production.")
            logger.warning("LOYALTY_QR_SECRET not set; using insecure development secret.")
            secret = DEV_SECRET

        return cls(
            secret_key=secret,
            issuer=os.getenv("LOYALTY_QR_ISSUER", DEFAULT_ISSUER),
            render=render or QRRenderConfig(),
        )
