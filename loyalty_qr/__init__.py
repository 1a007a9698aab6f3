"""Loyalty QR package.

Static, signed customer identity tokens for in-store QR scanning: minting,
verification, QR rendering and persistence of the per-customer token.
"""

from .config import IdentityTokenConfig, QRRenderConfig
from .errors import ConfigurationError, CustomerNotFoundError, InvalidCustomerIdError, LoyaltyQRError
from .render import RenderedTokenImage, render_qr
from .service import StaticQR, StaticQRService
from .token import IdentityTokenIssuer, IdentityTokenVerifier, Invalid, InvalidReason, Valid

__all__ = [
    "IdentityTokenConfig",
    "QRRenderConfig",
    "IdentityTokenIssuer",
    "IdentityTokenVerifier",
    "Valid",
    "Invalid",
    "InvalidReason",
    "RenderedTokenImage",
    "render_qr",
    "StaticQR",
    "StaticQRService",
    "LoyaltyQRError",
    "ConfigurationError",
    "InvalidCustomerIdError",
    "CustomerNotFoundError",
]
