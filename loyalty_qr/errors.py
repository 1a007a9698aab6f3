"""Exception types raised by the identity token service."""

from __future__ import annotations


class LoyaltyQRError(Exception):
    """Base class for loyalty QR errors."""


class ConfigurationError(LoyaltyQRError):
    """Signing secret, random source or render settings are unusable."""


class InvalidCustomerIdError(LoyaltyQRError, ValueError):
    """A non-positive or non-integer customer id was passed to mint."""


class CustomerNotFoundError(LoyaltyQRError, LookupError):
    """No customer record exists to attach a static QR to."""
