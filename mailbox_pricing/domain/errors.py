"""Exception taxonomy for pricing and audit operations."""
from __future__ import annotations


class PricingError(Exception):
    """Base class for every error raised by the pricing core."""


class InvalidPeriodError(PricingError, ValueError):
    """An unrecognised renewal period reached the calculator."""

    def __init__(self, period: object) -> None:
        super().__init__(f"Unknown renewal period: {period!r}")
        self.period = period


class RateVersionError(PricingError, ValueError):
    """A rate administration request would break the rate timeline."""


class RateNotFoundError(PricingError, LookupError):
    """No rate version exists to price against."""


class AccountNotFoundError(PricingError, LookupError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class RepositoryUnavailableError(PricingError):
    """The account or rate data source cannot be reached."""


class ValidationError(PricingError, ValueError):
    """Request input failed validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
