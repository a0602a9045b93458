"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ContextManager, Iterable, Protocol, Sequence

from .models import Account, AccountStatus, RateVersion


class RateRepository(Protocol):
    """Ordered, effective-dated store of rate versions."""

    def list_versions(self) -> Sequence[RateVersion]:
        ...

    def get_version(self, version_id: str) -> RateVersion | None:
        ...

    def save_version(self, version: RateVersion) -> None:
        ...

    def delete_version(self, version_id: str) -> None:
        ...

    def atomic(self) -> ContextManager[None]:
        """Group several writes so readers never observe a partial update."""
        ...


class AccountRepository(Protocol):
    """Account records with their recipients and audit/override fields."""

    def list_accounts(self, statuses: Iterable[AccountStatus] | None = None) -> Sequence[Account]:
        ...

    def get_account(self, account_id: str) -> Account | None:
        ...

    def update_audit(self, account_id: str, **fields: object) -> None:
        ...

    def update_overrides(self, account_id: str, **fields: object) -> None:
        ...

    def update_rate(self, account_id: str, rate: Decimal, note: str, audited_at: datetime) -> None:
        ...

    def clear_all_audit_data(self) -> int:
        ...
