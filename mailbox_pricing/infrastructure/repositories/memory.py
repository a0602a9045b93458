"""Thread-safe in-memory repositories."""
from __future__ import annotations

import dataclasses
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator, Sequence

from mailbox_pricing.domain.errors import AccountNotFoundError
from mailbox_pricing.domain.models import Account, AccountStatus, RateVersion
from mailbox_pricing.domain.repositories import AccountRepository, RateRepository

AUDIT_FIELDS = frozenset({"audit_flag", "audit_flag_type", "audit_note", "audited_at"})
OVERRIDE_FIELDS = frozenset({"rate_override", "rate_override_reason", "rate_override_by", "rate_override_at"})


class InMemoryRateRepository(RateRepository):
    def __init__(self, versions: Iterable[RateVersion] = ()) -> None:
        self._lock = threading.RLock()
        self._versions: dict[str, RateVersion] = {v.id: v for v in versions}

    def list_versions(self) -> Sequence[RateVersion]:
        with self._lock:
            return sorted(self._versions.values(), key=lambda v: v.start_date)

    def get_version(self, version_id: str) -> RateVersion | None:
        with self._lock:
            return self._versions.get(version_id)

    def save_version(self, version: RateVersion) -> None:
        with self._lock:
            self._versions[version.id] = version

    def delete_version(self, version_id: str) -> None:
        with self._lock:
            self._versions.pop(version_id, None)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            yield


class InMemoryAccountRepository(AccountRepository):
    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[str, Account] = {a.id: a for a in accounts}

    def list_accounts(self, statuses: Iterable[AccountStatus] | None = None) -> Sequence[Account]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            accounts = [a for a in self._accounts.values() if wanted is None or a.status in wanted]
        return sorted(accounts, key=lambda a: a.mailbox_number)

    def get_account(self, account_id: str) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    def update_audit(self, account_id: str, **fields: object) -> None:
        self._update(account_id, fields, AUDIT_FIELDS)

    def update_overrides(self, account_id: str, **fields: object) -> None:
        self._update(account_id, fields, AUDIT_FIELDS | OVERRIDE_FIELDS)

    def update_rate(self, account_id: str, rate: Decimal, note: str, audited_at: datetime) -> None:
        self._update(
            account_id,
            {"current_rate": rate, "audit_note": note, "audited_at": audited_at},
            AUDIT_FIELDS | {"current_rate"},
        )

    def clear_all_audit_data(self) -> int:
        with self._lock:
            for account_id, account in self._accounts.items():
                self._accounts[account_id] = dataclasses.replace(
                    account, audit_flag=False, audit_flag_type=None, audit_note=None, audited_at=None
                )
            return len(self._accounts)

    def _update(self, account_id: str, fields: dict[str, object], allowed: frozenset[str]) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            self._accounts[account_id] = dataclasses.replace(account, **fields)
