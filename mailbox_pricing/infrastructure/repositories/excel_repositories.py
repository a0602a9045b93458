"""Excel-backed repositories for rates and accounts."""
from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path

from mailbox_pricing.domain.errors import RepositoryUnavailableError
from mailbox_pricing.infrastructure.parsing.utils import ensure_bytes
from mailbox_pricing.infrastructure.parsing.workbook import load_workbook, write_workbook
from mailbox_pricing.infrastructure.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryRateRepository,
)

logger = logging.getLogger(__name__)


class WorkbookRateRepository(InMemoryRateRepository):
    """Rate versions loaded from the ``Rates`` sheet; writes stay in memory until saved."""


class WorkbookAccountRepository(InMemoryAccountRepository):
    """Accounts and recipients loaded from the ``Accounts`` and ``Recipients`` sheets."""


class WorkbookStore:
    def __init__(self, source: BytesIO | Path | str | bytes) -> None:
        try:
            raw = ensure_bytes(source)
            versions, accounts = load_workbook(BytesIO(raw))
        except (OSError, ValueError, KeyError, zipfile.BadZipFile) as exc:
            raise RepositoryUnavailableError(f"Cannot read workbook: {exc}") from exc
        self.raw = raw
        self.rates = WorkbookRateRepository(versions)
        self.accounts = WorkbookAccountRepository(accounts)
        logger.info("Loaded %d rate versions and %d accounts from workbook", len(versions), len(accounts))

    def save(self, target: Path | BytesIO) -> None:
        try:
            write_workbook(self.rates.list_versions(), self.accounts.list_accounts(), target)
        except OSError as exc:
            raise RepositoryUnavailableError(f"Cannot write workbook: {exc}") from exc

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self.save(buffer)
        return buffer.getvalue()
