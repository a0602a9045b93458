"""Archive application use cases."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from mailbox_pricing.domain.archive.entities import ArchiveFile, ArchiveReceipt, AuditRunArchiveRequest
from mailbox_pricing.domain.results import AuditSummary
from mailbox_pricing.infrastructure.archive.file_repository import FileSystemArchiveRepository


def summary_counts(summary: AuditSummary) -> dict[str, object]:
    return {
        "generated_at": summary.generated_at.isoformat(),
        "total_accounts": summary.total_accounts,
        "accounts_audited": summary.accounts_audited,
        "accounts_flagged": summary.accounts_flagged,
        "accounts_with_override": summary.accounts_with_override,
        "accounts_ok": summary.accounts_ok,
        "by_flag_type": {flag.value: count for flag, count in summary.count_by_flag_type().items()},
    }


@dataclass(slots=True)
class ArchiveAuditRunUseCase:
    repository: FileSystemArchiveRepository

    def execute(
        self,
        summary: AuditSummary,
        inputs: Sequence[ArchiveFile],
        outputs: Sequence[ArchiveFile],
        run_id: str | None = None,
    ) -> ArchiveReceipt:
        stamp: datetime = summary.generated_at
        request = AuditRunArchiveRequest(
            run_id=run_id or stamp.strftime("%Y%m%d_%H%M%S"),
            inputs=inputs,
            outputs=outputs,
            summary=summary_counts(summary),
        )
        return self.repository.save_run(request)
