"""Filesystem repository for archiving audit runs."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from mailbox_pricing.domain.archive.entities import (
    ArchiveFile,
    ArchiveReceipt,
    AuditRunArchiveRequest,
    iter_all_files,
)

logger = logging.getLogger(__name__)


def normalize_run_id(run_id: str) -> str:
    """Collapse timestamp-like run ids to ``YYYYMMDD_HHMMSS``; strip anything unsafe otherwise."""
    if not run_id:
        return "audit"
    digits = re.findall(r"\d", run_id)
    if len(digits) >= 14:
        return f"{''.join(digits[:8])}_{''.join(digits[8:14])}"
    sanitized = re.sub(r"[^0-9A-Za-z_-]+", "", run_id.strip())
    return sanitized or "audit"


class FileSystemArchiveRepository:
    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def save_run(self, request: AuditRunArchiveRequest) -> ArchiveReceipt:
        run_id = normalize_run_id(request.run_id)
        run_dir = self._root / run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        for archive_file in iter_all_files(request):
            (run_dir / Path(archive_file.name).name).write_bytes(archive_file.content)

        manifest = {
            "run_id": run_id,
            "summary": dict(request.summary),
            "inputs": [self._manifest_entry(f) for f in request.inputs],
            "outputs": [self._manifest_entry(f) for f in request.outputs],
        }
        (run_dir / "manifest.json").write_text(json.dumps(manifest, indent=2, default=str), encoding="utf-8")
        logger.info("Archived audit run %s to %s", run_id, run_dir)
        return ArchiveReceipt(run_id=run_id, location=run_dir)

    @staticmethod
    def _manifest_entry(archive_file: ArchiveFile) -> dict[str, object]:
        return {"name": Path(archive_file.name).name, "bytes": len(archive_file.content)}
