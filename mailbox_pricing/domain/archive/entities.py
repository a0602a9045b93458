"""Archive domain entities for storing audit runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence


@dataclass(frozen=True)
class ArchiveFile:
    name: str
    content: bytes


@dataclass(frozen=True)
class AuditRunArchiveRequest:
    run_id: str
    inputs: Sequence[ArchiveFile]
    outputs: Sequence[ArchiveFile]
    summary: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class ArchiveReceipt:
    run_id: str
    location: Path


def iter_all_files(request: AuditRunArchiveRequest) -> Iterable[ArchiveFile]:
    yield from request.inputs
    yield from request.outputs
