"""Effective-dated rate table."""
from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import date, datetime, timedelta
from typing import Sequence

from .dates import as_date
from .errors import RateVersionError
from .models import RateVersion
from .repositories import RateRepository

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
_IMMUTABLE_FIELDS = {"id", "end_date", "created_at", "created_by"}


class RateTable:
    """Answers which rates applied on a date and owns every write to the timeline.

    Versions are appended with a forward start date; the open version is closed
    the day before its successor starts. Past and current versions are never
    edited or removed.
    """

    def __init__(self, repository: RateRepository) -> None:
        self._repository = repository
        self._lock = threading.RLock()

    def versions(self) -> list[RateVersion]:
        return sorted(self._repository.list_versions(), key=lambda v: v.start_date)

    def current_rates(self, as_of: date | datetime | None = None) -> RateVersion | None:
        with self._lock:
            versions = self.versions()
        open_versions = [v for v in versions if v.is_open]
        if open_versions:
            return open_versions[-1]
        on = as_date(as_of)
        started = [v for v in versions if v.start_date <= on]
        if started:
            logger.warning("No open rate version; falling back to version %s", started[-1].id)
            return started[-1]
        return None

    def rates_effective_on(self, day: date | datetime) -> RateVersion | None:
        on = as_date(day)
        candidates = [v for v in self.versions() if v.covers(on)]
        if not candidates:
            return None
        return max(candidates, key=lambda v: v.start_date)

    def history(self, page: int = 1, limit: int = 20) -> tuple[list[RateVersion], int]:
        newest_first = list(reversed(self.versions()))
        offset = max(0, page - 1) * limit
        return newest_first[offset : offset + limit], len(newest_first)

    def create_version(self, new_version: RateVersion, as_of: date | datetime | None = None) -> RateVersion:
        on = as_date(as_of)
        if new_version.start_date < on:
            raise RateVersionError(
                f"Start date {new_version.start_date} is in the past; new rates must start on or after {on}"
            )
        if not new_version.is_open:
            new_version = dataclasses.replace(new_version, end_date=None)

        with self._lock, self._repository.atomic():
            current = self._open_version()
            if current is not None:
                if new_version.start_date <= current.start_date:
                    raise RateVersionError(
                        f"Start date {new_version.start_date} must be after the current version's "
                        f"start date {current.start_date}"
                    )
                closed = dataclasses.replace(current, end_date=new_version.start_date - ONE_DAY)
                self._repository.save_version(closed)
                logger.info("Closed rate version %s at %s", closed.id, closed.end_date)
            self._repository.save_version(new_version)

        logger.info("Created rate version %s effective %s", new_version.id, new_version.start_date)
        return new_version

    def update_version(
        self,
        version_id: str,
        as_of: date | datetime | None = None,
        **changes: object,
    ) -> RateVersion:
        """Correct a version that has not taken effect yet."""
        on = as_date(as_of)
        forbidden = _IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise RateVersionError(f"Cannot change {', '.join(sorted(forbidden))} of a rate version")

        with self._lock, self._repository.atomic():
            existing = self._require(version_id)
            self._require_future(existing, on, "edit")
            try:
                updated = dataclasses.replace(existing, **changes)
            except (TypeError, ValueError) as exc:
                raise RateVersionError(str(exc)) from exc
            if updated.start_date <= on:
                raise RateVersionError(f"Corrected start date {updated.start_date} must be after {on}")

            if updated.start_date != existing.start_date:
                predecessor = self._predecessor(existing)
                if predecessor is not None:
                    if updated.start_date <= predecessor.start_date:
                        raise RateVersionError(
                            f"Corrected start date {updated.start_date} must be after the previous "
                            f"version's start date {predecessor.start_date}"
                        )
                    self._repository.save_version(
                        dataclasses.replace(predecessor, end_date=updated.start_date - ONE_DAY)
                    )
            self._repository.save_version(updated)

        logger.info("Updated future rate version %s", version_id)
        return updated

    def withdraw_version(self, version_id: str, as_of: date | datetime | None = None) -> None:
        """Remove a version that has not taken effect yet, re-extending its predecessor."""
        on = as_date(as_of)
        with self._lock, self._repository.atomic():
            existing = self._require(version_id)
            self._require_future(existing, on, "withdraw")
            predecessor = self._predecessor(existing)
            if predecessor is not None:
                self._repository.save_version(dataclasses.replace(predecessor, end_date=existing.end_date))
            self._repository.delete_version(version_id)
        logger.info("Withdrew future rate version %s", version_id)

    def _open_version(self) -> RateVersion | None:
        open_versions = [v for v in self.versions() if v.is_open]
        if len(open_versions) > 1:
            logger.warning("Found %d open rate versions; using the latest", len(open_versions))
        return open_versions[-1] if open_versions else None

    def _require(self, version_id: str) -> RateVersion:
        version = self._repository.get_version(version_id)
        if version is None:
            raise RateVersionError(f"Rate version not found: {version_id}")
        return version

    @staticmethod
    def _require_future(version: RateVersion, on: date, action: str) -> None:
        if version.start_date <= on:
            raise RateVersionError(
                f"Cannot {action} rate version {version.id}: it took effect on {version.start_date}"
            )

    def _predecessor(self, version: RateVersion) -> RateVersion | None:
        earlier: Sequence[RateVersion] = [
            v for v in self.versions() if v.id != version.id and v.start_date < version.start_date
        ]
        return earlier[-1] if earlier else None
