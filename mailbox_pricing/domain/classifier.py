"""Recipient classification rules shared by every pricing path."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from .dates import as_date, is_minor
from .models import Recipient, RecipientClassification, RecipientType


@dataclass(frozen=True)
class RecipientPartition:
    adults: tuple[Recipient, ...]
    minors: tuple[Recipient, ...]
    business_count: int

    @property
    def has_business_recipient(self) -> bool:
        return self.business_count > 0


class RecipientClassifier:
    """Counts adults and minors for pricing.

    The first business recipient only marks the account as a business account
    and is not counted; every further business recipient counts as an adult.
    Persons without a birthdate are assumed to be adults.
    """

    def partition(
        self, recipients: Iterable[Recipient], as_of: date | datetime | None = None
    ) -> RecipientPartition:
        on = as_date(as_of)
        adults: list[Recipient] = []
        minors: list[Recipient] = []
        business_seen = 0
        for recipient in recipients:
            if not recipient.is_active:
                continue
            if recipient.recipient_type is RecipientType.BUSINESS:
                business_seen += 1
                if business_seen > 1:
                    adults.append(recipient)
            elif recipient.birthdate is not None and is_minor(recipient.birthdate, on):
                minors.append(recipient)
            else:
                adults.append(recipient)
        return RecipientPartition(adults=tuple(adults), minors=tuple(minors), business_count=business_seen)

    def classify(
        self, recipients: Iterable[Recipient], as_of: date | datetime | None = None
    ) -> RecipientClassification:
        parts = self.partition(recipients, as_of)
        adult_count = len(parts.adults)
        minor_count = len(parts.minors)
        return RecipientClassification(
            adult_count=adult_count,
            minor_count=minor_count,
            has_business_recipient=parts.has_business_recipient,
            total_count=adult_count + minor_count,
        )
