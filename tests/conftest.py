from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

import pytest

from mailbox_pricing.domain.models import (
    Account,
    AccountStatus,
    AdditionalAdultTier,
    RateVersion,
    Recipient,
    RecipientType,
    RenewalPeriod,
)

AS_OF = date(2026, 6, 1)
AUDITED_AT = datetime(2026, 6, 1, 10, 15, 0, tzinfo=timezone.utc)


def make_rates(
    version_id: str = "rates-2025",
    start: date = date(2025, 1, 1),
    end: date | None = None,
    monthly: str = "51",
) -> RateVersion:
    base = Decimal(monthly)
    return RateVersion(
        id=version_id,
        start_date=start,
        end_date=end,
        base_rate_3mo=base * 3,
        base_rate_6mo=base * 6,
        base_rate_12mo=base * 12,
        additional_adult_tiers=(
            AdditionalAdultTier(4, Decimal("2")),
            AdditionalAdultTier(5, Decimal("3")),
            AdditionalAdultTier(6, Decimal("4")),
            AdditionalAdultTier(7, Decimal("5")),
        ),
        business_account_fee=Decimal("5"),
        minor_recipient_fee=Decimal("1"),
        key_deposit=Decimal("10"),
    )


def adult(recipient_id: str, name: str = "", primary: bool = False) -> Recipient:
    return Recipient(
        id=recipient_id,
        recipient_type=RecipientType.PERSON,
        name=name or recipient_id.title(),
        birthdate=date(1980, 5, 1),
        is_primary=primary,
    )


def minor(recipient_id: str, birthdate: date, name: str = "") -> Recipient:
    return Recipient(
        id=recipient_id,
        recipient_type=RecipientType.PERSON,
        name=name or recipient_id.title(),
        birthdate=birthdate,
    )


def business(recipient_id: str, name: str = "", primary: bool = False) -> Recipient:
    return Recipient(
        id=recipient_id,
        recipient_type=RecipientType.BUSINESS,
        name=name,
        is_primary=primary,
    )


def make_account(
    account_id: str = "acct-1",
    mailbox_number: int = 101,
    current_rate: str = "51",
    period: RenewalPeriod = RenewalPeriod.THREE_MONTH,
    recipients: tuple[Recipient, ...] | None = None,
    status: AccountStatus = AccountStatus.ACTIVE,
    **extra: object,
) -> Account:
    if recipients is None:
        recipients = (adult(f"{account_id}-owner", name="Pat Owner", primary=True),)
    return Account(
        id=account_id,
        mailbox_number=mailbox_number,
        status=status,
        renewal_period=period,
        current_rate=Decimal(current_rate),
        start_date=date(2026, 1, 1),
        recipients=recipients,
        **extra,
    )


@pytest.fixture
def rates() -> RateVersion:
    return make_rates()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: AUDITED_AT
