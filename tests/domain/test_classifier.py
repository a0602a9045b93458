from datetime import date

from conftest import AS_OF, adult, business, minor

from mailbox_pricing.domain.classifier import RecipientClassifier
from mailbox_pricing.domain.models import Recipient, RecipientType


def test_first_business_recipient_only_sets_flag():
    result = RecipientClassifier().classify([business("b1", "Acme"), adult("a1")], AS_OF)

    assert result.has_business_recipient
    assert result.adult_count == 1
    assert result.minor_count == 0
    assert result.total_count == 1


def test_additional_business_recipients_count_as_adults():
    recipients = [business("b1"), business("b2"), business("b3"), adult("a1")]

    result = RecipientClassifier().classify(recipients, AS_OF)

    assert result.has_business_recipient
    assert result.adult_count == 3


def test_person_without_birthdate_is_adult():
    unknown = Recipient(id="p1", recipient_type=RecipientType.PERSON, name="No Birthday")

    result = RecipientClassifier().classify([unknown], AS_OF)

    assert result.adult_count == 1
    assert result.minor_count == 0


def test_minors_are_split_by_age_on_the_as_of_date():
    kid = minor("k1", date(2008, 6, 2))

    assert RecipientClassifier().classify([kid], date(2026, 6, 1)).minor_count == 1
    assert RecipientClassifier().classify([kid], date(2026, 6, 2)).adult_count == 1


def test_removed_recipients_are_ignored():
    gone = Recipient(
        id="old",
        recipient_type=RecipientType.PERSON,
        birthdate=date(1970, 1, 1),
        removed_date=date(2026, 1, 1),
    )

    result = RecipientClassifier().classify([adult("a1"), gone], AS_OF)

    assert result.adult_count == 1
