"""Tests for the ordered step gates."""

from __future__ import annotations

from datetime import date, time

import pytest

from apps.stringing.domain.draft import (
    CUSTOM_ITEM,
    ApplicationDraft,
    CollectionMethod,
    DraftLine,
    FundingMode,
    StringSelection,
)
from apps.stringing.domain.steps import (
    CONTACT,
    FUNDING,
    NOTES,
    SERVICE,
    StepContext,
    StepValidationMachine,
    normalize_phone,
)


@pytest.fixture
def machine() -> StepValidationMachine:
    return StepValidationMachine()


@pytest.fixture
def complete_draft() -> ApplicationDraft:
    return ApplicationDraft(
        name="홍길동",
        email="customer@example.com",
        phone="010-1234-5678",
        postal_code="06236",
        address="서울시 강남구 테헤란로 1",
        collection_method=CollectionMethod.VISIT,
        selections=(StringSelection("STR-1"),),
        preferred_date=date(2030, 3, 4),
        preferred_time=time(11, 0),
        lines=(DraftLine("Pure Aero", "STR-1", "48", "46"),),
        bank="KB국민",
        depositor="홍길동",
    )


def test_complete_draft_passes_every_gate(machine, complete_draft):
    check = machine.validate_through(NOTES, complete_draft, context=StepContext(required_units=1))

    assert check.valid
    assert check.field is None


def test_contact_gate_reports_fields_in_fixed_order(machine, complete_draft):
    draft = complete_draft.with_changes(name="", phone="02-123-4567", address="")

    assert machine.first_failing_field(CONTACT, draft) == "name"
    assert machine.first_failing_field(CONTACT, draft.with_changes(name="홍길동")) == "phone"
    assert machine.first_failing_field(CONTACT, draft.with_changes(name="홍길동", phone="01012345678")) == "address"


@pytest.mark.parametrize("phone", ["010-1234-5678", "01012345678", "010 1234 5678"])
def test_phone_accepts_eleven_digit_mobile_numbers(machine, complete_draft, phone):
    assert machine.can_advance(CONTACT, complete_draft.with_changes(phone=phone))


@pytest.mark.parametrize("phone", ["0101234567", "011-1234-5678", "010-1234-56789", "abc"])
def test_phone_rejects_other_numbers(machine, complete_draft, phone):
    check = machine.validate(CONTACT, complete_draft.with_changes(phone=phone))

    assert not check.valid
    assert check.field == "phone"
    assert str(check.message)


def test_courier_pickup_requires_pickup_window(machine, complete_draft):
    draft = complete_draft.with_changes(collection_method=CollectionMethod.COURIER_PICKUP)

    assert machine.first_failing_field(CONTACT, draft) == "pickup_date"
    draft = draft.with_changes(pickup_date=date(2030, 3, 4))
    assert machine.first_failing_field(CONTACT, draft) == "pickup_time"
    assert machine.can_advance(CONTACT, draft.with_changes(pickup_time="10-12"))


def test_silent_validation_suppresses_message(machine, complete_draft):
    draft = complete_draft.with_changes(email="")

    loud = machine.validate(CONTACT, draft)
    quiet = machine.validate(CONTACT, draft, silent=True)

    assert loud.valid is quiet.valid is False
    assert loud.field == quiet.field == "email"
    assert str(loud.message)
    assert quiet.message == ""


def test_custom_string_needs_a_name(machine, complete_draft):
    draft = complete_draft.with_changes(selections=(StringSelection(CUSTOM_ITEM, use_count=1),))

    assert machine.first_failing_field(SERVICE, draft) == "custom_string_name"
    assert machine.can_advance(SERVICE, draft.with_changes(custom_string_name="Poly Tour Pro"))


def test_visit_requires_date_and_time(machine, complete_draft):
    draft = complete_draft.with_changes(preferred_date=None, preferred_time=None)

    assert machine.first_failing_field(SERVICE, draft) == "preferred_date"
    assert machine.first_failing_field(SERVICE, draft.with_changes(preferred_date=date(2030, 3, 4))) == "preferred_time"
    assert machine.can_advance(SERVICE, draft.with_changes(collection_method=CollectionMethod.SELF_SHIP))


def test_order_based_units_cannot_exceed_remaining_entitlement(machine, complete_draft):
    draft = complete_draft.with_changes(order_ref=10)

    over = StepContext(required_units=3, remaining_slots=2)
    within = StepContext(required_units=2, remaining_slots=2)

    assert machine.first_failing_field(SERVICE, draft, over) == "selections"
    assert machine.can_advance(SERVICE, draft, within)


def test_every_line_needs_label_and_both_tensions(machine, complete_draft):
    draft = complete_draft.with_changes(
        lines=(DraftLine("Pure Aero", "STR-1", "48", "46"), DraftLine("Blade", "STR-1", "50", "")),
    )

    check = machine.validate(SERVICE, draft)

    assert not check.valid
    assert check.field == "lines"


def test_funding_gate_skipped_for_rental_and_package(machine, complete_draft):
    unpaid = complete_draft.with_changes(bank="", depositor="")

    assert machine.first_failing_field(FUNDING, unpaid) == "bank"
    assert machine.can_advance(FUNDING, unpaid.with_changes(rental_ref=3))
    assert machine.can_advance(FUNDING, unpaid, StepContext(funding_mode=FundingMode.PACKAGE_CREDIT))


def test_notes_gate_is_always_valid(machine):
    assert machine.can_advance(NOTES, ApplicationDraft())


def test_validate_through_stops_at_first_failing_gate(machine, complete_draft):
    draft = complete_draft.with_changes(selections=(), depositor="")

    check = machine.validate_through(NOTES, draft)

    assert check.step == SERVICE
    assert check.field == "selections"


def test_unknown_step_is_rejected(machine, complete_draft):
    with pytest.raises(ValueError):
        machine.validate(9, complete_draft)


def test_normalize_phone_strips_separators():
    assert normalize_phone("010-1234-5678") == "01012345678"
    assert normalize_phone(None) == ""
