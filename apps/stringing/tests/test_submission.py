"""Tests for the submission handler: commit ordering, conflicts and retries."""

from __future__ import annotations

from datetime import time

import pytest

from apps.passes.models import ServicePass
from apps.passes.services import issue_pass
from apps.scheduling import services as capacity_service
from apps.scheduling.models import SlotCommitment, TimeSlot
from apps.stringing.application.command_handlers import SubmitApplicationCommand, SubmitApplicationHandler
from apps.stringing.domain.draft import CollectionMethod, DraftLine, FundingMode, StringSelection
from apps.stringing.domain.results import FailureKind
from apps.stringing.domain.steps import CONTACT, FUNDING, SERVICE
from apps.stringing.exceptions import ApplicationNotEditable, CollaboratorUnavailable
from apps.stringing.models import Application
from apps.stringing.services import DraftLifecycle

pytestmark = pytest.mark.django_db

ELEVEN = time(11, 0)


def _lines(count: int) -> tuple:
    return tuple(DraftLine(f"Racket {n}", "STR-1", "48", "46") for n in range(1, count + 1))


def prepare(customer, order, visit_day, **changes) -> Application:
    """Draft for ``order`` that passes every gate unless ``changes`` say otherwise."""

    lifecycle = DraftLifecycle()
    application = lifecycle.ensure_draft(customer, order_ref=order.pk).application
    values = {
        "selections": (StringSelection("STR-1"),),
        "collection_method": CollectionMethod.VISIT,
        "preferred_date": visit_day,
        "preferred_time": ELEVEN,
        "lines": _lines(2),
        "bank": "KB국민",
        "depositor": "홍길동",
    }
    values.update(changes)
    return lifecycle.update_draft(application, application.to_draft().with_changes(**values))


def submit(application, user=None, handler=None):
    handler = handler or SubmitApplicationHandler()
    return handler.handle(SubmitApplicationCommand(application_id=application.pk, user=user))


def test_visit_submission_commits_slot_and_promotes(customer, order, schedule, visit_day):
    application = prepare(customer, order, visit_day)

    result = submit(application, customer)

    assert result.ok, result.to_payload()
    application.refresh_from_db()
    assert application.status == Application.Status.SUBMITTED
    assert application.submitted_at is not None
    assert application.expires_at is None
    assert application.slot_commitment is not None
    assert application.slot_commitment.idempotency_key == str(application.pk)
    assert TimeSlot.objects.get(date=visit_day, time=ELEVEN).committed_units == 2
    assert application.history.filter(status=Application.Status.SUBMITTED).exists()


def test_retried_submit_does_not_double_commit(customer, order, schedule, visit_day):
    application = prepare(customer, order, visit_day)

    first = submit(application, customer)
    second = submit(application, customer)

    assert first.ok and not first.replayed
    assert second.ok and second.replayed
    assert second.application_id == first.application_id
    assert SlotCommitment.objects.count() == 1
    assert TimeSlot.objects.get(date=visit_day, time=ELEVEN).committed_units == 2


def test_slot_conflict_clears_time_and_refreshes_availability(customer, order, schedule, visit_day):
    application = prepare(customer, order, visit_day)
    before = capacity_service.availability(visit_day, 2)
    assert "11:00" in before["available_times"]

    # another customer fills the bucket after our availability fetch
    taken = capacity_service.commit(visit_day, ELEVEN, 3, idempotency_key="someone-else")
    assert taken.ok

    result = submit(application, customer)

    assert result.failure == FailureKind.SLOT_CONFLICT
    assert result.retryable is True
    assert result.step == SERVICE
    assert result.field == "preferred_time"
    assert "11:00" in result.availability["disabled_times"]
    application.refresh_from_db()
    assert application.status == Application.Status.DRAFT
    assert application.preferred_time is None
    assert application.slot_commitment is None
    assert TimeSlot.objects.get(date=visit_day, time=ELEVEN).committed_units == 3

    retry = prepare(customer, order, visit_day, preferred_time=time(14, 0))
    assert submit(retry, customer).ok


def test_package_submission_debits_pass_and_zeroes_total(customer, order, visit_day):
    service_pass = issue_pass(customer, 10)
    application = prepare(
        customer,
        order,
        visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        funding_requested=FundingMode.PACKAGE_CREDIT,
        bank="",
        depositor="",
    )
    assert application.funding_mode == Application.FundingMode.PACKAGE_CREDIT

    result = submit(application, customer)

    assert result.ok, result.to_payload()
    application.refresh_from_db()
    service_pass.refresh_from_db()
    assert application.total_price == 0
    assert application.base_fee == 12000
    assert application.pass_consumption.units == 2
    assert service_pass.remaining_count == 8
    assert application.slot_commitment is None


def test_insufficient_package_falls_back_to_cash(customer, order, visit_day):
    issue_pass(customer, 1)
    application = prepare(
        customer,
        order,
        visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        funding_requested=FundingMode.PACKAGE_CREDIT,
    )

    result = submit(application, customer)

    assert result.failure == FailureKind.INSUFFICIENT_BALANCE
    assert result.step == FUNDING
    assert result.retryable is True
    assert result.to_payload()["funding_mode"] == FundingMode.CASH
    application.refresh_from_db()
    assert application.status == Application.Status.DRAFT
    assert application.funding_requested == Application.FundingMode.CASH
    assert application.total_price == 12000

    assert submit(application, customer).ok


def test_failed_debit_rolls_back_slot_commit(customer, order, schedule, visit_day):
    issue_pass(customer, 10)
    application = prepare(customer, order, visit_day, funding_requested=FundingMode.PACKAGE_CREDIT)

    class RacingLedger:
        """A concurrent debit drains the pass right before ours."""

        def eligible_package(self, *args, **kwargs):
            from apps.passes.services import eligible_package

            return eligible_package(*args, **kwargs)

        def debit(self, pass_id, units, **kwargs):
            from apps.passes.services import debit

            ServicePass.objects.filter(pk=pass_id).update(remaining_count=1)
            return debit(pass_id, units, **kwargs)

    result = submit(application, customer, SubmitApplicationHandler(ledger=RacingLedger()))

    assert result.failure == FailureKind.INSUFFICIENT_BALANCE
    assert not SlotCommitment.objects.exists()
    assert not TimeSlot.objects.filter(committed_units__gt=0).exists()


def test_expired_pass_reports_grant_expired(customer, order, visit_day):
    service_pass = issue_pass(customer, 10)
    application = prepare(
        customer,
        order,
        visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        funding_requested=FundingMode.PACKAGE_CREDIT,
    )

    class ExpiringLedger:
        """Eligibility still reports the pass, but it expires before the debit."""

        def eligible_package(self, *args, **kwargs):
            from apps.passes.services import eligible_package

            return eligible_package(*args, **kwargs)

        def debit(self, pass_id, units, **kwargs):
            from apps.passes.services import debit

            ServicePass.objects.filter(pk=pass_id).update(status=ServicePass.Status.EXPIRED)
            return debit(pass_id, units, **kwargs)

    result = submit(application, customer, SubmitApplicationHandler(ledger=ExpiringLedger()))

    assert result.failure == FailureKind.GRANT_EXPIRED
    service_pass.refresh_from_db()
    assert service_pass.remaining_count == 10


def test_invalid_earlier_gate_blocks_submission(customer, order, visit_day):
    application = prepare(customer, order, visit_day, collection_method=CollectionMethod.SELF_SHIP, phone="02-555-0000")

    result = submit(application, customer)

    assert result.failure == FailureKind.VALIDATION
    assert result.step == CONTACT
    assert result.field == "phone"
    application.refresh_from_db()
    assert application.status == Application.Status.DRAFT


def test_entitlement_cap_enforced_for_stale_client(customer, order, visit_day):
    first = prepare(
        customer, order, visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        selections=(StringSelection("STR-1", use_count=1),),
        lines=_lines(1),
    )
    assert submit(first, customer).ok
    Application.objects.filter(pk=first.pk).update(status=Application.Status.IN_PROGRESS)

    second = prepare(customer, order, visit_day, collection_method=CollectionMethod.SELF_SHIP)
    assert second.required_units == 2

    result = submit(second, customer)

    assert result.failure == FailureKind.VALIDATION
    assert result.step == SERVICE
    assert result.field == "selections"


def test_exhausted_entitlement_blocks_submission(customer, order, visit_day):
    Application.objects.create(user=customer, order=order, status=Application.Status.COMPLETED, required_units=2)
    # a draft that predates the exhaustion
    stale = Application.objects.create(
        user=customer,
        order=order,
        name="홍길동",
        string_selections=[{"item_id": "STR-1", "use_count": None, "name": ""}],
    )

    result = submit(stale, customer)

    assert result.failure == FailureKind.BLOCKED
    assert result.retryable is False
    stale.refresh_from_db()
    assert stale.status == Application.Status.DRAFT


def test_unavailable_collaborator_leaves_draft(customer, order, visit_day):
    application = prepare(customer, order, visit_day)

    class DownGateway:
        @staticmethod
        def get_order(order_id, lock=False):
            raise CollaboratorUnavailable("orders database is down")

        @staticmethod
        def get_rental(rental_id, lock=False):
            raise CollaboratorUnavailable("orders database is down")

    result = submit(application, customer, SubmitApplicationHandler(gateway=DownGateway()))

    assert result.failure == FailureKind.UNAVAILABLE
    assert result.retryable is True
    application.refresh_from_db()
    assert application.status == Application.Status.DRAFT


def test_rental_submission_is_prepaid(customer, rental):
    lifecycle = DraftLifecycle()
    application = lifecycle.create_from_rental(rental.pk).application
    application = lifecycle.update_draft(
        application,
        application.to_draft().with_changes(
            collection_method=CollectionMethod.SELF_SHIP,
            lines=(DraftLine("Wilson Blade 98", "STR-9", "52", "50"),),
            funding_requested=FundingMode.PACKAGE_CREDIT,
        ),
    )

    result = submit(application, customer)

    assert result.ok, result.to_payload()
    application.refresh_from_db()
    assert application.funding_mode == Application.FundingMode.RENTAL_PREPAID
    assert application.total_price == 0
    assert application.pass_consumption is None


def test_cancelled_application_cannot_be_submitted(customer, order, visit_day):
    application = prepare(customer, order, visit_day)
    DraftLifecycle().abandon(application)

    with pytest.raises(ApplicationNotEditable):
        submit(application, customer)


def test_repeated_selection_cannot_exceed_entitlement(customer, order, visit_day):
    application = prepare(
        customer,
        order,
        visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        selections=(StringSelection("STR-1", use_count=2), StringSelection("STR-1", use_count=2)),
        lines=_lines(4),
    )
    assert application.required_units == 4

    result = submit(application, customer)

    assert result.failure == FailureKind.VALIDATION
    assert result.step == SERVICE
    assert result.field == "selections"
    application.refresh_from_db()
    assert application.status == Application.Status.DRAFT


def test_earlier_gate_reported_before_package_fallback(customer, order, visit_day):
    issue_pass(customer, 1)
    application = prepare(
        customer,
        order,
        visit_day,
        collection_method=CollectionMethod.SELF_SHIP,
        funding_requested=FundingMode.PACKAGE_CREDIT,
        phone="02-555-0000",
    )

    result = submit(application, customer)

    assert result.failure == FailureKind.VALIDATION
    assert result.step == CONTACT
    assert result.field == "phone"
    application.refresh_from_db()
    assert application.funding_requested == Application.FundingMode.PACKAGE_CREDIT
