"""
Stringing Command Handlers

Use cases that change an application's lifecycle state.

Commands:
- SubmitApplicationCommand: Promote a draft to ``submitted``
"""

from dataclasses import dataclass
from typing import Any, Optional
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.orders import gateway as orders_gateway
from apps.passes import services as ledger_service
from apps.scheduling import services as capacity_service
from apps.stringing.domain.draft import CollectionMethod, FundingMode
from apps.stringing.domain.pricing import PricingEngine
from apps.stringing.domain.results import (
    DebitFailure,
    DebitResult,
    FailureKind,
    SlotCommitResult,
    SlotFailure,
    SubmissionResult,
)
from apps.stringing.domain.steps import FUNDING, SERVICE, StepContext, StepValidationMachine
from apps.stringing.exceptions import ApplicationNotEditable, CollaboratorUnavailable, DraftNotFound
from apps.stringing.models import Application
from apps.stringing.services import EntitlementResolver, ensure_owner
from shared.infrastructure.db import lock_queryset_if_possible

logger = logging.getLogger(__name__)

SLOT_CONFLICT_MESSAGE = "선택하신 시간이 방금 마감되었습니다. 다른 시간을 선택해주세요."
SLOT_UNAVAILABLE_MESSAGE = "선택하신 날짜/시간은 예약할 수 없습니다."
BALANCE_MESSAGE = "패키지 잔여 횟수가 부족하여 무통장 입금으로 변경되었습니다."
EXPIRED_MESSAGE = "패키지 이용권이 만료되어 무통장 입금으로 변경되었습니다."
BLOCKED_MESSAGE = "이 주문으로 신청 가능한 교체 횟수를 모두 사용했습니다."
OVER_CAP_MESSAGE = "주문에서 신청 가능한 교체 수량을 초과했습니다."
UNAVAILABLE_MESSAGE = "일시적인 오류로 신청을 완료하지 못했습니다. 잠시 후 다시 시도해주세요."


# ===== Commands =====

@dataclass
class SubmitApplicationCommand:
    """Command to submit a draft application"""
    application_id: Any
    user: Any = None


class _Abort(Exception):
    """Rolls back the submission transaction and carries the failed sub-step."""

    def __init__(self, slot: Optional[SlotCommitResult] = None, debit: Optional[DebitResult] = None):
        super().__init__()
        self.slot = slot
        self.debit = debit


# ===== Command Handlers =====

class SubmitApplicationHandler:
    """
    Handler for SubmitApplication command

    Order of operations, all inside one database transaction:
    1. Lock the application and its order/rental row
    2. Re-check entitlement against the locked order (stale clients included)
    3. Re-validate gates 1-3
    4. Commit the visit slot (visit collection only)
    5. Debit the package pass (package funding only)
    6. Promote the draft to ``submitted``

    A failed slot commit or debit rolls everything back; the handler then
    applies the corrective edit (clear the time, or fall back to cash)
    outside the rolled-back transaction. Slot commit and debit are keyed
    by the application id, so a retried submit cannot double-commit.
    """

    def __init__(self, gateway=orders_gateway, capacity=capacity_service, ledger=ledger_service,
                 pricing: Optional[PricingEngine] = None, steps: Optional[StepValidationMachine] = None):
        self.gateway = gateway
        self.capacity = capacity
        self.ledger = ledger
        self.pricing = pricing or PricingEngine.from_settings()
        self.steps = steps or StepValidationMachine.from_settings()
        self.resolver = EntitlementResolver(gateway)

    def handle(self, command: SubmitApplicationCommand) -> SubmissionResult:
        application = Application.objects.filter(pk=command.application_id).first()
        if application is None:
            raise DraftNotFound("신청서를 찾을 수 없습니다.")
        ensure_owner(command.user, application.user_id)

        replay = self._replay_or_raise(application)
        if replay is not None:
            return replay

        logger.info(f"Submitting application {application.pk}")
        try:
            with transaction.atomic():
                return self._submit_locked(application.pk)
        except _Abort as abort:
            application.refresh_from_db()
            if abort.slot is not None:
                return self._on_slot_failure(application, abort.slot)
            return self._on_debit_failure(application, abort.debit)
        except (CollaboratorUnavailable, DatabaseError):
            logger.error(f"Submission of {application.pk} failed: collaborator unavailable", exc_info=True)
            return SubmissionResult(
                application_id=str(application.pk),
                failure=FailureKind.UNAVAILABLE,
                message=UNAVAILABLE_MESSAGE,
                retryable=True,
            )

    # --- steps ----------------------------------------------------------

    def _replay_or_raise(self, application: Application) -> Optional[SubmissionResult]:
        if application.status in Application.CONSUMING_STATUSES:
            return SubmissionResult(application_id=str(application.pk), replayed=True)
        if application.status != Application.Status.DRAFT:
            raise ApplicationNotEditable("취소되었거나 만료된 신청서입니다.")
        return None

    def _submit_locked(self, application_id) -> SubmissionResult:
        application = lock_queryset_if_possible(Application.objects.filter(pk=application_id)).get()
        replay = self._replay_or_raise(application)
        if replay is not None:
            return replay

        order = self.gateway.get_order(application.order_id, lock=True) if application.order_id else None
        rental = self.gateway.get_rental(application.rental_id, lock=True) if application.rental_id else None
        if (application.order_id and order is None) or (application.rental_id and rental is None):
            raise CollaboratorUnavailable("order or rental disappeared")

        draft = application.to_draft()
        units = self.pricing.required_units(draft, order)

        window = None
        if order is not None:
            window = self.resolver.window_for(order.total_slots, order_ref=order.id)
        elif rental is not None:
            window = self.resolver.window_for(rental.total_slots, rental_ref=rental.id)

        if window is not None and (window.blocked or units > window.remaining_slots):
            if window.remaining_slots <= 0:
                logger.warning(f"Submission of {application.pk} blocked: entitlement exhausted")
                return SubmissionResult(
                    application_id=str(application.pk),
                    failure=FailureKind.BLOCKED,
                    message=BLOCKED_MESSAGE,
                )
            return SubmissionResult(
                application_id=str(application.pk),
                failure=FailureKind.VALIDATION,
                message=OVER_CAP_MESSAGE,
                step=SERVICE,
                field="selections",
            )

        package = self.ledger.eligible_package(application.user, units, rental_ref=application.rental_id)
        funding = self.pricing.resolve_funding(draft, package)
        context = StepContext(
            required_units=units,
            remaining_slots=window.remaining_slots if window is not None else None,
            funding_mode=funding,
        )

        # earlier gates win over a funding fallback
        check = self.steps.validate_through(SERVICE, draft, context=context)
        if check.valid:
            if draft.funding_requested == FundingMode.PACKAGE_CREDIT and funding != FundingMode.PACKAGE_CREDIT:
                raise _Abort(debit=DebitResult.failed(DebitFailure.INSUFFICIENT_BALANCE))
            check = self.steps.validate(FUNDING, draft, context=context)
        if not check.valid:
            return SubmissionResult(
                application_id=str(application.pk),
                failure=FailureKind.VALIDATION,
                message=str(check.message),
                step=check.step,
                field=check.field,
            )

        quote = self.pricing.quote(draft, order=order, rental=rental, package=package)
        key = str(application.pk)

        if draft.collection_method == CollectionMethod.VISIT:
            slot = self.capacity.commit(draft.preferred_date, draft.preferred_time, units, idempotency_key=key)
            if not slot.ok:
                raise _Abort(slot=slot)
            application.slot_commitment_id = slot.commitment_id

        if funding == FundingMode.PACKAGE_CREDIT:
            debit = self.ledger.debit(package.pass_id, units, idempotency_key=key, rental_ref=application.rental_id)
            if not debit.ok:
                raise _Abort(debit=debit)
            application.pass_consumption_id = debit.consumption_id

        application.status = Application.Status.SUBMITTED
        application.submitted_at = timezone.now()
        application.expires_at = None
        application.required_units = quote.required_units
        application.base_fee = quote.base_fee.won
        application.logistics_fee = quote.logistics_fee.won
        application.total_price = quote.total.won
        application.funding_mode = quote.funding_mode
        application.save()
        application.record("신청서 접수 완료")

        logger.info(
            f"Application {application.pk} submitted: {units} unit(s), "
            f"funding {funding}, total {quote.total}"
        )
        return SubmissionResult(application_id=str(application.pk))

    # --- corrective actions ----------------------------------------------

    def _on_slot_failure(self, application: Application, slot: SlotCommitResult) -> SubmissionResult:
        day = application.preferred_date
        application.preferred_time = None
        application.save(update_fields=["preferred_time", "updated_at"])

        refreshed = None
        try:
            refreshed = self.capacity.availability(day, max(application.required_units, 1))
        except (capacity_service.BookingWindowError, CollaboratorUnavailable, DatabaseError):
            logger.warning(f"Could not refresh availability for {day}", exc_info=True)

        if slot.failure == SlotFailure.CONFLICT:
            return SubmissionResult(
                application_id=str(application.pk),
                failure=FailureKind.SLOT_CONFLICT,
                message=SLOT_CONFLICT_MESSAGE,
                step=SERVICE,
                field="preferred_time",
                retryable=True,
                availability=refreshed,
            )
        return SubmissionResult(
            application_id=str(application.pk),
            failure=FailureKind.VALIDATION,
            message=SLOT_UNAVAILABLE_MESSAGE,
            step=SERVICE,
            field="preferred_date" if slot.failure != SlotFailure.INVALID_TIME else "preferred_time",
            availability=refreshed,
        )

    def _on_debit_failure(self, application: Application, debit: DebitResult) -> SubmissionResult:
        application.funding_requested = Application.FundingMode.CASH
        application.funding_mode = Application.FundingMode.CASH
        application.total_price = application.base_fee + application.logistics_fee
        application.save(update_fields=["funding_requested", "funding_mode", "total_price", "updated_at"])

        expired = debit.failure == DebitFailure.GRANT_EXPIRED
        logger.warning(f"Application {application.pk} fell back to cash funding: {debit.failure.value}")
        return SubmissionResult(
            application_id=str(application.pk),
            failure=FailureKind.GRANT_EXPIRED if expired else FailureKind.INSUFFICIENT_BALANCE,
            message=EXPIRED_MESSAGE if expired else BALANCE_MESSAGE,
            step=FUNDING,
            field="funding_mode",
            retryable=True,
            extra={"funding_mode": FundingMode.CASH},
        )
