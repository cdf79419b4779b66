"""Domain services for stringing applications.

``EntitlementResolver`` answers how many more service lines an order or
rental still allows. ``DraftLifecycle`` keeps at most one active
application per order or rental: the partial unique constraints on
``Application`` are the guard, and a lost creation race falls back to
the row the winner inserted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings  # type: ignore
from django.core.exceptions import PermissionDenied  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Sum  # type: ignore
from django.utils import timezone  # type: ignore

from apps.orders import gateway as orders_gateway
from apps.passes import services as ledger

from .domain.draft import ApplicationDraft, FundingMode, expand_lines
from .domain.pricing import PricingEngine
from .domain.steps import StepContext
from .exceptions import (
    ApplicationNotEditable,
    CollaboratorUnavailable,
    DraftNotFound,
    EntitlementBlocked,
    ServiceNotEligible,
)
from .models import Application

logger = logging.getLogger(__name__)


def draft_ttl() -> timedelta:
    return timedelta(hours=settings.STRINGING["DRAFT_TTL_HOURS"])


def ensure_owner(user, owner_id) -> None:
    if owner_id is None or user is None:
        return
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return
    if owner_id != user.pk:
        raise PermissionDenied("다른 고객의 주문입니다.")


# ===== Entitlement =====

@dataclass(frozen=True)
class EntitlementWindow:
    total_slots: int = 0
    used_slots: int = 0
    remaining_slots: int = 0
    has_prior: bool = False
    blocked: bool = False
    unknown: bool = False

    def to_dict(self) -> dict:
        return {
            "total_slots": self.total_slots,
            "used_slots": self.used_slots,
            "remaining_slots": self.remaining_slots,
            "blocked": self.blocked,
            "unknown": self.unknown,
        }


UNKNOWN_WINDOW = EntitlementWindow(blocked=True, unknown=True)


class EntitlementResolver:
    """Remaining service lines for an order or rental."""

    def __init__(self, gateway=orders_gateway):
        self.gateway = gateway

    @staticmethod
    def used_units(*, order_ref=None, rental_ref=None) -> int:
        qs = Application.objects.filter(status__in=Application.CONSUMING_STATUSES)
        if order_ref is not None:
            qs = qs.filter(order_id=order_ref)
        else:
            qs = qs.filter(rental_id=rental_ref)
        return qs.aggregate(total=Sum("required_units"))["total"] or 0

    def window_for(self, total: int, *, order_ref=None, rental_ref=None) -> EntitlementWindow:
        used = self.used_units(order_ref=order_ref, rental_ref=rental_ref)
        remaining = max(total - used, 0)
        has_prior = used > 0
        return EntitlementWindow(
            total_slots=total,
            used_slots=used,
            remaining_slots=remaining,
            has_prior=has_prior,
            blocked=remaining <= 0 and has_prior,
        )

    def resolve(self, order_ref=None, rental_ref=None) -> Optional[EntitlementWindow]:
        """Entitlement window, ``None`` for standalone requests.

        A failed lookup yields an unknown window, which counts as blocked.
        """
        if order_ref is None and rental_ref is None:
            return None
        try:
            if order_ref is not None:
                snapshot = self.gateway.get_order(order_ref)
            else:
                snapshot = self.gateway.get_rental(rental_ref)
        except CollaboratorUnavailable:
            logger.warning(f"Entitlement unknown for order={order_ref} rental={rental_ref}")
            return UNKNOWN_WINDOW
        if snapshot is None:
            raise DraftNotFound("주문 정보를 찾을 수 없습니다.")
        return self.window_for(snapshot.total_slots, order_ref=order_ref, rental_ref=rental_ref)


# ===== Draft lifecycle =====

@dataclass(frozen=True)
class DraftHandle:
    application: Application
    reused: bool

    @property
    def application_id(self) -> str:
        return str(self.application.pk)


class DraftLifecycle:

    def __init__(self, gateway=orders_gateway, resolver: Optional[EntitlementResolver] = None,
                 pricing: Optional[PricingEngine] = None):
        self.gateway = gateway
        self.resolver = resolver or EntitlementResolver(gateway)
        self.pricing = pricing or PricingEngine.from_settings()

    # --- lookup ---------------------------------------------------------

    @staticmethod
    def _active(**filters) -> Optional[Application]:
        return (
            Application.objects.filter(status__in=Application.ACTIVE_STATUSES, **filters)
            .order_by("-created_at")
            .first()
        )

    def find_by_order(self, order_ref, user=None) -> Application:
        application = self._active(order_id=order_ref)
        if application is None:
            raise DraftNotFound("진행 중인 신청서가 없습니다.")
        ensure_owner(user, application.user_id)
        return application

    def find_by_rental(self, rental_ref, user=None) -> Application:
        application = self._active(rental_id=rental_ref)
        if application is None:
            raise DraftNotFound("진행 중인 신청서가 없습니다.")
        ensure_owner(user, application.user_id)
        return application

    # --- creation -------------------------------------------------------

    def ensure_draft(self, user, *, order_ref=None, rental_ref=None, catalog_mounting_fee=None,
                     now: Optional[datetime] = None) -> DraftHandle:
        """Return the single active application for the reference, creating a draft if needed.

        Rental drafts are only discovered here; ``create_from_rental`` is
        their sole creator.
        """
        now = now or timezone.now()

        if rental_ref is not None:
            return DraftHandle(self.find_by_rental(rental_ref, user), reused=True)

        if order_ref is None:
            application = Application.objects.create(
                user=user if getattr(user, "is_authenticated", False) else None,
                catalog_mounting_fee=catalog_mounting_fee,
                expires_at=now + draft_ttl(),
            )
            application.record("신청서 작성 시작", status=Application.Status.DRAFT)
            logger.info(f"Created standalone draft {application.pk}")
            return DraftHandle(application, reused=False)

        try:
            order = self.gateway.get_order(order_ref)
        except CollaboratorUnavailable:
            logger.warning(f"Draft blocked for order {order_ref}: entitlement unknown")
            raise EntitlementBlocked(
                "주문 정보를 확인할 수 없어 신청을 시작할 수 없습니다. 잠시 후 다시 시도해주세요.",
                unknown=True,
            )
        if order is None:
            raise DraftNotFound("주문 정보를 찾을 수 없습니다.")
        ensure_owner(user, order.user_id)

        if order.total_slots <= 0:
            raise ServiceNotEligible("교체 서비스 대상 상품이 없는 주문입니다.")

        window = self.resolver.window_for(order.total_slots, order_ref=order_ref)
        existing = self._active(order_id=order_ref)
        if window.blocked:
            logger.warning(f"Draft blocked for order {order_ref}: entitlement exhausted")
            raise EntitlementBlocked(
                "이 주문으로 신청 가능한 교체 횟수를 모두 사용했습니다.",
                application_id=str(existing.pk) if existing else None,
            )

        if existing is not None:
            return DraftHandle(self._touch(existing, now), reused=True)

        try:
            with transaction.atomic():
                application = Application.objects.create(
                    user=user if getattr(user, "is_authenticated", False) else None,
                    order_id=order_ref,
                    name=order.contact.name,
                    email=order.contact.email,
                    phone=order.contact.phone,
                    postal_code=order.contact.postal_code,
                    address=order.contact.address,
                    address_detail=order.contact.address_detail,
                    collection_method=orders_gateway.collection_method_for(order.pickup_method),
                    racket_type=order.racket_lines[0].name if len(order.racket_lines) == 1 else "",
                    catalog_mounting_fee=catalog_mounting_fee,
                    expires_at=now + draft_ttl(),
                )
                application.record("신청서 작성 시작", status=Application.Status.DRAFT)
        except IntegrityError:
            existing = self._active(order_id=order_ref)
            if existing is None:
                raise
            logger.warning(f"Concurrent draft creation for order {order_ref}, reusing {existing.pk}")
            return DraftHandle(self._touch(existing, now), reused=True)

        logger.info(f"Created draft {application.pk} for order {order_ref}")
        return DraftHandle(application, reused=False)

    def _touch(self, application: Application, now: datetime) -> Application:
        if application.is_draft:
            application.expires_at = now + draft_ttl()
            application.save(update_fields=["expires_at", "updated_at"])
            logger.info(f"Reused draft {application.pk}")
        return application

    def create_from_rental(self, rental_ref, *, now: Optional[datetime] = None) -> DraftHandle:
        """Create the single application for a rental. Called by rental checkout."""

        now = now or timezone.now()
        rental = self.gateway.get_rental(rental_ref)
        if rental is None:
            raise DraftNotFound("대여 정보를 찾을 수 없습니다.")
        if rental.total_slots <= 0:
            raise ServiceNotEligible("교체 서비스를 신청하지 않은 대여입니다.")

        existing = self._active(rental_id=rental_ref)
        if existing is not None:
            return DraftHandle(existing, reused=True)

        selections = []
        if rental.string_product_id:
            selections.append({"item_id": rental.string_product_id, "use_count": None, "name": rental.string_name})
        base, _source = self.pricing.rental_base_fee(rental)
        try:
            with transaction.atomic():
                application = Application.objects.create(
                    user_id=rental.user_id,
                    rental_id=rental_ref,
                    name=rental.contact.name,
                    email=rental.contact.email,
                    phone=rental.contact.phone,
                    postal_code=rental.contact.postal_code,
                    address=rental.contact.address,
                    address_detail=rental.contact.address_detail,
                    collection_method=orders_gateway.collection_method_for(rental.pickup_method),
                    racket_type=rental.racket_name,
                    string_selections=selections,
                    funding_requested=Application.FundingMode.RENTAL_PREPAID,
                    funding_mode=Application.FundingMode.RENTAL_PREPAID,
                    required_units=len(selections),
                    base_fee=base.won,
                    total_price=0,
                    expires_at=now + draft_ttl(),
                )
                application.record("대여 결제와 함께 신청서 생성", status=Application.Status.DRAFT)
        except IntegrityError:
            existing = self._active(rental_id=rental_ref)
            if existing is None:
                raise
            return DraftHandle(existing, reused=True)

        logger.info(f"Created draft {application.pk} for rental {rental_ref}")
        return DraftHandle(application, reused=False)

    # --- editing --------------------------------------------------------

    def load_collaborators(self, application: Application) -> tuple:
        """Order and rental snapshots for an application (either may be ``None``)."""
        order = self.gateway.get_order(application.order_id) if application.order_id else None
        rental = self.gateway.get_rental(application.rental_id) if application.rental_id else None
        return order, rental

    @transaction.atomic
    def update_draft(self, application: Application, draft: ApplicationDraft,
                     now: Optional[datetime] = None) -> Application:
        """Persist a draft edit and refresh its price breakdown."""

        now = now or timezone.now()
        if not application.is_draft:
            raise ApplicationNotEditable("제출된 신청서는 수정할 수 없습니다.")

        order, rental = self.load_collaborators(application)
        if application.rental_id:
            draft = draft.with_changes(funding_requested=FundingMode.RENTAL_PREPAID)

        units_by_item = self.pricing.units_per_selection(draft, order)
        default_racket = order.racket_lines[0].name if order and len(order.racket_lines) == 1 else ""
        lines = expand_lines(draft, units_by_item, default_racket)
        draft = draft.with_changes(lines=lines)

        required = sum(units_by_item.values())
        package = ledger.eligible_package(application.user, required, rental_ref=application.rental_id)
        quote = self.pricing.quote(draft, order=order, rental=rental, package=package)

        application.apply_draft(draft)
        application.required_units = quote.required_units
        application.base_fee = quote.base_fee.won
        application.logistics_fee = quote.logistics_fee.won
        application.total_price = quote.total.won
        application.funding_mode = quote.funding_mode
        application.expires_at = now + draft_ttl()
        application.save()
        application.replace_lines(lines)
        return application

    def abandon(self, application: Application) -> Application:
        if not application.is_draft:
            raise ApplicationNotEditable("작성 중인 신청서만 취소할 수 있습니다.")
        application.status = Application.Status.CANCELLED
        application.expires_at = None
        application.save(update_fields=["status", "expires_at", "updated_at"])
        application.record("고객이 작성 중 신청서를 취소함")
        logger.info(f"Draft {application.pk} abandoned")
        return application


def expire_stale_drafts(now: Optional[datetime] = None) -> int:
    """Move drafts past their ``expires_at`` to ``expired``."""

    now = now or timezone.now()
    stale_ids = list(
        Application.objects.filter(status=Application.Status.DRAFT, expires_at__lt=now).values_list("pk", flat=True)
    )
    if not stale_ids:
        return 0
    with transaction.atomic():
        count = Application.objects.filter(pk__in=stale_ids, status=Application.Status.DRAFT).update(
            status=Application.Status.EXPIRED,
            updated_at=now,
        )
        from .models import ApplicationHistory

        ApplicationHistory.objects.bulk_create(
            [
                ApplicationHistory(
                    application_id=pk,
                    status=Application.Status.EXPIRED,
                    description="작성 기한이 지나 자동 만료됨",
                )
                for pk in stale_ids
            ]
        )
    logger.info(f"Expired {count} stale drafts")
    return count


def quote_for(application: Application, lifecycle: Optional[DraftLifecycle] = None) -> dict:
    """Price breakdown, package eligibility and entitlement for display."""

    from apps.scheduling.services import load_config

    lifecycle = lifecycle or DraftLifecycle()
    order, rental = lifecycle.load_collaborators(application)
    draft = application.to_draft()
    pricing = lifecycle.pricing
    units = pricing.required_units(draft, order)
    package = ledger.eligible_package(application.user, units, rental_ref=application.rental_id)
    quote = pricing.quote(draft, order=order, rental=rental, package=package)

    window = None
    if order is not None:
        window = lifecycle.resolver.window_for(order.total_slots, order_ref=order.id)
    elif rental is not None:
        window = lifecycle.resolver.window_for(rental.total_slots, rental_ref=rental.id)

    config = load_config()
    return {
        "application_id": str(application.pk),
        "quote": quote.to_dict(),
        "package": package.to_dict(),
        "entitlement": window.to_dict() if window else None,
        "visit_duration_minutes": config.interval * max(units, 1),
    }




def step_context_for(application: Application, draft: ApplicationDraft,
                     lifecycle: Optional[DraftLifecycle] = None):
    """Collaborator facts the step gates need for ``draft``."""

    lifecycle = lifecycle or DraftLifecycle()
    order, rental = lifecycle.load_collaborators(application)
    units = lifecycle.pricing.required_units(draft, order)
    remaining = None
    if order is not None:
        remaining = lifecycle.resolver.window_for(order.total_slots, order_ref=order.id).remaining_slots
    package = ledger.eligible_package(application.user, units, rental_ref=application.rental_id)
    return StepContext(
        required_units=units,
        remaining_slots=remaining,
        funding_mode=lifecycle.pricing.resolve_funding(draft, package),
    )
