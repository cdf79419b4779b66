"""Credit ledger for package passes.

Balances are only ever changed by a single conditional ``UPDATE`` and
every debit is recorded in ``PassConsumption`` under the application's
id, so replays and concurrent debits cannot spend the same credit twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.stringing.domain.results import DebitFailure, DebitResult

from .models import PassConsumption, ServicePass

logger = logging.getLogger(__name__)

PASS_VALID_DAYS = 365


@dataclass(frozen=True)
class PackageEligibility:
    has: bool = False
    remaining: int = 0
    sufficient: bool = False
    pass_id: Optional[int] = None
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "has": self.has,
            "remaining": self.remaining,
            "sufficient": self.sufficient,
            "pass_id": self.pass_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


class _DebitRejected(Exception):
    """Internal signal that rolls back the consumption insert."""


def active_passes(user, *, now: Optional[datetime] = None):
    """Usable passes for a user, soonest-expiring first."""

    now = now or timezone.now()
    return ServicePass.objects.filter(
        user=user,
        status=ServicePass.Status.ACTIVE,
        remaining_count__gt=0,
        expires_at__gte=now,
    ).order_by("expires_at", "id")


def eligible_package(user, required_units: int, *, rental_ref=None, now: Optional[datetime] = None) -> PackageEligibility:
    """Report whether the user's passes can cover ``required_units``.

    The soonest-expiring sufficient pass is chosen. When none is
    sufficient the soonest-expiring pass is still reported with
    ``sufficient=False`` so the client can show it, but it must not be
    selected. Rental-based applications are never package-eligible.
    """

    if rental_ref is not None or user is None or not getattr(user, "is_authenticated", False):
        return PackageEligibility()

    passes = list(active_passes(user, now=now))
    if not passes:
        return PackageEligibility()

    units = max(int(required_units or 0), 1)
    for service_pass in passes:
        if service_pass.remaining_count >= units:
            return PackageEligibility(
                has=True,
                remaining=service_pass.remaining_count,
                sufficient=True,
                pass_id=service_pass.pk,
                expires_at=service_pass.expires_at,
            )

    first = passes[0]
    return PackageEligibility(
        has=True,
        remaining=first.remaining_count,
        sufficient=False,
        pass_id=first.pk,
        expires_at=first.expires_at,
    )


def debit(pass_id: int, units: int, *, idempotency_key: str, rental_ref=None,
          now: Optional[datetime] = None) -> DebitResult:
    """Take ``units`` credits from a pass, once per ``idempotency_key``."""

    if rental_ref is not None:
        logger.warning(f"Rejected package debit for rental-based application {idempotency_key}")
        return DebitResult.failed(DebitFailure.RENTAL_PREPAID)

    now = now or timezone.now()
    key = str(idempotency_key)

    existing = PassConsumption.objects.filter(service_pass_id=pass_id, idempotency_key=key).first()
    if existing is not None:
        return _replay(existing)

    try:
        with transaction.atomic():
            consumption = PassConsumption.objects.create(
                service_pass_id=pass_id,
                idempotency_key=key,
                units=units,
            )
            updated = ServicePass.objects.filter(
                pk=pass_id,
                status=ServicePass.Status.ACTIVE,
                remaining_count__gte=units,
                expires_at__gte=now,
            ).update(remaining_count=F("remaining_count") - units, updated_at=now)
            if not updated:
                raise _DebitRejected()
    except IntegrityError:
        existing = PassConsumption.objects.filter(service_pass_id=pass_id, idempotency_key=key).first()
        if existing is None:
            raise
        return _replay(existing)
    except _DebitRejected:
        failure = _classify_rejection(pass_id, now)
        logger.warning(f"Package debit of {units} from pass {pass_id} rejected: {failure.value}")
        return DebitResult.failed(failure)

    remaining = ServicePass.objects.values_list("remaining_count", flat=True).get(pk=pass_id)
    logger.info(f"Debited {units} from pass {pass_id} for {key}, {remaining} left")
    return DebitResult.success(consumption.pk, remaining)


def _replay(consumption: PassConsumption) -> DebitResult:
    remaining = ServicePass.objects.values_list("remaining_count", flat=True).get(pk=consumption.service_pass_id)
    return DebitResult.success(consumption.pk, remaining, replayed=True)


def _classify_rejection(pass_id: int, now: datetime) -> DebitFailure:
    service_pass = ServicePass.objects.filter(pk=pass_id).first()
    if service_pass is None:
        return DebitFailure.GRANT_EXPIRED
    if service_pass.status != ServicePass.Status.ACTIVE or service_pass.expires_at < now:
        return DebitFailure.GRANT_EXPIRED
    return DebitFailure.INSUFFICIENT_BALANCE


@transaction.atomic
def issue_pass(user, package_size: int, *, source_order=None, source_item_id: str = "",
               valid_days: int = PASS_VALID_DAYS, now: Optional[datetime] = None) -> ServicePass:
    """Create a pass, once per (source order, source item)."""

    if package_size <= 0:
        raise ValueError("package_size must be positive")

    now = now or timezone.now()
    defaults = {
        "user": user,
        "package_size": package_size,
        "remaining_count": package_size,
        "issued_at": now,
        "expires_at": now + timedelta(days=valid_days),
    }
    if source_order is None:
        service_pass = ServicePass.objects.create(source_item_id=source_item_id, **defaults)
        created = True
    else:
        service_pass, created = ServicePass.objects.get_or_create(
            source_order=source_order,
            source_item_id=source_item_id,
            defaults=defaults,
        )
    if created:
        logger.info(f"Issued pass {service_pass.pk} ({package_size} credits) to user {user.pk}")
    return service_pass


def expire_passes(now: Optional[datetime] = None) -> int:
    """Mark active passes past their expiry as expired."""

    now = now or timezone.now()
    count = ServicePass.objects.filter(
        status=ServicePass.Status.ACTIVE,
        expires_at__lt=now,
    ).update(status=ServicePass.Status.EXPIRED, updated_at=now)
    if count:
        logger.info(f"Expired {count} package passes")
    return count
