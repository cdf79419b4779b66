"""Capacity negotiation for visit appointments.

``availability`` is a read used while the customer edits a draft;
``commit`` is called only at submission and is the sole writer of
``TimeSlot.committed_units``. The increment is one conditional UPDATE
guarded by the bucket capacity, so concurrent commits never overbook.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Optional

from django.conf import settings  # type: ignore
from django.db import DatabaseError, IntegrityError, transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.stringing.domain.results import SlotCommitResult, SlotFailure
from apps.stringing.exceptions import CollaboratorUnavailable

from .domain.schedule import (
    DayOverride,
    DaySchedule,
    ScheduleConfig,
    build_availability,
    holidays_from,
    in_booking_window,
    parse_time,
    resolve_day,
)
from .models import ScheduleException, ScheduleSettings, SlotCommitment, TimeSlot

logger = logging.getLogger(__name__)


class BookingWindowError(Exception):
    """Raised when a date lies outside the bookable window."""


class _SlotRejected(Exception):
    """Internal signal that rolls back the commitment insert."""


def load_config() -> ScheduleConfig:
    """Shop-wide schedule from the settings row, or the configured defaults."""

    try:
        row = ScheduleSettings.objects.order_by("pk").first()
    except DatabaseError as exc:
        logger.error("Schedule settings lookup failed", exc_info=True)
        raise CollaboratorUnavailable(str(exc)) from exc

    if row is None:
        defaults = settings.STRINGING_SCHEDULE
        return ScheduleConfig(
            start=parse_time(defaults["START"]),
            end=parse_time(defaults["END"]),
            interval=defaults["INTERVAL_MINUTES"],
            capacity=defaults["CAPACITY"],
            business_days=tuple(defaults["BUSINESS_DAYS"]),
            holidays=holidays_from(defaults.get("HOLIDAYS", ())),
            window_days=defaults["BOOKING_WINDOW_DAYS"],
        )

    return ScheduleConfig(
        start=row.start_time,
        end=row.end_time,
        interval=row.interval_minutes,
        capacity=row.capacity,
        business_days=tuple(int(d) for d in row.business_days),
        holidays=holidays_from(row.holidays),
        window_days=row.booking_window_days,
    )


def day_schedule(day: date, config: Optional[ScheduleConfig] = None) -> DaySchedule:
    config = config or load_config()
    exception = ScheduleException.objects.filter(date=day).first()
    override = None
    if exception is not None:
        override = DayOverride(
            closed=exception.closed,
            start=exception.start_time,
            end=exception.end_time,
            interval=exception.interval_minutes,
            capacity=exception.capacity,
        )
    return resolve_day(day, config, override)


def _local_now(now: Optional[datetime] = None) -> datetime:
    return timezone.localtime(now or timezone.now())


def availability(day: date, required_units: int, *, now: Optional[datetime] = None) -> dict:
    """Available and disabled buckets of ``day`` for ``required_units``."""

    local_now = _local_now(now)
    config = load_config()
    if not in_booking_window(day, local_now.date(), config.window_days):
        raise BookingWindowError(f"{day} is outside the booking window")

    try:
        schedule = day_schedule(day, config)
        rows = TimeSlot.objects.filter(date=day).values_list("time", "committed_units", "capacity")
        committed = {}
        capacities = {}
        for bucket, units, capacity in rows:
            committed[bucket] = units
            capacities[bucket] = capacity
    except DatabaseError as exc:
        logger.error(f"Slot lookup failed for {day}", exc_info=True)
        raise CollaboratorUnavailable(str(exc)) from exc

    not_before = local_now.time() if day == local_now.date() else None
    return build_availability(
        schedule,
        committed,
        required_units,
        capacities=capacities,
        not_before=not_before,
    )


def _materialize(day: date, bucket: time, capacity: int) -> TimeSlot:
    """Return the bucket row, creating it on first use."""

    slot = TimeSlot.objects.filter(date=day, time=bucket).first()
    if slot is not None:
        return slot
    try:
        with transaction.atomic():
            return TimeSlot.objects.create(date=day, time=bucket, capacity=capacity)
    except IntegrityError:
        return TimeSlot.objects.get(date=day, time=bucket)


def commit(day: date, bucket, units: int, *, idempotency_key: str,
           now: Optional[datetime] = None) -> SlotCommitResult:
    """Take ``units`` of capacity in one bucket, once per ``idempotency_key``."""

    key = str(idempotency_key)
    existing = SlotCommitment.objects.filter(idempotency_key=key).first()
    if existing is not None:
        return SlotCommitResult.success(existing.pk, replayed=True)

    local_now = _local_now(now)
    config = load_config()
    if not in_booking_window(day, local_now.date(), config.window_days):
        return SlotCommitResult.failed(SlotFailure.OUT_OF_WINDOW)

    schedule = day_schedule(day, config)
    if schedule.closed:
        return SlotCommitResult.failed(SlotFailure.CLOSED)
    try:
        bucket = parse_time(bucket)
    except ValueError:
        return SlotCommitResult.failed(SlotFailure.INVALID_TIME)
    if not schedule.offers(bucket):
        return SlotCommitResult.failed(SlotFailure.INVALID_TIME)
    if day == local_now.date() and bucket <= local_now.time():
        return SlotCommitResult.failed(SlotFailure.INVALID_TIME)

    slot = _materialize(day, bucket, schedule.capacity)
    try:
        with transaction.atomic():
            commitment = SlotCommitment.objects.create(slot=slot, idempotency_key=key, units=units)
            updated = TimeSlot.objects.filter(
                pk=slot.pk,
                committed_units__lte=F("capacity") - units,
            ).update(committed_units=F("committed_units") + units)
            if not updated:
                raise _SlotRejected()
    except IntegrityError:
        existing = SlotCommitment.objects.filter(idempotency_key=key).first()
        if existing is None:
            raise
        return SlotCommitResult.success(existing.pk, replayed=True)
    except _SlotRejected:
        logger.warning(f"Slot conflict at {day} {bucket:%H:%M} for {units} unit(s) ({key})")
        return SlotCommitResult.failed(SlotFailure.CONFLICT)

    logger.info(f"Committed {units} unit(s) at {day} {bucket:%H:%M} for {key}")
    return SlotCommitResult.success(commitment.pk)
