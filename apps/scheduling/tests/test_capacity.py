"""Tests for slot availability and commits."""

from __future__ import annotations

from datetime import datetime, time, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.scheduling import services
from apps.scheduling.models import ScheduleException, SlotCommitment, TimeSlot
from apps.stringing.domain.results import SlotFailure
from conftest import next_business_day

pytestmark = pytest.mark.django_db

NOON = time(12, 0)


def test_defaults_apply_without_settings_row(visit_day):
    view = services.availability(visit_day, 1)

    assert view["slots"][0] == "10:00"
    assert view["slots"][-1] == "19:00"
    assert view["interval"] == 30
    assert view["capacity"] == 1


def test_commits_never_exceed_bucket_capacity(schedule, visit_day):
    results = [
        services.commit(visit_day, NOON, units, idempotency_key=f"app-{n}")
        for n, units in enumerate([2, 1, 2, 1, 1])
    ]

    assert [r.ok for r in results] == [True, True, False, True, False]
    assert all(r.failure == SlotFailure.CONFLICT for r in results if not r.ok)
    slot = TimeSlot.objects.get(date=visit_day, time=NOON)
    assert slot.committed_units == 4
    assert sum(c.units for c in slot.commitments.all()) == 4


def test_commit_is_idempotent_per_key(schedule, visit_day):
    first = services.commit(visit_day, NOON, 2, idempotency_key="app-1")
    again = services.commit(visit_day, NOON, 2, idempotency_key="app-1")

    assert first.ok and not first.replayed
    assert again.ok and again.replayed
    assert again.commitment_id == first.commitment_id
    assert TimeSlot.objects.get(date=visit_day, time=NOON).committed_units == 2
    assert SlotCommitment.objects.count() == 1


def test_availability_reflects_commits(schedule, visit_day):
    services.commit(visit_day, NOON, 3, idempotency_key="app-1")

    view = services.availability(visit_day, 2)

    assert "12:00" in view["disabled_times"]
    assert "12:00" not in view["available_times"]
    assert "12:00" not in services.availability(visit_day, 1)["disabled_times"]


def test_commit_rejects_closed_days_and_unknown_times(schedule, visit_day):
    ScheduleException.objects.create(date=visit_day, closed=True, reason="정기 점검")

    assert services.commit(visit_day, NOON, 1, idempotency_key="a").failure == SlotFailure.CLOSED

    other_day = next_business_day(visit_day)
    assert services.commit(other_day, time(12, 10), 1, idempotency_key="b").failure == SlotFailure.INVALID_TIME
    assert services.commit(other_day, "not-a-time", 1, idempotency_key="c").failure == SlotFailure.INVALID_TIME
    assert not TimeSlot.objects.exists()


def test_commit_rejects_buckets_already_passed_today(schedule, visit_day):
    now = timezone.make_aware(datetime.combine(visit_day, time(17, 0)))

    assert "10:00" in services.availability(visit_day, 1, now=now)["disabled_times"]
    assert services.commit(visit_day, "10:00", 1, idempotency_key="a", now=now).failure == SlotFailure.INVALID_TIME
    assert services.commit(visit_day, "17:00", 1, idempotency_key="b", now=now).failure == SlotFailure.INVALID_TIME
    assert services.commit(visit_day, "17:30", 1, idempotency_key="c", now=now).ok


def test_dates_outside_window_are_rejected(schedule):
    far = timezone.localdate() + timedelta(days=schedule.booking_window_days + 5)

    with pytest.raises(services.BookingWindowError):
        services.availability(far, 1)
    assert services.commit(far, NOON, 1, idempotency_key="x").failure == SlotFailure.OUT_OF_WINDOW


def test_exception_capacity_sizes_new_buckets(schedule, visit_day):
    ScheduleException.objects.create(date=visit_day, capacity=1)

    assert services.commit(visit_day, NOON, 1, idempotency_key="a").ok
    assert services.commit(visit_day, NOON, 1, idempotency_key="b").failure == SlotFailure.CONFLICT
    assert TimeSlot.objects.get(date=visit_day, time=NOON).capacity == 1


def test_availability_endpoint(customer, schedule, visit_day):
    client = APIClient()
    client.force_authenticate(customer)
    url = reverse("slot-availability")

    response = client.get(url, {"date": visit_day.isoformat(), "required_units": 2})

    assert response.status_code == status.HTTP_200_OK, response.data
    assert response.data["available_times"][0] == "10:00"
    assert response.data["visit_duration_minutes"] == 60

    far = timezone.localdate() + timedelta(days=90)
    response = client.get(url, {"date": far.isoformat()})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.data["code"] == "out_of_window"


def test_availability_endpoint_requires_login(visit_day):
    response = APIClient().get(reverse("slot-availability"), {"date": visit_day.isoformat()})

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
