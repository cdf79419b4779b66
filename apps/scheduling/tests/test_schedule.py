"""Tests for the pure day-schedule helpers."""

from __future__ import annotations

from datetime import date, time

from apps.scheduling.domain.schedule import (
    DayOverride,
    ScheduleConfig,
    build_availability,
    clamp_capacity,
    clamp_interval,
    generate_times,
    holidays_from,
    in_booking_window,
    parse_time,
    resolve_day,
    visit_duration,
)

MONDAY = date(2030, 3, 4)
SATURDAY = date(2030, 3, 9)


def test_times_run_from_start_to_end_inclusive():
    assert generate_times(time(10, 0), time(11, 0), 30) == [time(10, 0), time(10, 30), time(11, 0)]
    assert generate_times(time(10, 0), time(10, 50), 30) == [time(10, 0), time(10, 30)]


def test_interval_and_capacity_are_clamped():
    assert clamp_interval(1) == 5
    assert clamp_interval(600) == 240
    assert clamp_capacity(0) == 1
    assert clamp_capacity(50) == 10

    config = ScheduleConfig(interval=2, capacity=99)
    assert (config.interval, config.capacity) == (5, 10)


def test_weekends_and_holidays_are_closed():
    config = ScheduleConfig(holidays=holidays_from(["2030-03-05"]))

    assert not resolve_day(MONDAY, config).closed
    assert resolve_day(SATURDAY, config).closed
    assert resolve_day(date(2030, 3, 5), config).closed
    assert resolve_day(SATURDAY, config).times() == []


def test_exception_overrides_hours_and_can_open_a_weekend():
    config = ScheduleConfig()
    override = DayOverride(start=time(12, 0), end=time(13, 0), interval=60, capacity=3)

    day = resolve_day(SATURDAY, config, override)

    assert not day.closed
    assert day.times() == [time(12, 0), time(13, 0)]
    assert day.capacity == 3
    assert resolve_day(MONDAY, config, DayOverride(closed=True)).closed


def test_bucket_disabled_when_required_units_exceed_remaining_capacity():
    day = resolve_day(MONDAY, ScheduleConfig(start=time(10, 0), end=time(11, 0), capacity=3))
    committed = {time(10, 0): 2, time(10, 30): 3}

    one = build_availability(day, committed, 1)
    two = build_availability(day, committed, 2)

    assert one["disabled_times"] == ["10:30"]
    assert two["disabled_times"] == ["10:00", "10:30"]
    assert two["available_times"] == ["11:00"]
    assert two["visit_duration_minutes"] == 60


def test_stored_bucket_capacity_wins_over_schedule():
    day = resolve_day(MONDAY, ScheduleConfig(start=time(10, 0), end=time(10, 30), capacity=3))

    view = build_availability(day, {time(10, 0): 1}, 1, capacities={time(10, 0): 1})

    assert view["disabled_times"] == ["10:00"]


def test_passed_buckets_are_disabled_today():
    day = resolve_day(MONDAY, ScheduleConfig(start=time(10, 0), end=time(11, 0), capacity=3))

    view = build_availability(day, {}, 1, not_before=time(10, 15))

    assert view["disabled_times"] == ["10:00"]


def test_booking_window():
    assert in_booking_window(MONDAY, MONDAY, 30)
    assert not in_booking_window(date(2030, 3, 3), MONDAY, 30)
    assert not in_booking_window(date(2030, 4, 4), MONDAY, 30)


def test_helpers():
    assert parse_time("09:30") == time(9, 30)
    assert parse_time(time(9, 30, 15)) == time(9, 30)
    assert visit_duration(30, 3) == 90
    assert visit_duration(30, 0) == 30
