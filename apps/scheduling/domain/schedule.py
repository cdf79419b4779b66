"""
Day Schedule

Pure helpers that turn schedule configuration into the concrete list of
time buckets for one date, and bucket counters into an availability view.
Nothing here touches the database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Mapping, Optional

from shared.domain.base import ValueObject

MIN_INTERVAL = 5
MAX_INTERVAL = 240
MIN_CAPACITY = 1
MAX_CAPACITY = 10


def clamp_interval(minutes) -> int:
    return max(MIN_INTERVAL, min(MAX_INTERVAL, int(minutes)))


def clamp_capacity(capacity) -> int:
    return max(MIN_CAPACITY, min(MAX_CAPACITY, int(capacity)))


def parse_time(value) -> time:
    """Accept ``time`` objects or ``"HH:MM"`` strings."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    return datetime.strptime(str(value).strip()[:5], "%H:%M").time()


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class ScheduleConfig(ValueObject):
    """Shop-wide schedule, as configured by the shop owner."""
    start: time = time(10, 0)
    end: time = time(19, 0)
    interval: int = 30
    capacity: int = 1
    business_days: tuple = (0, 1, 2, 3, 4)
    holidays: frozenset = field(default_factory=frozenset)
    window_days: int = 30

    def __post_init__(self):
        object.__setattr__(self, 'interval', clamp_interval(self.interval))
        object.__setattr__(self, 'capacity', clamp_capacity(self.capacity))


@dataclass(frozen=True)
class DayOverride(ValueObject):
    """Per-date exception. ``None`` fields fall back to the shop-wide value."""
    closed: bool = False
    start: Optional[time] = None
    end: Optional[time] = None
    interval: Optional[int] = None
    capacity: Optional[int] = None


@dataclass(frozen=True)
class DaySchedule(ValueObject):
    day: date
    start: time
    end: time
    interval: int
    capacity: int
    closed: bool = False

    def times(self) -> list:
        if self.closed:
            return []
        return generate_times(self.start, self.end, self.interval)

    def offers(self, value: time) -> bool:
        return parse_time(value) in self.times()


def generate_times(start: time, end: time, interval: int) -> list:
    """Buckets from ``start`` to ``end`` inclusive, ``interval`` minutes apart."""

    step = timedelta(minutes=clamp_interval(interval))
    anchor = date(2000, 1, 1)
    current = datetime.combine(anchor, start)
    last = datetime.combine(anchor, end)
    result = []
    while current <= last and current.date() == anchor:
        result.append(current.time())
        current += step
    return result


def resolve_day(day: date, config: ScheduleConfig, override: Optional[DayOverride] = None) -> DaySchedule:
    """Apply business days, holidays and a per-date exception to ``config``."""

    closed = day.weekday() not in config.business_days or day in config.holidays
    start, end = config.start, config.end
    interval, capacity = config.interval, config.capacity

    if override is not None:
        if override.closed:
            closed = True
        else:
            # an explicit exception opens the day even on a weekend
            closed = day in config.holidays
            start = override.start or start
            end = override.end or end
            if override.interval:
                interval = clamp_interval(override.interval)
            if override.capacity:
                capacity = clamp_capacity(override.capacity)

    return DaySchedule(day=day, start=start, end=end, interval=interval, capacity=capacity, closed=closed)


def in_booking_window(day: date, today: date, window_days: int) -> bool:
    return today <= day <= today + timedelta(days=window_days)


def visit_duration(interval: int, required_units: int) -> int:
    """Informational visit length in minutes."""
    return interval * max(int(required_units), 1)


def build_availability(
    schedule: DaySchedule,
    committed: Mapping[time, int],
    required_units: int,
    *,
    capacities: Optional[Mapping[time, int]] = None,
    not_before: Optional[time] = None,
) -> dict:
    """
    Availability view for a day.

    A bucket is disabled when its committed units plus ``required_units``
    would exceed its capacity, or when it starts before ``not_before``
    (used for today's already-passed buckets).
    """
    units = max(int(required_units), 1)
    capacities = capacities or {}
    slots = schedule.times()
    disabled = []
    for bucket in slots:
        capacity = capacities.get(bucket, schedule.capacity)
        if committed.get(bucket, 0) + units > capacity:
            disabled.append(bucket)
        elif not_before is not None and bucket <= not_before:
            disabled.append(bucket)

    return {
        "date": schedule.day.isoformat(),
        "closed": schedule.closed,
        "interval": schedule.interval,
        "capacity": schedule.capacity,
        "slots": [format_time(t) for t in slots],
        "disabled_times": [format_time(t) for t in disabled],
        "available_times": [format_time(t) for t in slots if t not in disabled],
        "visit_duration_minutes": visit_duration(schedule.interval, units),
    }


def holidays_from(values: Iterable) -> frozenset:
    result = set()
    for value in values or ():
        result.add(value if isinstance(value, date) else date.fromisoformat(str(value)))
    return frozenset(result)
