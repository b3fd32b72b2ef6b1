"""Appointment availability for a single business day.

Slots are fixed-length offers starting at ``open_hour`` and stepping by
``slot_duration_minutes``; the last slot must end by ``close_hour``.  A slot
is unavailable when any booked interval overlaps it, even partially.

Timestamps and the business timezone
------------------------------------

Booked intervals arrive from the CRM as UTC instants.  How they are mapped
onto the business day depends on ``BusinessHoursConfig.timezone_policy``:

``utc_as_civil`` (default)
    The UTC wall clock of each instant is compared directly against business
    hours, i.e. the stored timestamps are assumed to already be in business
    civil time.  This is how the scheduling data has always been read and it
    is wrong by the zone offset for truly-UTC data (and shifts by an hour
    across DST changes).

``zoneinfo``
    Instants are converted to ``timezone`` with the IANA database before
    comparison, and the query window covers the local day.

Naive datetimes are always taken as civil time already.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, NamedTuple
from zoneinfo import ZoneInfo

log = logging.getLogger("crm_scheduling.availability")

TIMEZONE_POLICIES = frozenset({"utc_as_civil", "zoneinfo"})

# date.weekday(): Monday is 0
WEEKEND = frozenset({5, 6})


@dataclass(frozen=True)
class BusinessHoursConfig:
    """Opening hours shared by every business day."""

    open_hour: int = 9
    close_hour: int = 22  # exclusive
    slot_duration_minutes: int = 30
    timezone: str = "America/New_York"
    timezone_label: str = "Eastern"
    timezone_policy: str = "utc_as_civil"

    def __post_init__(self) -> None:
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(
                f"open_hour ({self.open_hour}) must be before "
                f"close_hour ({self.close_hour})"
            )
        if self.slot_duration_minutes <= 0:
            raise ValueError("slot_duration_minutes must be positive")
        if self.timezone_policy not in TIMEZONE_POLICIES:
            raise ValueError(f"Unknown timezone_policy: {self.timezone_policy!r}")

    @property
    def slot_length(self) -> timedelta:
        return timedelta(minutes=self.slot_duration_minutes)


@dataclass(frozen=True)
class BookedInterval:
    """One reserved range read from the CRM calendar."""

    start: datetime
    end: datetime

    @property
    def is_valid(self) -> bool:
        return self.end > self.start


class SlotKey(NamedTuple):
    """Start time of one slot within the day, 24-hour clock."""

    hour: int
    minute: int

    @property
    def label(self) -> str:
        return format_slot(self)

    def minutes(self) -> int:
        return self.hour * 60 + self.minute


@dataclass
class AvailabilityResult:
    """Outcome for one requested day.

    ``status`` is ``open`` for a business day, ``closed`` for weekends and
    ``unavailable`` when booking data could not be trusted (no slots are
    offered rather than risk a double booking).
    """

    day: date
    status: str
    slots: list[SlotKey] = field(default_factory=list)
    reason: str = ""

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def labels(self) -> list[str]:
        return [format_slot(s) for s in self.slots]


def format_slot(key: SlotKey) -> str:
    """``SlotKey(13, 30)`` -> ``"1:30 PM"``."""
    period = "PM" if key.hour >= 12 else "AM"
    display_hour = key.hour % 12 or 12
    return f"{display_hour}:{key.minute:02d} {period}"


def describe_hours(config: BusinessHoursConfig) -> str:
    """Human-readable opening hours, e.g. ``9:00 AM - 10:00 PM``."""
    opens = format_slot(SlotKey(config.open_hour, 0))
    closes = format_slot(SlotKey(config.close_hour % 24, 0))
    return f"{opens} - {closes}"


def is_business_day(day: date) -> bool:
    return day.weekday() not in WEEKEND


def candidate_slots(config: BusinessHoursConfig) -> list[SlotKey]:
    """Every slot start in the business day, in chronological order."""
    opening = config.open_hour * 60
    closing = config.close_hour * 60
    step = config.slot_duration_minutes

    slots: list[SlotKey] = []
    start = opening
    while start + step <= closing:
        slots.append(SlotKey(*divmod(start, 60)))
        start += step
    return slots


def to_civil(moment: datetime, config: BusinessHoursConfig) -> datetime:
    """Map a stored instant onto naive business civil time."""
    if moment.tzinfo is None:
        return moment
    if config.timezone_policy == "zoneinfo":
        return moment.astimezone(ZoneInfo(config.timezone)).replace(tzinfo=None)
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def day_query_window(day: date, config: BusinessHoursConfig) -> tuple[datetime, datetime]:
    """UTC bounds [start, end] to fetch bookings that may touch ``day``."""
    if config.timezone_policy == "zoneinfo":
        tz = ZoneInfo(config.timezone)
        start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
        end = end.astimezone(timezone.utc) - timedelta(seconds=1)
        return start, end
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=timezone.utc)
    return start, end


def booked_slots(
    day: date,
    intervals: Iterable[BookedInterval],
    config: BusinessHoursConfig,
) -> set[SlotKey]:
    """Slot starts on ``day`` overlapped by any interval.

    Invalid intervals (end <= start) are skipped.  Each interval is clipped
    to business hours first, so the walk is bounded by the slot count.
    """
    step = config.slot_length
    day_open = datetime.combine(day, time(config.open_hour))
    day_close = day_open + timedelta(hours=config.close_hour - config.open_hour)

    taken: set[SlotKey] = set()
    for interval in intervals:
        if not interval.is_valid:
            log.warning(
                "Ignoring booked interval with end <= start: %s -> %s",
                interval.start,
                interval.end,
            )
            continue

        start = max(to_civil(interval.start, config), day_open)
        end = min(to_civil(interval.end, config), day_close)
        if start >= end:
            continue

        # Snap down onto the slot grid so a partial overlap takes the slot
        offset = (start - day_open) // step
        current = day_open + offset * step
        while current < end:
            taken.add(SlotKey(current.hour, current.minute))
            current += step
    return taken


def compute_availability(
    day: date,
    intervals: Iterable[BookedInterval],
    config: BusinessHoursConfig,
) -> AvailabilityResult:
    """Free slots for ``day`` given existing bookings."""
    if not is_business_day(day):
        return AvailabilityResult(day=day, status="closed", reason="weekend")

    taken = booked_slots(day, intervals, config)
    free = [slot for slot in candidate_slots(config) if slot not in taken]
    log.debug("Availability %s: %d free, %d booked", day, len(free), len(taken))
    return AvailabilityResult(day=day, status="open", slots=free)


def unavailable(day: date, reason: str) -> AvailabilityResult:
    """Fail-closed result used when booking data cannot be read."""
    log.warning("Availability for %s withheld: %s", day, reason)
    return AvailabilityResult(day=day, status="unavailable", reason=reason)
