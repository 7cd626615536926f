"""
Pickup slot generation.

Produces the ``HH:MM`` pickup times a customer may choose on a given date:

    - aligned to the slot granularity
    - inside an opening period of that weekday
    - no later than (period end - closing buffer)
    - for today, no earlier than roundUp(now + preparation time)

"Now" is read in an explicit reference timezone (the business's timezone)
so the result does not depend on the server's local clock.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional

from storefront.services.scheduling.hours import (
    DEFAULT_OPENING_HOURS,
    MINUTES_PER_DAY,
    WeeklySchedule,
    minutes_to_hm,
)


def sunday_weekday(target_date: date) -> int:
    """Weekday index with 0=Sunday ... 6=Saturday."""
    return target_date.isoweekday() % 7


def round_up(minutes: int, step: int) -> int:
    return math.ceil(minutes / step) * step


def generate_slots(
    target_date: date,
    schedule: WeeklySchedule,
    slot_minutes: int = 5,
    prep_minutes: int = 20,
    close_buffer_minutes: int = 10,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[str]:
    """
    Generate available pickup times for a date.

    Args:
        target_date: Calendar date in the reference timezone
        schedule: Weekly opening hours
        slot_minutes: Slot granularity (must be > 0, validated by callers)
        prep_minutes: Minimum preparation time for same-day pickups
        close_buffer_minutes: Minutes before closing when pickups stop
        now: Current instant; read from the clock when omitted
        tz: Reference timezone; aware ``now`` values are converted into it

    Returns:
        Ascending, de-duplicated list of ``"HH:MM"`` strings (may be empty).
    """
    periods = schedule.periods_for(sunday_weekday(target_date))
    if not periods:
        return []

    if now is None:
        now = datetime.now(tz)
    elif tz is not None and now.tzinfo is not None:
        now = now.astimezone(tz)

    earliest_today = None
    if now.date() == target_date:
        now_minutes = now.hour * 60 + now.minute
        earliest_today = round_up(now_minutes + prep_minutes, slot_minutes)

    slots: set[int] = set()
    for period in periods:
        start = period.start
        if earliest_today is not None:
            start = max(start, earliest_today)
        # "24:00" is a valid closing time but never a pickup time
        end = min(period.end - close_buffer_minutes, MINUTES_PER_DAY - 1)
        if end <= start:
            continue
        slots.update(range(round_up(start, slot_minutes), end + 1, slot_minutes))

    return [minutes_to_hm(t) for t in sorted(slots)]


@dataclass(frozen=True)
class SlotConfig:
    """
    Everything needed to recompute a tenant's slot set.

    Attributes:
        schedule: Weekly opening hours
        slot_minutes: Slot granularity in minutes
        prep_minutes: Minimum preparation time for same-day orders
        close_buffer_minutes: Minutes before closing when pickups stop
        tz: Reference timezone for "today" and "now"
    """
    schedule: WeeklySchedule = DEFAULT_OPENING_HOURS
    slot_minutes: int = 5
    prep_minutes: int = 20
    close_buffer_minutes: int = 10
    tz: tzinfo = field(default=timezone.utc)

    def __post_init__(self):
        """Validate numeric tuning before any slot is generated."""
        if self.slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be positive, got {self.slot_minutes}")
        if self.prep_minutes < 0:
            raise ValueError(f"prep_minutes must be >= 0, got {self.prep_minutes}")
        if self.close_buffer_minutes < 0:
            raise ValueError(
                f"close_buffer_minutes must be >= 0, got {self.close_buffer_minutes}"
            )

    def slots_for(self, target_date: date, now: Optional[datetime] = None) -> list[str]:
        return generate_slots(
            target_date,
            self.schedule,
            self.slot_minutes,
            self.prep_minutes,
            self.close_buffer_minutes,
            now=now,
            tz=self.tz,
        )


def parse_date_iso(date_iso: str) -> Optional[date]:
    try:
        return date.fromisoformat(date_iso)
    except (TypeError, ValueError):
        return None


def is_valid_slot(
    date_iso: str,
    time_hm: str,
    config: SlotConfig,
    now: Optional[datetime] = None,
) -> bool:
    """
    Check a client-submitted pickup time against the recomputed slot set.

    Malformed dates return False.
    """
    target_date = parse_date_iso(date_iso)
    if target_date is None:
        return False
    return time_hm in config.slots_for(target_date, now=now)


def local_pickup_to_utc(date_iso: str, time_hm: str, tz: tzinfo) -> datetime:
    """Convert a local pickup date + ``HH:MM`` into an aware UTC datetime."""
    local = datetime.combine(date.fromisoformat(date_iso), time.fromisoformat(time_hm))
    return local.replace(tzinfo=tz).astimezone(timezone.utc)
