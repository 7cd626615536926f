"""
Opening-Hours Model

Weekly table of opening periods per weekday, with weekday indexes counted
from Sunday (0=Sunday ... 6=Saturday).

Schedules are stored per business as JSON:

    {"1": [{"start": "12:00", "end": "16:00"}, {"start": "20:00", "end": "23:00"}]}

``WeeklySchedule.from_mapping`` validates and normalizes that shape once at
load time: periods are sorted, overlapping periods are merged and malformed
entries raise ``ScheduleError``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class ScheduleError(ValueError):
    """Raised when a stored schedule cannot be loaded."""


def hm_to_minutes(value: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight."""
    if not isinstance(value, str):
        raise ScheduleError(f"Time must be a 'HH:MM' string, got {value!r}")
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ScheduleError(f"Invalid time {value!r}, expected 'HH:MM'")
    hours, minutes = int(parts[0]), int(parts[1])
    if minutes > 59 or hours * 60 + minutes > MINUTES_PER_DAY:
        raise ScheduleError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def minutes_to_hm(minutes: int) -> str:
    """Convert minutes since midnight to ``"HH:MM"``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, order=True)
class OpeningPeriod:
    """A single open interval within a day, in minutes since midnight."""
    start: int
    end: int

    @classmethod
    def from_hm(cls, start: str, end: str) -> "OpeningPeriod":
        return cls(hm_to_minutes(start), hm_to_minutes(end))

    def to_dict(self) -> dict[str, str]:
        return {"start": minutes_to_hm(self.start), "end": minutes_to_hm(self.end)}


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Immutable weekday → periods table.

    Instances built through ``from_mapping`` are sorted and non-overlapping.
    Instances constructed directly are used as given.
    """
    days: Mapping[int, tuple[OpeningPeriod, ...]] = field(default_factory=dict)

    def periods_for(self, weekday: int) -> tuple[OpeningPeriod, ...]:
        return tuple(self.days.get(weekday, ()))

    @property
    def is_empty(self) -> bool:
        return not any(self.days.values())

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        """Serialize back to the stored JSON shape."""
        return {
            str(day): [p.to_dict() for p in periods]
            for day, periods in sorted(self.days.items())
        }

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[Any, Any]]) -> "WeeklySchedule":
        """
        Load a stored schedule.

        Args:
            raw: Mapping of weekday (int or numeric str, 0=Sunday) to a list
                of ``{"start": "HH:MM", "end": "HH:MM"}`` objects.

        Raises:
            ScheduleError: On unknown weekdays, bad times or empty periods.
        """
        if not raw:
            return cls({})
        if not isinstance(raw, Mapping):
            raise ScheduleError("Schedule must be an object keyed by weekday")

        days: dict[int, tuple[OpeningPeriod, ...]] = {}
        for key, entries in raw.items():
            try:
                weekday = int(key)
            except (TypeError, ValueError):
                raise ScheduleError(f"Invalid weekday key {key!r}")
            if not 0 <= weekday <= 6:
                raise ScheduleError(f"Weekday must be 0-6, got {weekday}")
            if entries is None:
                continue
            if not isinstance(entries, (list, tuple)):
                raise ScheduleError(f"Weekday {weekday}: periods must be a list")

            periods = []
            for entry in entries:
                if not isinstance(entry, Mapping):
                    raise ScheduleError(f"Weekday {weekday}: period must be an object")
                period = OpeningPeriod.from_hm(entry.get("start"), entry.get("end"))
                if period.start >= period.end:
                    raise ScheduleError(
                        f"Weekday {weekday}: period {entry.get('start')}-{entry.get('end')} "
                        "ends before it starts"
                    )
                periods.append(period)

            merged = _merge_periods(periods)
            if len(merged) != len(periods):
                logger.warning(f"Weekday {weekday}: merged overlapping opening periods")
            if merged:
                days[weekday] = merged

        return cls(days)


def _merge_periods(periods: list[OpeningPeriod]) -> tuple[OpeningPeriod, ...]:
    merged: list[OpeningPeriod] = []
    for period in sorted(periods):
        if merged and period.start < merged[-1].end:
            last = merged[-1]
            merged[-1] = OpeningPeriod(last.start, max(last.end, period.end))
        else:
            merged.append(period)
    return tuple(merged)


_LUNCH = {"start": "12:00", "end": "16:00"}
_DINNER = {"start": "20:00", "end": "23:00"}
_LATE_LUNCH = {"start": "12:00", "end": "16:30"}
_LATE_DINNER = {"start": "20:00", "end": "23:30"}

DEFAULT_OPENING_HOURS = WeeklySchedule.from_mapping({
    0: [_LUNCH, _DINNER],
    1: [_LUNCH, _DINNER],
    2: [_LUNCH, _DINNER],
    3: [_LUNCH, _DINNER],
    4: [_LUNCH, _DINNER],
    5: [_LATE_LUNCH, _LATE_DINNER],
    6: [_LATE_LUNCH, _LATE_DINNER],
})


def effective_schedule(
    ordering_hours: Optional[Mapping[Any, Any]],
    opening_hours: Optional[Mapping[Any, Any]],
) -> WeeklySchedule:
    """
    Pick the schedule that governs pickups for a business.

    Ordering hours win when configured, then opening hours, then the
    default table.
    """
    if ordering_hours:
        return WeeklySchedule.from_mapping(ordering_hours)
    if opening_hours:
        return WeeklySchedule.from_mapping(opening_hours)
    return DEFAULT_OPENING_HOURS
