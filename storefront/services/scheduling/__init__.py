"""
Scheduling services: opening hours and pickup slot generation.
"""

from storefront.services.scheduling.hours import (
    DEFAULT_OPENING_HOURS,
    OpeningPeriod,
    ScheduleError,
    WeeklySchedule,
    effective_schedule,
)
from storefront.services.scheduling.slots import (
    SlotConfig,
    generate_slots,
    is_valid_slot,
    local_pickup_to_utc,
    parse_date_iso,
)

__all__ = [
    "DEFAULT_OPENING_HOURS",
    "OpeningPeriod",
    "ScheduleError",
    "WeeklySchedule",
    "effective_schedule",
    "SlotConfig",
    "generate_slots",
    "is_valid_slot",
    "local_pickup_to_utc",
    "parse_date_iso",
]
