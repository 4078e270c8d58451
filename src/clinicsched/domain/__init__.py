"""Domain models and business rules for clinic scheduling."""

from clinicsched.domain.models import (
    DEFAULT_OPENING_DAYS,
    WORKWEEK,
    ClinicSchedule,
    DayAssignment,
    Occupant,
    OccupantSource,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    RoomDay,
    RoomShift,
    RoomSlot,
    ScheduleConfig,
    ScheduleOverride,
    ScheduleSnapshot,
    Weekday,
    iter_dates,
    time_range_label,
)
from clinicsched.domain.policies import (
    DefaultShiftOrderingPolicy,
    ShiftOrderingPolicy,
)

__all__ = [
    # Rule records
    "ClinicSchedule",
    "OtherWorkerSchedule",
    "Practitioner",
    "RoomAssignment",
    "RoomShift",
    "ScheduleConfig",
    "ScheduleOverride",
    "ScheduleSnapshot",
    "Weekday",
    "DEFAULT_OPENING_DAYS",
    "WORKWEEK",
    # Resolved output
    "DayAssignment",
    "Occupant",
    "OccupantSource",
    "RoomDay",
    "RoomSlot",
    # Helpers
    "iter_dates",
    "time_range_label",
    # Policies
    "DefaultShiftOrderingPolicy",
    "ShiftOrderingPolicy",
]
