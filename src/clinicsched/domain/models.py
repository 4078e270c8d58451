"""Domain models for the clinic scheduling system.

This module contains all core data structures used throughout the scheduling
system: the rule records (room assignments, shifts, overrides) that feed the
resolver, and the resolved per-day output consumed by the exporters.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Iterator, Optional, Union


class Weekday(Enum):
    """Days of the week, valued by their English names.

    Member order follows ``date.weekday()`` (Monday first).
    """

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Weekday of a calendar date."""
        return _WEEKDAY_ORDER[day.weekday()]

    @classmethod
    def parse(cls, value: Union["Weekday", str]) -> "Weekday":
        """Parse a weekday from an enum member or a case-insensitive name.

        Raises:
            ValueError: If the value is not a weekday name.
        """
        if isinstance(value, Weekday):
            return value
        normalized = str(value).strip().capitalize()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown weekday: {value!r}") from None

    @classmethod
    def parse_many(cls, values: Iterable[Union["Weekday", str]]) -> frozenset["Weekday"]:
        """Parse a collection of weekdays into a frozenset."""
        return frozenset(cls.parse(v) for v in values)


_WEEKDAY_ORDER = list(Weekday)

WORKWEEK = frozenset(_WEEKDAY_ORDER[:5])
DEFAULT_OPENING_DAYS = frozenset(_WEEKDAY_ORDER[:6])


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day in ``[start_date, end_date]``."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def time_range_label(start_time: str, end_time: str) -> str:
    """Format a time window for display, e.g. ``09:00 - 17:00``."""
    return f"{start_time} - {end_time}"


@dataclass(frozen=True)
class ScheduleConfig:
    """Organization-wide calendar settings.

    Attributes:
        room_count: Number of treatment rooms (>= 1).
        opening_days: Weekdays on which the clinic operates at all.
    """

    room_count: int = 1
    opening_days: frozenset[Weekday] = DEFAULT_OPENING_DAYS

    def __post_init__(self):
        object.__setattr__(self, "opening_days", Weekday.parse_many(self.opening_days))

    def is_open(self, day: date) -> bool:
        """Check whether the clinic operates on a date."""
        return Weekday.from_date(day) in self.opening_days

    @property
    def rooms(self) -> range:
        """Room numbers ``1..room_count``."""
        return range(1, self.room_count + 1)


@dataclass(frozen=True)
class Practitioner:
    """A staff member who can be placed in rooms.

    Only the output adapters need this: they use it for display names and
    calendar colours. The resolver works on practitioner ids alone.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    role: str = ""
    color: Optional[str] = None
    is_disabled: bool = False

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id


@dataclass(frozen=True)
class ClinicSchedule:
    """A named, time-bounded schedule period.

    At most one schedule per organization is active at a time. The active
    schedule owns the assignments, shifts and overrides that are resolved.
    """

    id: str
    organization_id: str
    name: str
    start_date: date
    end_date: date
    room_count: int
    is_active: bool = True


@dataclass(frozen=True)
class RoomAssignment:
    """Default occupants of a room, used when no shift covers a room+day.

    Attributes:
        room_number: Room in ``[1, room_count]``.
        main_practitioner_id: Primary practitioner, if any.
        side_practitioner_id: Assisting practitioner, if any.
        start_time: ``HH:MM`` start of the working window.
        end_time: ``HH:MM`` end of the working window.
        working_days: Weekdays on which the assignment applies.
    """

    room_number: int
    main_practitioner_id: Optional[str] = None
    side_practitioner_id: Optional[str] = None
    start_time: str = "09:00"
    end_time: str = "17:00"
    working_days: frozenset[Weekday] = WORKWEEK

    def __post_init__(self):
        object.__setattr__(self, "working_days", Weekday.parse_many(self.working_days))

    def works_on(self, weekday: Weekday) -> bool:
        return weekday in self.working_days


@dataclass(frozen=True)
class OtherWorkerSchedule:
    """A practitioner who works on opening days but is not bound to a room."""

    practitioner_id: str
    start_time: str = "09:00"
    end_time: str = "17:00"
    working_days: frozenset[Weekday] = WORKWEEK

    def __post_init__(self):
        object.__setattr__(self, "working_days", Weekday.parse_many(self.working_days))

    def works_on(self, weekday: Weekday) -> bool:
        return weekday in self.working_days


@dataclass(frozen=True)
class RoomShift:
    """A scheduled occupancy of a room.

    A shift is either recurring (``day_of_week`` set) or bound to one
    calendar date (``date`` set), never both. Dated shifts replace the
    recurring ones for the same room and day. Among the shifts shown for a
    room and day, higher ``priority`` comes first.
    """

    id: str
    room_number: int
    practitioner_id: str
    start_time: str
    end_time: str
    day_of_week: Optional[Weekday] = None
    date: Optional[date] = None
    side_practitioner_id: Optional[str] = None
    priority: int = 0
    is_override: bool = False
    reason: Optional[str] = None

    def __post_init__(self):
        if self.day_of_week is not None:
            object.__setattr__(self, "day_of_week", Weekday.parse(self.day_of_week))

    @property
    def is_weekly(self) -> bool:
        """True for recurring shifts (weekday set, no date)."""
        return self.day_of_week is not None and self.date is None

    @property
    def is_specific(self) -> bool:
        """True for shifts bound to one calendar date."""
        return self.date is not None


@dataclass(frozen=True)
class ScheduleOverride:
    """A one-day exception to the regular schedule.

    Keyed by ``(date, room_number, practitioner_id)``; either key part may
    be absent. ``is_unavailable`` suppresses the matched practitioner (or
    room) for the day; otherwise the override's times replace the regular
    ones for display.
    """

    date: date
    room_number: Optional[int] = None
    practitioner_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_unavailable: bool = False
    reason: Optional[str] = None
    id: Optional[str] = None

    @property
    def key(self) -> tuple[date, Optional[int], Optional[str]]:
        return (self.date, self.room_number, self.practitioner_id)


class OccupantSource(Enum):
    """Which rule placed an occupant in the resolved schedule."""

    SHIFT = "shift"
    ASSIGNMENT = "assignment"
    OVERRIDE = "override"
    OTHER_WORKER = "other_worker"


@dataclass(frozen=True)
class Occupant:
    """A practitioner shown in a resolved slot, with the effective times."""

    practitioner_id: str
    start_time: str
    end_time: str
    source: OccupantSource = OccupantSource.SHIFT
    priority: int = 0
    is_override: bool = False
    reason: Optional[str] = None

    @property
    def time_range(self) -> str:
        return time_range_label(self.start_time, self.end_time)


@dataclass(frozen=True)
class RoomSlot:
    """One (main, side) pair within a room's resolved day."""

    main: Optional[Occupant] = None
    side: Optional[Occupant] = None

    @property
    def is_empty(self) -> bool:
        return self.main is None and self.side is None


@dataclass(frozen=True)
class RoomDay:
    """Resolved occupancy of one room on one day.

    Attributes:
        room_number: Room in ``[1, room_count]``.
        slots: Surviving (main, side) pairs in display order; empty when
            nobody occupies the room.
    """

    room_number: int
    slots: tuple[RoomSlot, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.slots

    @property
    def primary(self) -> Optional[RoomSlot]:
        """First slot in display order, if any."""
        return self.slots[0] if self.slots else None

    def practitioner_ids(self) -> list[str]:
        """IDs of everyone shown in this room, in display order."""
        ids = []
        for slot in self.slots:
            for occupant in (slot.main, slot.side):
                if occupant is not None:
                    ids.append(occupant.practitioner_id)
        return ids


@dataclass(frozen=True)
class DayAssignment:
    """Fully resolved schedule for a single opening day.

    Attributes:
        date: The calendar date.
        day_of_week: Weekday of ``date``.
        rooms: One entry per room, ordered ``1..room_count``.
        other_workers: Non-room-bound practitioners working that day.
    """

    date: date
    day_of_week: Weekday
    rooms: tuple[RoomDay, ...] = ()
    other_workers: tuple[Occupant, ...] = ()

    @property
    def iso_week(self) -> int:
        """ISO-8601 week number of the day."""
        return self.date.isocalendar()[1]

    def room(self, room_number: int) -> RoomDay:
        """Get the resolved entry for a room number.

        Raises:
            KeyError: If the room is not part of this day.
        """
        for room_day in self.rooms:
            if room_day.room_number == room_number:
                return room_day
        raise KeyError(room_number)

    def practitioner_ids(self) -> set[str]:
        """Everyone scheduled on this day, in rooms or as other workers."""
        ids = set()
        for room_day in self.rooms:
            ids.update(room_day.practitioner_ids())
        ids.update(w.practitioner_id for w in self.other_workers)
        return ids


@dataclass
class ScheduleSnapshot:
    """All rule records of one schedule, as loaded from the store.

    This is the resolver's complete input apart from the date range.
    """

    config: ScheduleConfig
    assignments: list[RoomAssignment] = field(default_factory=list)
    other_workers: list[OtherWorkerSchedule] = field(default_factory=list)
    shifts: list[RoomShift] = field(default_factory=list)
    overrides: list[ScheduleOverride] = field(default_factory=list)
    schedule: Optional[ClinicSchedule] = None
    practitioners: dict[str, Practitioner] = field(default_factory=dict)
