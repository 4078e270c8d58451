"""Lookup indexes over shifts and overrides.

The resolver asks the same questions for every room on every day: which
shifts cover this room+day, and which overrides apply to this practitioner
or room on this date. These indexes answer both with dictionary lookups,
built once per resolution.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from clinicsched.domain.models import RoomShift, ScheduleOverride, Weekday
from clinicsched.domain.policies import DefaultShiftOrderingPolicy, ShiftOrderingPolicy


class ShiftIndex:
    """Shifts grouped by (room, weekday) and (room, date), pre-sorted.

    Example:
        >>> index = ShiftIndex(shifts)
        >>> index.for_room_day(1, date(2024, 1, 15))
    """

    def __init__(
        self,
        shifts: Iterable[RoomShift],
        ordering_policy: Optional[ShiftOrderingPolicy] = None,
    ):
        self.ordering_policy = ordering_policy or DefaultShiftOrderingPolicy()

        weekly: dict[tuple[int, Weekday], list[RoomShift]] = defaultdict(list)
        specific: dict[tuple[int, date], list[RoomShift]] = defaultdict(list)
        for shift in shifts:
            if shift.is_specific:
                specific[(shift.room_number, shift.date)].append(shift)
            elif shift.is_weekly:
                weekly[(shift.room_number, shift.day_of_week)].append(shift)

        self._weekly = {k: tuple(self.ordering_policy.order(v)) for k, v in weekly.items()}
        self._specific = {k: tuple(self.ordering_policy.order(v)) for k, v in specific.items()}

    def weekly(self, room_number: int, weekday: Weekday) -> tuple[RoomShift, ...]:
        """Recurring shifts for a room on a weekday."""
        return self._weekly.get((room_number, weekday), ())

    def specific(self, room_number: int, day: date) -> tuple[RoomShift, ...]:
        """Dated shifts for a room on a calendar date."""
        return self._specific.get((room_number, day), ())

    def for_room_day(self, room_number: int, day: date) -> tuple[RoomShift, ...]:
        """Shifts that govern a room on a date, in display order.

        Dated shifts replace the recurring ones completely when any exist;
        the two lists are never merged.
        """
        specific = self.specific(room_number, day)
        if specific:
            return specific
        return self.weekly(room_number, Weekday.from_date(day))


@dataclass(frozen=True)
class OverrideEffect:
    """Combined effect of the overrides matching one lookup.

    Attributes:
        is_unavailable: The practitioner (or room) is suppressed for the day.
        start_time: Replacement start time, if any override sets one.
        end_time: Replacement end time, if any override sets one.
        matched: Whether any override matched at all.
    """

    is_unavailable: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    matched: bool = False

    def window(self, start_time: str, end_time: str) -> tuple[str, str]:
        """Apply the replacement times to a base window."""
        return (self.start_time or start_time, self.end_time or end_time)


NO_EFFECT = OverrideEffect()


class OverrideIndex:
    """Overrides keyed by ``(date, room_number, practitioner_id)``.

    Later overrides with the same key replace earlier ones, matching the
    store's upsert behaviour. Precedence between keys is decided in
    ``practitioner_effect`` and ``room_effect`` rather than by scan order.
    """

    def __init__(self, overrides: Iterable[ScheduleOverride]):
        self._by_key: dict[tuple[date, Optional[int], Optional[str]], ScheduleOverride] = {}
        self._room_practitioners: dict[tuple[date, int], list[str]] = defaultdict(list)

        for override in overrides:
            key = override.key
            is_new = key not in self._by_key
            self._by_key[key] = override
            if is_new and override.room_number is not None and override.practitioner_id is not None:
                self._room_practitioners[(override.date, override.room_number)].append(
                    override.practitioner_id
                )

    def __len__(self) -> int:
        return len(self._by_key)

    def get(
        self,
        day: date,
        room_number: Optional[int] = None,
        practitioner_id: Optional[str] = None,
    ) -> Optional[ScheduleOverride]:
        """Exact-key lookup."""
        return self._by_key.get((day, room_number, practitioner_id))

    def practitioner_effect(
        self,
        day: date,
        practitioner_id: str,
        room_number: Optional[int] = None,
    ) -> OverrideEffect:
        """Effect of overrides targeting a practitioner on a date.

        With a room number, both the room-keyed and the room-less override
        for the practitioner are considered: unavailability from either wins,
        and the room-keyed override's times take precedence. Without a room
        number only the room-less override applies.
        """
        candidates = []
        if room_number is not None:
            candidates.append(self.get(day, room_number, practitioner_id))
        candidates.append(self.get(day, None, practitioner_id))
        return _combine(c for c in candidates if c is not None)

    def room_effect(self, day: date, room_number: int) -> OverrideEffect:
        """Effect of the room-only override (no practitioner) for a room."""
        override = self.get(day, room_number, None)
        if override is None:
            return NO_EFFECT
        return _combine([override])

    def room_substitutes(self, day: date, room_number: int) -> list[ScheduleOverride]:
        """Practitioner overrides on a room that place someone there.

        Returned in the order they were first recorded; unavailable entries
        are excluded.
        """
        substitutes = []
        for practitioner_id in self._room_practitioners.get((day, room_number), []):
            override = self._by_key[(day, room_number, practitioner_id)]
            if not override.is_unavailable:
                substitutes.append(override)
        return substitutes


def _combine(overrides: Iterable[ScheduleOverride]) -> OverrideEffect:
    """Merge overrides given in precedence order (strongest first)."""
    is_unavailable = False
    start_time = None
    end_time = None
    matched = False
    for override in overrides:
        matched = True
        if override.is_unavailable:
            is_unavailable = True
        if start_time is None:
            start_time = override.start_time
        if end_time is None:
            end_time = override.end_time
    if not matched:
        return NO_EFFECT
    return OverrideEffect(
        is_unavailable=is_unavailable,
        start_time=start_time,
        end_time=end_time,
        matched=True,
    )
