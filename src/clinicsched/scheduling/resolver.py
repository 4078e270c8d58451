"""Schedule resolution engine.

This module turns the layered schedule rules into the concrete occupancy
shown for each opening day. For every room the rules apply in this order:

1. Dated shifts for the room+day, if any exist.
2. Otherwise recurring weekly shifts for the room+weekday.
3. Otherwise the room's default assignment, on its working days.

Per-date overrides then suppress unavailable practitioners or replace the
displayed time window. Resolution is a pure function of its inputs.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from clinicsched.domain.models import (
    DayAssignment,
    Occupant,
    OccupantSource,
    OtherWorkerSchedule,
    RoomAssignment,
    RoomDay,
    RoomShift,
    RoomSlot,
    ScheduleConfig,
    ScheduleOverride,
    ScheduleSnapshot,
    Weekday,
    iter_dates,
)
from clinicsched.domain.policies import ShiftOrderingPolicy
from clinicsched.scheduling.indexes import OverrideIndex, ShiftIndex

logger = logging.getLogger(__name__)


class ScheduleResolver:
    """Resolves rooms and other workers for every opening day in a range.

    The resolver holds no state between calls, so one instance can be
    shared by concurrent callers.

    Example:
        >>> resolver = ScheduleResolver()
        >>> days = resolver.resolve(
        ...     date(2024, 1, 15), date(2024, 1, 19),
        ...     config, assignments, other_workers, shifts, overrides,
        ... )
        >>> days[0].room(1).primary.main.practitioner_id
        'P1'
    """

    def __init__(self, ordering_policy: Optional[ShiftOrderingPolicy] = None):
        """Initialize resolver.

        Args:
            ordering_policy: Order of shifts within a room+day. Defaults to
                priority descending, then start time ascending.
        """
        self.ordering_policy = ordering_policy

    def resolve(
        self,
        start_date: date,
        end_date: date,
        config: ScheduleConfig,
        assignments: Iterable[RoomAssignment] = (),
        other_workers: Iterable[OtherWorkerSchedule] = (),
        shifts: Iterable[RoomShift] = (),
        overrides: Iterable[ScheduleOverride] = (),
    ) -> list[DayAssignment]:
        """Resolve the schedule for ``[start_date, end_date]``.

        Args:
            start_date: First day of the range (inclusive).
            end_date: Last day of the range (inclusive).
            config: Room count and opening days.
            assignments: Default room assignments.
            other_workers: Non-room-bound worker schedules.
            shifts: Recurring and dated room shifts.
            overrides: Per-date overrides.

        Returns:
            One DayAssignment per opening day, in chronological order. Closed
            days are omitted entirely; an empty range yields an empty list.
        """
        shift_index = ShiftIndex(shifts, self.ordering_policy)
        override_index = OverrideIndex(overrides)

        assignments_by_room: dict[int, RoomAssignment] = {}
        for assignment in assignments:
            assignments_by_room.setdefault(assignment.room_number, assignment)
        other_workers = list(other_workers)

        days = []
        for day in iter_dates(start_date, end_date):
            if not config.is_open(day):
                continue
            weekday = Weekday.from_date(day)

            rooms = tuple(
                RoomDay(
                    room_number=room_number,
                    slots=self._resolve_room(
                        day,
                        weekday,
                        room_number,
                        shift_index,
                        override_index,
                        assignments_by_room.get(room_number),
                    ),
                )
                for room_number in config.rooms
            )
            workers = self._resolve_other_workers(day, weekday, other_workers, override_index)
            days.append(
                DayAssignment(date=day, day_of_week=weekday, rooms=rooms, other_workers=workers)
            )

        logger.debug(
            "Resolved %d opening days between %s and %s (%d rooms)",
            len(days),
            start_date.isoformat(),
            end_date.isoformat(),
            config.room_count,
        )
        return days

    def resolve_snapshot(
        self,
        snapshot: ScheduleSnapshot,
        start_date: date,
        end_date: date,
    ) -> list[DayAssignment]:
        """Resolve a range using all records of a loaded schedule."""
        return self.resolve(
            start_date,
            end_date,
            snapshot.config,
            snapshot.assignments,
            snapshot.other_workers,
            snapshot.shifts,
            snapshot.overrides,
        )

    def _resolve_room(
        self,
        day: date,
        weekday: Weekday,
        room_number: int,
        shift_index: ShiftIndex,
        override_index: OverrideIndex,
        assignment: Optional[RoomAssignment],
    ) -> tuple[RoomSlot, ...]:
        """Resolve the (main, side) pairs of one room on one day."""
        shifts = shift_index.for_room_day(room_number, day)
        if shifts:
            return self._resolve_shifts(day, room_number, shifts, override_index)
        if assignment is None or not assignment.works_on(weekday):
            return ()
        return self._resolve_assignment(day, room_number, assignment, override_index)

    def _resolve_shifts(
        self,
        day: date,
        room_number: int,
        shifts: tuple[RoomShift, ...],
        override_index: OverrideIndex,
    ) -> tuple[RoomSlot, ...]:
        slots = []
        for shift in shifts:
            effect = override_index.practitioner_effect(day, shift.practitioner_id, room_number)
            if effect.is_unavailable:
                continue
            start_time, end_time = effect.window(shift.start_time, shift.end_time)

            main = Occupant(
                practitioner_id=shift.practitioner_id,
                start_time=start_time,
                end_time=end_time,
                source=OccupantSource.SHIFT,
                priority=shift.priority,
                is_override=shift.is_override,
                reason=shift.reason,
            )
            side = None
            if shift.side_practitioner_id:
                side_effect = override_index.practitioner_effect(
                    day, shift.side_practitioner_id, room_number
                )
                # The side practitioner shares the main practitioner's window.
                if not side_effect.is_unavailable:
                    side = Occupant(
                        practitioner_id=shift.side_practitioner_id,
                        start_time=start_time,
                        end_time=end_time,
                        source=OccupantSource.SHIFT,
                        priority=shift.priority,
                        is_override=shift.is_override,
                        reason=shift.reason,
                    )
            slots.append(RoomSlot(main=main, side=side))
        return tuple(slots)

    def _resolve_assignment(
        self,
        day: date,
        room_number: int,
        assignment: RoomAssignment,
        override_index: OverrideIndex,
    ) -> tuple[RoomSlot, ...]:
        substitutes = override_index.room_substitutes(day, room_number)
        if substitutes:
            # Practitioner overrides on the room replace the base occupants
            # and outrank a room-only override.
            occupants = []
            for override in substitutes:
                effect = override_index.practitioner_effect(
                    day, override.practitioner_id, room_number
                )
                if effect.is_unavailable:
                    continue
                start_time, end_time = effect.window(assignment.start_time, assignment.end_time)
                occupants.append(
                    Occupant(
                        practitioner_id=override.practitioner_id,
                        start_time=start_time,
                        end_time=end_time,
                        source=OccupantSource.OVERRIDE,
                        is_override=True,
                        reason=override.reason,
                    )
                )
            return tuple(
                RoomSlot(
                    main=occupants[i],
                    side=occupants[i + 1] if i + 1 < len(occupants) else None,
                )
                for i in range(0, len(occupants), 2)
            )

        room_effect = override_index.room_effect(day, room_number)
        if room_effect.is_unavailable:
            return ()
        base_start, base_end = room_effect.window(assignment.start_time, assignment.end_time)
        main = self._assignment_occupant(
            day, room_number, assignment.main_practitioner_id, base_start, base_end, override_index
        )
        side = self._assignment_occupant(
            day, room_number, assignment.side_practitioner_id, base_start, base_end, override_index
        )
        if main is None and side is None:
            return ()
        return (RoomSlot(main=main, side=side),)

    @staticmethod
    def _assignment_occupant(
        day: date,
        room_number: int,
        practitioner_id: Optional[str],
        start_time: str,
        end_time: str,
        override_index: OverrideIndex,
    ) -> Optional[Occupant]:
        if not practitioner_id:
            return None
        effect = override_index.practitioner_effect(day, practitioner_id, room_number)
        if effect.is_unavailable:
            return None
        start_time, end_time = effect.window(start_time, end_time)
        return Occupant(
            practitioner_id=practitioner_id,
            start_time=start_time,
            end_time=end_time,
            source=OccupantSource.ASSIGNMENT,
        )

    @staticmethod
    def _resolve_other_workers(
        day: date,
        weekday: Weekday,
        other_workers: list[OtherWorkerSchedule],
        override_index: OverrideIndex,
    ) -> tuple[Occupant, ...]:
        workers = []
        for worker in other_workers:
            if not worker.practitioner_id or not worker.works_on(weekday):
                continue
            # Only room-less overrides apply to workers outside rooms.
            effect = override_index.practitioner_effect(day, worker.practitioner_id)
            if effect.is_unavailable:
                continue
            start_time, end_time = effect.window(worker.start_time, worker.end_time)
            workers.append(
                Occupant(
                    practitioner_id=worker.practitioner_id,
                    start_time=start_time,
                    end_time=end_time,
                    source=OccupantSource.OTHER_WORKER,
                )
            )
        return tuple(workers)


def resolve(
    start_date: date,
    end_date: date,
    config: ScheduleConfig,
    assignments: Iterable[RoomAssignment] = (),
    other_workers: Iterable[OtherWorkerSchedule] = (),
    shifts: Iterable[RoomShift] = (),
    overrides: Iterable[ScheduleOverride] = (),
) -> list[DayAssignment]:
    """Resolve a date range with the default ordering policy."""
    return ScheduleResolver().resolve(
        start_date, end_date, config, assignments, other_workers, shifts, overrides
    )
