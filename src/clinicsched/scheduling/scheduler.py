"""Main scheduler interface.

This module provides the high-level ClinicScheduler class that ties the
store, the resolver and the resolution cache together. Mutations made
through it invalidate the cached resolutions of the affected schedule.
"""

import logging
from datetime import date
from typing import Optional

from clinicsched.domain.models import (
    ClinicSchedule,
    DayAssignment,
    Practitioner,
    RoomShift,
    ScheduleConfig,
    ScheduleOverride,
    ScheduleSnapshot,
)
from clinicsched.scheduling.cache import ResolutionCache
from clinicsched.scheduling.resolver import ScheduleResolver
from clinicsched.storage.store import OverrideFilter, ScheduleNotFoundError, ScheduleStore
from clinicsched.validation.validator import validate_date_range

logger = logging.getLogger(__name__)


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def find_double_bookings(days: list[DayAssignment]) -> list[dict]:
    """Find practitioners shown in two rooms at overlapping times.

    Double-booking is allowed; this only reports it.

    Returns:
        One dict per conflict with ``date``, ``practitioner_id`` and the two
        ``rooms`` involved.
    """
    conflicts = []
    for day in days:
        placements: dict[str, list[tuple[int, int, int]]] = {}
        for room_day in day.rooms:
            for slot in room_day.slots:
                for occupant in (slot.main, slot.side):
                    if occupant is None:
                        continue
                    placements.setdefault(occupant.practitioner_id, []).append(
                        (room_day.room_number, _minutes(occupant.start_time), _minutes(occupant.end_time))
                    )
        for practitioner_id, spans in placements.items():
            for i, (room_a, start_a, end_a) in enumerate(spans):
                for room_b, start_b, end_b in spans[i + 1:]:
                    if room_a != room_b and start_a < end_b and start_b < end_a:
                        conflicts.append(
                            {
                                "date": day.date,
                                "practitioner_id": practitioner_id,
                                "rooms": (room_a, room_b),
                            }
                        )
    return conflicts


class ClinicScheduler:
    """High-level entry point for previews, exports and schedule edits.

    Example:
        >>> scheduler = ClinicScheduler(store)
        >>> days = scheduler.preview(schedule.id, date(2024, 1, 15), date(2024, 1, 19))
        >>> scheduler.create_shift(schedule.id, 1, "P3", "09:00", "12:00", date=date(2024, 1, 16))
    """

    def __init__(
        self,
        store: ScheduleStore,
        resolver: Optional[ScheduleResolver] = None,
        cache: Optional[ResolutionCache] = None,
        cache_enabled: bool = True,
    ):
        """Initialize scheduler.

        Args:
            store: Persistence for schedule rules.
            resolver: Resolution engine. Defaults to the standard ordering.
            cache: Resolution cache. A fresh one is created if omitted.
            cache_enabled: Set False to resolve on every call.
        """
        self.store = store
        self.resolver = resolver or ScheduleResolver()
        self.cache = cache if cache is not None else ResolutionCache()
        self.cache_enabled = cache_enabled

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def preview(self, schedule_id: str, start_date: date, end_date: date) -> list[DayAssignment]:
        """Resolve a schedule for a date range.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist.
        """
        if not validate_date_range(start_date, end_date).is_valid:
            return []

        def resolve_fn() -> list[DayAssignment]:
            snapshot = self.store.load_snapshot(schedule_id)
            return self.resolver.resolve_snapshot(snapshot, start_date, end_date)

        if not self.cache_enabled:
            return resolve_fn()
        return self.cache.get_or_resolve(schedule_id, start_date, end_date, resolve_fn)

    def preview_active(
        self,
        organization_id: str,
        start_date: date,
        end_date: date,
    ) -> list[DayAssignment]:
        """Resolve the organization's active schedule.

        Raises:
            ScheduleNotFoundError: If the organization has no active schedule.
        """
        schedule = self.store.get_active_schedule(organization_id)
        if schedule is None:
            raise ScheduleNotFoundError(f"No active schedule for organization {organization_id}")
        return self.preview(schedule.id, start_date, end_date)

    def preview_with_stats(
        self,
        schedule_id: str,
        start_date: date,
        end_date: date,
    ) -> tuple[list[DayAssignment], dict]:
        """Resolve a range and return summary statistics alongside it."""
        days = self.preview(schedule_id, start_date, end_date)
        return days, self._calculate_stats(days)

    def snapshot(self, schedule_id: str) -> ScheduleSnapshot:
        return self.store.load_snapshot(schedule_id)

    def practitioners(self, schedule_id: str) -> dict[str, Practitioner]:
        """Practitioner directory of a schedule's organization, by id."""
        return self.store.load_snapshot(schedule_id).practitioners

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save_schedule_config(self, organization_id: str, config: ScheduleConfig) -> ScheduleConfig:
        """Store calendar settings and drop every cached resolution.

        Opening days feed every schedule of the organization, and cache
        entries are keyed by schedule only, so the whole cache is cleared.
        """
        config = self.store.save_schedule_config(organization_id, config)
        self.cache.clear()
        return config

    def save_practitioner(self, organization_id: str, practitioner: Practitioner) -> Practitioner:
        practitioner = self.store.save_practitioner(organization_id, practitioner)
        self.cache.clear()
        return practitioner

    def save_schedule(self, organization_id: str, *args, **kwargs) -> ClinicSchedule:
        previous = self.store.get_active_schedule(organization_id)
        schedule = self.store.save_schedule(organization_id, *args, **kwargs)
        if previous is not None:
            self.cache.invalidate(previous.id)
        return schedule

    def create_shift(self, schedule_id: str, *args, **kwargs) -> RoomShift:
        shift = self.store.create_shift(schedule_id, *args, **kwargs)
        self.cache.invalidate(schedule_id)
        return shift

    def update_shift(self, shift_id: str, **changes) -> RoomShift:
        schedule_id = self.store.get_shift_schedule_id(shift_id)
        shift = self.store.update_shift(shift_id, **changes)
        self.cache.invalidate(schedule_id)
        return shift

    def delete_shift(self, shift_id: str) -> bool:
        schedule_id = self.store.get_shift_schedule_id(shift_id)
        deleted = self.store.delete_shift(shift_id)
        if schedule_id is not None:
            self.cache.invalidate(schedule_id)
        return deleted

    def replace_weekly_shifts(self, schedule_id: str, room_number: int, new_shifts) -> list[RoomShift]:
        shifts = self.store.replace_weekly_shifts(schedule_id, room_number, new_shifts)
        self.cache.invalidate(schedule_id)
        return shifts

    def create_override(self, schedule_id: str, *args, **kwargs) -> ScheduleOverride:
        override = self.store.create_override(schedule_id, *args, **kwargs)
        self.cache.invalidate(schedule_id)
        return override

    def apply_day_of_week_override(self, schedule_id: str, *args, **kwargs) -> list[ScheduleOverride]:
        overrides = self.store.apply_day_of_week_override(schedule_id, *args, **kwargs)
        self.cache.invalidate(schedule_id)
        return overrides

    def delete_overrides(self, override_filter: OverrideFilter) -> int:
        deleted = self.store.delete_overrides(override_filter)
        if override_filter.schedule_id is not None:
            self.cache.invalidate(override_filter.schedule_id)
        elif deleted:
            # Deleted by override id alone; the owning schedule is unknown.
            self.cache.clear()
        return deleted

    def update_schedule(self, schedule_id: str, **changes):
        schedule = self.store.update_schedule(schedule_id, **changes)
        self.cache.invalidate(schedule_id)
        return schedule

    def reset_schedule(self, schedule_id: str) -> bool:
        reset = self.store.reset_schedule(schedule_id)
        self.cache.invalidate(schedule_id)
        return reset

    def _calculate_stats(self, days: list[DayAssignment]) -> dict:
        """Calculate occupancy statistics for resolved days."""
        room_days = [room_day for day in days for room_day in day.rooms]
        occupied = sum(1 for room_day in room_days if not room_day.is_empty)
        scheduled = set()
        for day in days:
            scheduled.update(day.practitioner_ids())
        double_bookings = find_double_bookings(days)
        if double_bookings:
            logger.warning("Found %d double-booked practitioner slots", len(double_bookings))

        return {
            "opening_days": len(days),
            "room_days": len(room_days),
            "occupied_room_days": occupied,
            "empty_room_days": len(room_days) - occupied,
            "occupancy_rate": occupied / len(room_days) if room_days else 0,
            "practitioners_scheduled": len(scheduled),
            "double_bookings": double_bookings,
        }
