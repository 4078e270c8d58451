"""Tests for the ClinicScheduler facade."""

import logging
from datetime import date

import pytest

from clinicsched.domain.models import (
    DayAssignment,
    Occupant,
    Practitioner,
    RoomDay,
    RoomSlot,
    ScheduleConfig,
    Weekday,
)
from clinicsched.scheduling.scheduler import ClinicScheduler, find_double_bookings
from clinicsched.storage.store import OverrideFilter, ScheduleNotFoundError, ShiftDraft

from conftest import ORG

MONDAY = date(2024, 1, 15)
FRIDAY = date(2024, 1, 19)
SUNDAY = date(2024, 1, 21)


@pytest.fixture
def scheduler(store):
    return ClinicScheduler(store)


def room_ids(days, day, room_number):
    by_date = {d.date: d for d in days}
    return by_date[day].room(room_number).practitioner_ids()


class TestPreview:
    """Tests for previews and their caching."""

    def test_preview_week(self, scheduler, schedule):
        days = scheduler.preview(schedule.id, MONDAY, SUNDAY)

        # Open Monday to Friday only.
        assert [d.date for d in days] == [date(2024, 1, d) for d in range(15, 20)]
        monday = days[0]
        assert [r.room_number for r in monday.rooms] == [1, 2, 3]
        assert monday.room(1).primary.main.practitioner_id == "P1"
        assert monday.room(1).primary.side.practitioner_id == "P2"
        assert monday.room(2).is_empty
        assert [w.practitioner_id for w in monday.other_workers] == ["W1"]

    def test_second_preview_is_cached(self, scheduler, schedule):
        first = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        second = scheduler.preview(schedule.id, MONDAY, FRIDAY)

        assert first == second
        assert (scheduler.cache.hits, scheduler.cache.misses) == (1, 1)

    def test_reversed_range_is_empty(self, scheduler):
        assert scheduler.preview("missing", FRIDAY, MONDAY) == []

    def test_unknown_schedule(self, scheduler):
        with pytest.raises(ScheduleNotFoundError):
            scheduler.preview("missing", MONDAY, FRIDAY)

    def test_preview_active(self, scheduler, schedule):
        assert scheduler.preview_active(ORG, MONDAY, FRIDAY) == scheduler.preview(schedule.id, MONDAY, FRIDAY)

    def test_preview_active_without_schedule(self, scheduler):
        with pytest.raises(ScheduleNotFoundError):
            scheduler.preview_active("nobody", MONDAY, FRIDAY)

    def test_cache_disabled(self, store, schedule):
        scheduler = ClinicScheduler(store, cache_enabled=False)
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert len(scheduler.cache) == 0

    def test_practitioners(self, scheduler, schedule):
        assert set(scheduler.practitioners(schedule.id)) == {"P1", "P2", "W1"}


class TestInvalidation:
    """Mutations through the scheduler are visible in the next preview."""

    def test_create_shift(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.create_shift(schedule.id, 2, "P2", "13:00", "17:00", date=MONDAY)

        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert room_ids(days, MONDAY, 2) == ["P2"]
        assert room_ids(days, date(2024, 1, 16), 2) == []
        assert scheduler.cache.misses == 2

    def test_update_and_delete_shift(self, scheduler, schedule):
        shift = scheduler.create_shift(schedule.id, 2, "P2", "13:00", "17:00", day_of_week="Tuesday")
        scheduler.preview(schedule.id, MONDAY, FRIDAY)

        scheduler.update_shift(shift.id, practitioner_id="P1")
        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert room_ids(days, date(2024, 1, 16), 2) == ["P1"]

        assert scheduler.delete_shift(shift.id) is True
        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert room_ids(days, date(2024, 1, 16), 2) == []

    def test_replace_weekly_shifts(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.replace_weekly_shifts(schedule.id, 3, [ShiftDraft("P2", "08:00", "12:00", day_of_week="Friday")])

        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert room_ids(days, FRIDAY, 3) == ["P2"]

    def test_unavailable_override(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.create_override(schedule.id, MONDAY, practitioner_id="P1", is_unavailable=True)

        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert "P1" not in room_ids(days, MONDAY, 1)
        assert "P1" in room_ids(days, date(2024, 1, 16), 1)

    def test_day_of_week_override(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.apply_day_of_week_override(schedule.id, "Wednesday", practitioner_id="W1", is_unavailable=True)

        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        workers = {d.date: [w.practitioner_id for w in d.other_workers] for d in days}
        assert workers[date(2024, 1, 17)] == []
        assert workers[MONDAY] == ["W1"]

    def test_delete_overrides(self, scheduler, schedule):
        override = scheduler.create_override(schedule.id, MONDAY, practitioner_id="P1", is_unavailable=True)
        scheduler.preview(schedule.id, MONDAY, FRIDAY)

        assert scheduler.delete_overrides(OverrideFilter(override_id=override.id)) == 1
        assert len(scheduler.cache) == 0
        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert "P1" in room_ids(days, MONDAY, 1)

    def test_update_schedule(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.update_schedule(schedule.id, room_count=4)
        days = scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert len(days[0].rooms) == 4

    def test_opening_days_change(self, scheduler, schedule):
        assert len(scheduler.preview(schedule.id, MONDAY, SUNDAY)) == 5

        scheduler.save_schedule_config(ORG, ScheduleConfig(room_count=3, opening_days=["Monday"]))

        days = scheduler.preview(schedule.id, MONDAY, SUNDAY)
        assert [d.date for d in days] == [MONDAY]

    def test_practitioner_change(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        scheduler.save_practitioner(ORG, Practitioner("P1", "Alicia", "Adams", color="#000000"))

        assert len(scheduler.cache) == 0
        assert scheduler.practitioners(schedule.id)["P1"].first_name == "Alicia"

    def test_save_schedule_invalidates_previous(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        successor = scheduler.save_schedule(ORG, "Next", MONDAY, FRIDAY, room_count=1)

        assert scheduler.cache.get(schedule.id, MONDAY, FRIDAY) is None
        assert scheduler.store.get_active_schedule(ORG).id == successor.id

    def test_reset_schedule(self, scheduler, schedule):
        scheduler.preview(schedule.id, MONDAY, FRIDAY)
        assert scheduler.reset_schedule(schedule.id) is True
        with pytest.raises(ScheduleNotFoundError):
            scheduler.preview(schedule.id, MONDAY, FRIDAY)


class TestStats:
    def test_occupancy(self, scheduler, schedule):
        days, stats = scheduler.preview_with_stats(schedule.id, MONDAY, FRIDAY)

        assert len(days) == 5
        assert stats["opening_days"] == 5
        assert stats["room_days"] == 15
        assert stats["occupied_room_days"] == 5
        assert stats["empty_room_days"] == 10
        assert stats["occupancy_rate"] == pytest.approx(1 / 3)
        assert stats["practitioners_scheduled"] == 3
        assert stats["double_bookings"] == []

    def test_double_booking_reported(self, scheduler, schedule, caplog):
        scheduler.create_shift(schedule.id, 2, "P1", "10:00", "12:00", date=MONDAY)

        with caplog.at_level(logging.WARNING, logger="clinicsched.scheduling.scheduler"):
            _, stats = scheduler.preview_with_stats(schedule.id, MONDAY, FRIDAY)

        assert stats["double_bookings"] == [{"date": MONDAY, "practitioner_id": "P1", "rooms": (1, 2)}]
        assert "double-booked" in caplog.text

    def test_empty_range(self, scheduler, schedule):
        days, stats = scheduler.preview_with_stats(schedule.id, FRIDAY, MONDAY)
        assert days == []
        assert stats["occupancy_rate"] == 0


class TestFindDoubleBookings:
    """Tests for find_double_bookings."""

    @staticmethod
    def make_day(*rooms):
        return DayAssignment(
            date=MONDAY,
            day_of_week=Weekday.MONDAY,
            rooms=tuple(
                RoomDay(number, tuple(RoomSlot(main=Occupant("P1", start, end)) for start, end in windows))
                for number, windows in rooms
            ),
        )

    def test_overlap_across_rooms(self):
        day = self.make_day((1, [("09:00", "12:00")]), (2, [("11:30", "13:00")]))
        assert len(find_double_bookings([day])) == 1

    def test_adjacent_windows_are_fine(self):
        day = self.make_day((1, [("09:00", "12:00")]), (2, [("12:00", "13:00")]))
        assert find_double_bookings([day]) == []

    def test_same_room_is_not_a_double_booking(self):
        day = self.make_day((1, [("09:00", "12:00"), ("10:00", "11:00")]))
        assert find_double_bookings([day]) == []
