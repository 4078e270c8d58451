"""
Schedule store: persistence and mutation API for schedule rules.

Every public method runs in its own transaction (see ``session_scope``).
Records are validated before anything is written. Deletes are idempotent:
removing something that is already gone is a success.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from clinicsched.domain.models import (
    ClinicSchedule,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    RoomShift,
    ScheduleConfig,
    ScheduleOverride,
    ScheduleSnapshot,
    Weekday,
    iter_dates,
)
from clinicsched.storage.database import session_scope
from clinicsched.storage.models import (
    ClinicScheduleRecord,
    OrganizationSettingsRecord,
    OtherWorkerScheduleRecord,
    PractitionerRecord,
    RoomAssignmentRecord,
    RoomShiftRecord,
    ScheduleOverrideRecord,
    new_id,
    weekday_names,
)
from clinicsched.validation.validator import (
    ScheduleValidator,
    ValidationError,
    ValidationErrorType,
    ValidationIssue,
    ValidationResult,
    parse_weekday,
)

logger = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when an operation targets a record that does not exist."""


class ScheduleNotFoundError(RecordNotFoundError):
    """Raised when a schedule id does not exist (or is not active when required)."""


class ShiftNotFoundError(RecordNotFoundError):
    """Raised when updating a shift that does not exist."""


@dataclass
class ShiftDraft:
    """A recurring shift to be written by ``replace_weekly_shifts``."""

    practitioner_id: str
    start_time: str
    end_time: str
    day_of_week: Optional[Union[Weekday, str]] = None
    side_practitioner_id: Optional[str] = None
    priority: int = 0
    is_override: bool = False
    reason: Optional[str] = None


@dataclass
class OverrideFilter:
    """Selects overrides to delete.

    At least ``override_id`` or ``schedule_id`` must be given; the other
    fields narrow the selection further.
    """

    override_id: Optional[str] = None
    schedule_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    room_number: Optional[int] = None
    practitioner_id: Optional[str] = None


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class ScheduleStore:
    """Relational store for schedules, shifts and overrides.

    Example:
        >>> store = ScheduleStore(create_session_factory(engine))
        >>> schedule = store.save_schedule("org-1", "Spring", start, end, room_count=3)
        >>> store.create_shift(schedule.id, 1, "P1", "09:00", "13:00", day_of_week="Monday")
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        validator: Optional[ScheduleValidator] = None,
        default_config: Optional[ScheduleConfig] = None,
    ):
        self.session_factory = session_factory
        self.validator = validator or ScheduleValidator()
        self.default_config = default_config or ScheduleConfig()

    def _session(self):
        return session_scope(self.session_factory)

    # ------------------------------------------------------------------
    # Organization settings and practitioners
    # ------------------------------------------------------------------

    def get_schedule_config(self, organization_id: str) -> ScheduleConfig:
        """Calendar settings of an organization, or the defaults if unset."""
        with self._session() as db:
            record = db.get(OrganizationSettingsRecord, organization_id)
            if record is None:
                return self.default_config
            return record.to_domain()

    def save_schedule_config(self, organization_id: str, config: ScheduleConfig) -> ScheduleConfig:
        """Overwrite an organization's calendar settings."""
        self.validator.validate_config(config).raise_if_invalid()
        with self._session() as db:
            record = db.get(OrganizationSettingsRecord, organization_id)
            if record is None:
                record = OrganizationSettingsRecord(organization_id=organization_id)
                db.add(record)
            record.room_count = config.room_count
            record.opening_days = weekday_names(config.opening_days)
        logger.info(
            "Saved calendar settings for %s: %d rooms, open %s",
            organization_id,
            config.room_count,
            ", ".join(weekday_names(config.opening_days)),
        )
        return config

    def save_practitioner(self, organization_id: str, practitioner: Practitioner) -> Practitioner:
        """Insert or update a practitioner's display details."""
        with self._session() as db:
            record = db.get(PractitionerRecord, practitioner.id)
            if record is None:
                record = PractitionerRecord(id=practitioner.id, organization_id=organization_id)
                db.add(record)
            record.first_name = practitioner.first_name
            record.last_name = practitioner.last_name
            record.role = practitioner.role
            record.color = practitioner.color
            record.is_disabled = practitioner.is_disabled
        return practitioner

    def list_practitioners(self, organization_id: str, include_disabled: bool = True) -> list[Practitioner]:
        with self._session() as db:
            query = select(PractitionerRecord).where(PractitionerRecord.organization_id == organization_id)
            if not include_disabled:
                query = query.where(PractitionerRecord.is_disabled.is_(False))
            query = query.order_by(PractitionerRecord.last_name, PractitionerRecord.first_name)
            return [r.to_domain() for r in db.scalars(query)]

    # ------------------------------------------------------------------
    # Schedule lifecycle
    # ------------------------------------------------------------------

    def save_schedule(
        self,
        organization_id: str,
        name: str,
        start_date: date,
        end_date: date,
        room_count: int,
        assignments: Iterable[RoomAssignment] = (),
        other_workers: Iterable[OtherWorkerSchedule] = (),
    ) -> ClinicSchedule:
        """Create a new active schedule, replacing the current active one.

        The previous active schedule is deactivated and its overrides are
        copied to the new schedule, all in one transaction.
        """
        assignments = list(assignments)
        other_workers = list(other_workers)
        schedule = ClinicSchedule(
            id=new_id(),
            organization_id=organization_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            room_count=room_count,
        )
        result = self.validator.validate_schedule(schedule)
        for i, assignment in enumerate(assignments):
            result.merge(self.validator.validate_assignment(assignment, room_count), f"room_assignments[{i}]")
        for i, worker in enumerate(other_workers):
            result.merge(self.validator.validate_other_worker(worker), f"other_workers[{i}]")
        result.raise_if_invalid()

        with self._session() as db:
            previous = db.scalars(
                select(ClinicScheduleRecord).where(
                    ClinicScheduleRecord.organization_id == organization_id,
                    ClinicScheduleRecord.is_active.is_(True),
                )
            ).all()
            for record in previous:
                record.is_active = False

            record = ClinicScheduleRecord(
                id=schedule.id,
                organization_id=organization_id,
                name=name,
                start_date=start_date,
                end_date=end_date,
                room_count=room_count,
                is_active=True,
            )
            for assignment in assignments:
                record.room_assignments.append(
                    RoomAssignmentRecord(
                        room_number=assignment.room_number,
                        main_practitioner_id=assignment.main_practitioner_id,
                        side_practitioner_id=assignment.side_practitioner_id,
                        start_time=assignment.start_time,
                        end_time=assignment.end_time,
                        working_days=weekday_names(assignment.working_days),
                    )
                )
            for position, worker in enumerate(other_workers):
                record.other_worker_schedules.append(
                    OtherWorkerScheduleRecord(
                        position=position,
                        practitioner_id=worker.practitioner_id,
                        start_time=worker.start_time,
                        end_time=worker.end_time,
                        working_days=weekday_names(worker.working_days),
                    )
                )

            copied = 0
            seen_keys = set()
            for old in previous:
                for override in old.schedule_overrides:
                    key = (override.date, override.room_number, override.practitioner_id)
                    if key in seen_keys:
                        continue
                    seen_keys.add(key)
                    record.schedule_overrides.append(
                        ScheduleOverrideRecord(
                            date=override.date,
                            room_number=override.room_number,
                            practitioner_id=override.practitioner_id,
                            start_time=override.start_time,
                            end_time=override.end_time,
                            is_unavailable=override.is_unavailable,
                            reason=override.reason,
                        )
                    )
                    copied += 1
            db.add(record)

        logger.info(
            "Saved schedule %s for %s (%s to %s, %d rooms); deactivated %d, copied %d overrides",
            schedule.id,
            organization_id,
            start_date.isoformat(),
            end_date.isoformat(),
            room_count,
            len(previous),
            copied,
        )
        return schedule

    def get_schedule(self, schedule_id: str) -> Optional[ClinicSchedule]:
        with self._session() as db:
            record = db.get(ClinicScheduleRecord, schedule_id)
            return record.to_domain() if record else None

    def get_active_schedule(self, organization_id: str) -> Optional[ClinicSchedule]:
        """The organization's active schedule, if any."""
        with self._session() as db:
            record = db.scalars(
                select(ClinicScheduleRecord)
                .where(
                    ClinicScheduleRecord.organization_id == organization_id,
                    ClinicScheduleRecord.is_active.is_(True),
                )
                .order_by(ClinicScheduleRecord.created_at.desc())
            ).first()
            return record.to_domain() if record else None

    def update_schedule(
        self,
        schedule_id: str,
        name: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        room_count: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> ClinicSchedule:
        """Change a schedule's name, period, room count or active flag.

        Activating a schedule deactivates every other schedule of the same
        organization.
        """
        with self._session() as db:
            record = self._require_schedule(db, schedule_id)
            updated = replace(
                record.to_domain(),
                name=name if name is not None else record.name,
                start_date=start_date or record.start_date,
                end_date=end_date or record.end_date,
                room_count=room_count if room_count is not None else record.room_count,
                is_active=is_active if is_active is not None else record.is_active,
            )
            result = self.validator.validate_schedule(updated)
            if updated.room_count < record.room_count:
                self._check_rooms_in_use(record, updated.room_count, result)
            result.raise_if_invalid()

            if updated.is_active and not record.is_active:
                for other in db.scalars(
                    select(ClinicScheduleRecord).where(
                        ClinicScheduleRecord.organization_id == record.organization_id,
                        ClinicScheduleRecord.id != schedule_id,
                        ClinicScheduleRecord.is_active.is_(True),
                    )
                ):
                    other.is_active = False

            record.name = updated.name
            record.start_date = updated.start_date
            record.end_date = updated.end_date
            record.room_count = updated.room_count
            record.is_active = updated.is_active
        logger.info("Updated schedule %s", schedule_id)
        return updated

    def reset_schedule(self, schedule_id: str) -> bool:
        """Deactivate and delete a schedule with all of its rules.

        Returns False when the schedule was already gone.
        """
        with self._session() as db:
            record = db.get(ClinicScheduleRecord, schedule_id)
            if record is None:
                return False
            record.is_active = False
            db.delete(record)
        logger.info("Reset schedule %s", schedule_id)
        return True

    def load_snapshot(self, schedule_id: str) -> ScheduleSnapshot:
        """Load every rule record of a schedule for resolution.

        The room count comes from the schedule; the opening days come from
        the organization's calendar settings.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist.
        """
        with self._session() as db:
            record = self._require_schedule(db, schedule_id)
            settings = db.get(OrganizationSettingsRecord, record.organization_id)
            opening_days = settings.to_domain().opening_days if settings else self.default_config.opening_days
            practitioners = db.scalars(
                select(PractitionerRecord).where(PractitionerRecord.organization_id == record.organization_id)
            )
            return ScheduleSnapshot(
                config=ScheduleConfig(room_count=record.room_count, opening_days=opening_days),
                assignments=[a.to_domain() for a in record.room_assignments],
                other_workers=[w.to_domain() for w in record.other_worker_schedules],
                shifts=[s.to_domain() for s in self._ordered_shifts(record.room_shifts)],
                overrides=[
                    o.to_domain()
                    for o in sorted(record.schedule_overrides, key=lambda o: (o.date, o.created_at))
                ],
                schedule=record.to_domain(),
                practitioners={p.id: p.to_domain() for p in practitioners},
            )

    # ------------------------------------------------------------------
    # Shifts
    # ------------------------------------------------------------------

    def create_shift(
        self,
        schedule_id: str,
        room_number: int,
        practitioner_id: str,
        start_time: str,
        end_time: str,
        day_of_week: Optional[Union[Weekday, str]] = None,
        date: Optional[date] = None,
        priority: int = 0,
        is_override: bool = False,
        reason: Optional[str] = None,
        side_practitioner_id: Optional[str] = None,
    ) -> RoomShift:
        """Create a recurring or dated shift.

        Overlaps with existing shifts on the same room+day are allowed and
        logged; the resolver shows them side by side.

        Raises:
            ValidationError: On a bad window, room, priority, or when both
                or neither of ``day_of_week``/``date`` are given.
            ScheduleNotFoundError: If the schedule does not exist.
        """
        shift = RoomShift(
            id=new_id(),
            room_number=room_number,
            practitioner_id=practitioner_id,
            side_practitioner_id=side_practitioner_id or None,
            start_time=start_time,
            end_time=end_time,
            day_of_week=parse_weekday(day_of_week) if day_of_week is not None else None,
            date=date,
            priority=priority,
            is_override=is_override,
            reason=reason,
        )
        with self._session() as db:
            schedule = self._require_schedule(db, schedule_id)
            self.validator.validate_shift(shift, schedule.room_count).raise_if_invalid()
            self._log_overlaps(db, schedule_id, shift)
            db.add(self._shift_record(schedule_id, shift))
        logger.info(
            "Created shift %s in room %d for %s (%s %s-%s)",
            shift.id,
            room_number,
            practitioner_id,
            date.isoformat() if date else shift.day_of_week.value,
            start_time,
            end_time,
        )
        return shift

    def update_shift(self, shift_id: str, **changes) -> RoomShift:
        """Apply field changes to a shift and re-validate it.

        Raises:
            ShiftNotFoundError: If the shift does not exist.
            ValidationError: If the merged shift is invalid.
        """
        unknown = set(changes) - set(RoomShift.__dataclass_fields__) - {"id"}
        if unknown:
            raise TypeError(f"Unknown shift fields: {', '.join(sorted(unknown))}")
        changes.pop("id", None)
        if changes.get("day_of_week") is not None:
            changes["day_of_week"] = parse_weekday(changes["day_of_week"])

        with self._session() as db:
            record = db.get(RoomShiftRecord, shift_id)
            if record is None:
                raise ShiftNotFoundError(f"Shift not found: {shift_id}")
            updated = replace(record.to_domain(), **changes)
            self.validator.validate_shift(updated, record.schedule.room_count).raise_if_invalid()

            record.room_number = updated.room_number
            record.practitioner_id = updated.practitioner_id
            record.side_practitioner_id = updated.side_practitioner_id
            record.start_time = updated.start_time
            record.end_time = updated.end_time
            record.day_of_week = updated.day_of_week.value if updated.day_of_week else None
            record.date = updated.date
            record.priority = updated.priority
            record.is_override = updated.is_override
            record.reason = updated.reason
        logger.info("Updated shift %s", shift_id)
        return updated

    def delete_shift(self, shift_id: str) -> bool:
        """Delete a shift. Returns False if it did not exist."""
        with self._session() as db:
            deleted = db.execute(delete(RoomShiftRecord).where(RoomShiftRecord.id == shift_id)).rowcount
        if deleted:
            logger.info("Deleted shift %s", shift_id)
        else:
            logger.debug("Shift %s already absent; nothing to delete", shift_id)
        return bool(deleted)

    def get_shift_schedule_id(self, shift_id: str) -> Optional[str]:
        """Schedule that owns a shift, or None if the shift is gone."""
        with self._session() as db:
            return db.scalar(select(RoomShiftRecord.schedule_id).where(RoomShiftRecord.id == shift_id))

    def list_shifts(
        self,
        schedule_id: str,
        room_number: Optional[int] = None,
        day: Optional[date] = None,
        day_of_week: Optional[Union[Weekday, str]] = None,
    ) -> list[RoomShift]:
        """Shifts of a schedule, optionally filtered by room, date or weekday."""
        with self._session() as db:
            query = select(RoomShiftRecord).where(RoomShiftRecord.schedule_id == schedule_id)
            if room_number is not None:
                query = query.where(RoomShiftRecord.room_number == room_number)
            if day is not None:
                query = query.where(RoomShiftRecord.date == day)
            if day_of_week is not None:
                query = query.where(RoomShiftRecord.day_of_week == parse_weekday(day_of_week).value)
            return [r.to_domain() for r in self._ordered_shifts(db.scalars(query))]

    def replace_weekly_shifts(
        self,
        schedule_id: str,
        room_number: int,
        new_shifts: Sequence[ShiftDraft],
    ) -> list[RoomShift]:
        """Replace all recurring shifts of a room in one transaction.

        Every draft is validated before anything is touched. The delete and
        the inserts then share a single transaction: if any insert fails the
        old shifts are restored by the rollback and the error propagates.

        Raises:
            ValidationError: If any draft is invalid (nothing is changed).
            ScheduleNotFoundError: If the schedule does not exist.
        """
        with self._session() as db:
            schedule = self._require_schedule(db, schedule_id)

            shifts = []
            result = ValidationResult()
            for i, draft in enumerate(new_shifts):
                shift = RoomShift(
                    id=new_id(),
                    room_number=room_number,
                    practitioner_id=draft.practitioner_id,
                    side_practitioner_id=draft.side_practitioner_id or None,
                    start_time=draft.start_time,
                    end_time=draft.end_time,
                    day_of_week=(
                        parse_weekday(draft.day_of_week, f"shifts[{i}].day_of_week")
                        if draft.day_of_week is not None
                        else None
                    ),
                    priority=draft.priority,
                    is_override=draft.is_override,
                    reason=draft.reason,
                )
                result.merge(self.validator.validate_shift(shift, schedule.room_count), f"shifts[{i}]")
                shifts.append(shift)
            result.raise_if_invalid()

            removed = db.execute(
                delete(RoomShiftRecord).where(
                    RoomShiftRecord.schedule_id == schedule_id,
                    RoomShiftRecord.room_number == room_number,
                    RoomShiftRecord.day_of_week.is_not(None),
                    RoomShiftRecord.date.is_(None),
                )
            ).rowcount
            for shift in shifts:
                db.add(self._shift_record(schedule_id, shift))
            db.flush()

        logger.info(
            "Replaced %d weekly shifts of room %d in schedule %s with %d new shifts",
            removed,
            room_number,
            schedule_id,
            len(shifts),
        )
        return shifts

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def create_override(
        self,
        schedule_id: str,
        date: date,
        room_number: Optional[int] = None,
        practitioner_id: Optional[str] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        is_unavailable: bool = False,
        reason: Optional[str] = None,
    ) -> ScheduleOverride:
        """Create an override, or update the one with the same key.

        The key is ``(schedule, date, room_number, practitioner_id)``.

        Raises:
            ValidationError: On a bad room or time window.
            ScheduleNotFoundError: If the schedule does not exist.
        """
        override = ScheduleOverride(
            date=date,
            room_number=room_number,
            practitioner_id=practitioner_id or None,
            start_time=start_time or None,
            end_time=end_time or None,
            is_unavailable=is_unavailable,
            reason=reason,
        )
        with self._session() as db:
            schedule = self._require_schedule(db, schedule_id)
            self.validator.validate_override(override, schedule.room_count).raise_if_invalid()
            override = self._upsert_override(db, schedule_id, override)
        logger.info(
            "Saved override %s on %s (room=%s, practitioner=%s, unavailable=%s)",
            override.id,
            date.isoformat(),
            room_number,
            practitioner_id,
            is_unavailable,
        )
        return override

    def list_overrides(
        self,
        schedule_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ScheduleOverride]:
        with self._session() as db:
            query = select(ScheduleOverrideRecord).where(ScheduleOverrideRecord.schedule_id == schedule_id)
            if start_date is not None:
                query = query.where(ScheduleOverrideRecord.date >= start_date)
            if end_date is not None:
                query = query.where(ScheduleOverrideRecord.date <= end_date)
            query = query.order_by(ScheduleOverrideRecord.date, ScheduleOverrideRecord.created_at)
            return [r.to_domain() for r in db.scalars(query)]

    def delete_overrides(self, override_filter: OverrideFilter) -> int:
        """Delete the overrides selected by a filter.

        Returns the number of rows removed; zero is a success.

        Raises:
            ValidationError: If the filter names neither an override nor a
                schedule.
        """
        if override_filter.override_id is None and override_filter.schedule_id is None:
            raise ValidationError.single(
                ValidationErrorType.MISSING_ID,
                "Override ID or Schedule ID is required",
                field_name="override_id",
            )

        conditions = []
        if override_filter.override_id is not None:
            conditions.append(ScheduleOverrideRecord.id == override_filter.override_id)
        if override_filter.schedule_id is not None:
            conditions.append(ScheduleOverrideRecord.schedule_id == override_filter.schedule_id)
        if override_filter.start_date is not None:
            conditions.append(ScheduleOverrideRecord.date >= override_filter.start_date)
        if override_filter.end_date is not None:
            conditions.append(ScheduleOverrideRecord.date <= override_filter.end_date)
        if override_filter.room_number is not None:
            conditions.append(ScheduleOverrideRecord.room_number == override_filter.room_number)
        if override_filter.practitioner_id is not None:
            conditions.append(ScheduleOverrideRecord.practitioner_id == override_filter.practitioner_id)

        with self._session() as db:
            deleted = db.execute(delete(ScheduleOverrideRecord).where(*conditions)).rowcount
        logger.info("Deleted %d schedule overrides (%s)", deleted, override_filter)
        return deleted

    def apply_day_of_week_override(
        self,
        schedule_id: str,
        day_of_week: Union[Weekday, str],
        room_number: Optional[int] = None,
        practitioner_id: Optional[str] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        is_unavailable: bool = False,
        reason: Optional[str] = None,
    ) -> list[ScheduleOverride]:
        """Override every occurrence of a weekday within the schedule period.

        The base room and worker records are left alone; one dated override
        is upserted per matching day instead.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist or is not
                the active one.
        """
        weekday = parse_weekday(day_of_week)
        with self._session() as db:
            schedule = self._require_schedule(db, schedule_id)
            if not schedule.is_active:
                raise ScheduleNotFoundError(f"Active schedule not found: {schedule_id}")

            template = ScheduleOverride(
                date=schedule.start_date,
                room_number=room_number,
                practitioner_id=practitioner_id or None,
                start_time=start_time or None,
                end_time=end_time or None,
                is_unavailable=is_unavailable,
                reason=reason,
            )
            self.validator.validate_override(template, schedule.room_count).raise_if_invalid()

            saved = []
            for day in iter_dates(schedule.start_date, schedule.end_date):
                if Weekday.from_date(day) == weekday:
                    saved.append(self._upsert_override(db, schedule_id, replace(template, date=day)))

        logger.info(
            "%s every %s in schedule %s (%d dates)",
            "Marked unavailable" if is_unavailable else "Updated hours for",
            weekday.value,
            schedule_id,
            len(saved),
        )
        return saved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_schedule(db: Session, schedule_id: str) -> ClinicScheduleRecord:
        record = db.get(ClinicScheduleRecord, schedule_id)
        if record is None:
            raise ScheduleNotFoundError(f"Schedule not found: {schedule_id}")
        return record

    @staticmethod
    def _check_rooms_in_use(record: ClinicScheduleRecord, room_count: int, result: ValidationResult) -> None:
        """Report rule rows that would fall outside ``[1, room_count]``."""
        children = [
            ("room_assignments", record.room_assignments),
            ("room_shifts", record.room_shifts),
            ("schedule_overrides", record.schedule_overrides),
        ]
        for name, rows in children:
            rooms = sorted({r.room_number for r in rows if r.room_number is not None and r.room_number > room_count})
            if rooms:
                result.add_error(
                    ValidationIssue(
                        error_type=ValidationErrorType.ROOM_OUT_OF_RANGE,
                        message=(
                            f"Cannot reduce room count to {room_count}: "
                            f"{name} still use room(s) {', '.join(str(n) for n in rooms)}"
                        ),
                        field_name="room_count",
                    )
                )

    @staticmethod
    def _shift_record(schedule_id: str, shift: RoomShift) -> RoomShiftRecord:
        return RoomShiftRecord(
            id=shift.id,
            schedule_id=schedule_id,
            room_number=shift.room_number,
            practitioner_id=shift.practitioner_id,
            side_practitioner_id=shift.side_practitioner_id,
            start_time=shift.start_time,
            end_time=shift.end_time,
            date=shift.date,
            day_of_week=shift.day_of_week.value if shift.day_of_week else None,
            priority=shift.priority,
            is_override=shift.is_override,
            reason=shift.reason,
        )

    @staticmethod
    def _ordered_shifts(records: Iterable[RoomShiftRecord]) -> list[RoomShiftRecord]:
        """Order by room, date, weekday, start time, then priority descending."""
        return sorted(
            records,
            key=lambda r: (
                r.room_number,
                r.date is None,
                r.date or date.min,
                r.day_of_week or "",
                r.start_time,
                -r.priority,
            ),
        )

    @staticmethod
    def _upsert_override(db: Session, schedule_id: str, override: ScheduleOverride) -> ScheduleOverride:
        def key_match(column, value):
            return column.is_(None) if value is None else column == value

        record = db.scalars(
            select(ScheduleOverrideRecord).where(
                ScheduleOverrideRecord.schedule_id == schedule_id,
                ScheduleOverrideRecord.date == override.date,
                key_match(ScheduleOverrideRecord.room_number, override.room_number),
                key_match(ScheduleOverrideRecord.practitioner_id, override.practitioner_id),
            )
        ).first()
        if record is None:
            record = ScheduleOverrideRecord(
                id=new_id(),
                schedule_id=schedule_id,
                date=override.date,
                room_number=override.room_number,
                practitioner_id=override.practitioner_id,
            )
            db.add(record)
        record.start_time = override.start_time
        record.end_time = override.end_time
        record.is_unavailable = override.is_unavailable
        record.reason = override.reason
        db.flush()
        return record.to_domain()

    @staticmethod
    def _log_overlaps(db: Session, schedule_id: str, shift: RoomShift) -> None:
        query = select(RoomShiftRecord).where(
            RoomShiftRecord.schedule_id == schedule_id,
            RoomShiftRecord.room_number == shift.room_number,
        )
        if shift.date is not None:
            query = query.where(RoomShiftRecord.date == shift.date)
        else:
            query = query.where(
                RoomShiftRecord.day_of_week == shift.day_of_week.value,
                RoomShiftRecord.date.is_(None),
            )

        new_start, new_end = _minutes(shift.start_time), _minutes(shift.end_time)
        conflicts = [
            f"{r.start_time}-{r.end_time}"
            for r in db.scalars(query)
            if new_start < _minutes(r.end_time) and new_end > _minutes(r.start_time)
        ]
        if conflicts:
            logger.warning(
                "Creating shift with time overlap in room %d: %s-%s conflicts with %s",
                shift.room_number,
                shift.start_time,
                shift.end_time,
                ", ".join(conflicts),
            )
