"""
ORM tables backing the schedule store.

Each table maps to one domain record. ``to_domain()`` converts a row to
its frozen dataclass counterpart; the resolver only ever sees those.
"""

import uuid
from datetime import date as date_type
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinicsched.domain.models import (
    DEFAULT_OPENING_DAYS,
    ClinicSchedule,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    RoomShift,
    ScheduleConfig,
    ScheduleOverride,
    Weekday,
)
from clinicsched.storage.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def weekday_names(days) -> list[str]:
    """Serialize weekdays in calendar order for JSON columns."""
    parsed = Weekday.parse_many(days)
    return [d.value for d in Weekday if d in parsed]


class OrganizationSettingsRecord(Base):
    """Calendar settings of one organization (room count, opening days)."""

    __tablename__ = "organization_settings"

    organization_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    room_count: Mapped[int] = mapped_column(Integer, default=1)
    opening_days: Mapped[list] = mapped_column(
        JSON, default=lambda: weekday_names(DEFAULT_OPENING_DAYS)
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    def to_domain(self) -> ScheduleConfig:
        return ScheduleConfig(room_count=self.room_count, opening_days=self.opening_days or ())


class PractitionerRecord(Base):
    """A practitioner with the calendar colour used by exports."""

    __tablename__ = "practitioners"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    role: Mapped[str] = mapped_column(String(50), default="")
    color: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_disabled: Mapped[bool] = mapped_column(Boolean, default=False)

    def to_domain(self) -> Practitioner:
        return Practitioner(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            color=self.color,
            is_disabled=self.is_disabled,
        )


class ClinicScheduleRecord(Base):
    """A schedule period; owns all rule rows with cascade delete."""

    __tablename__ = "clinic_schedules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(200))
    start_date: Mapped[date_type] = mapped_column(Date)
    end_date: Mapped[date_type] = mapped_column(Date)
    room_count: Mapped[int] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    room_assignments: Mapped[list["RoomAssignmentRecord"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan", order_by="RoomAssignmentRecord.room_number"
    )
    other_worker_schedules: Mapped[list["OtherWorkerScheduleRecord"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan", order_by="OtherWorkerScheduleRecord.position"
    )
    room_shifts: Mapped[list["RoomShiftRecord"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan"
    )
    schedule_overrides: Mapped[list["ScheduleOverrideRecord"]] = relationship(
        back_populates="schedule", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_clinic_schedules_org_active", "organization_id", "is_active"),
    )

    def to_domain(self) -> ClinicSchedule:
        return ClinicSchedule(
            id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            room_count=self.room_count,
            is_active=self.is_active,
        )


class RoomAssignmentRecord(Base):
    __tablename__ = "room_assignments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    schedule_id: Mapped[str] = mapped_column(ForeignKey("clinic_schedules.id", ondelete="CASCADE"), index=True)
    room_number: Mapped[int] = mapped_column(Integer)
    main_practitioner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    side_practitioner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    working_days: Mapped[list] = mapped_column(JSON, default=list)

    schedule: Mapped[ClinicScheduleRecord] = relationship(back_populates="room_assignments")

    __table_args__ = (
        UniqueConstraint("schedule_id", "room_number", name="uq_room_assignments_schedule_room"),
    )

    def to_domain(self) -> RoomAssignment:
        return RoomAssignment(
            room_number=self.room_number,
            main_practitioner_id=self.main_practitioner_id,
            side_practitioner_id=self.side_practitioner_id,
            start_time=self.start_time,
            end_time=self.end_time,
            working_days=self.working_days or (),
        )


class OtherWorkerScheduleRecord(Base):
    __tablename__ = "other_worker_schedules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    schedule_id: Mapped[str] = mapped_column(ForeignKey("clinic_schedules.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    practitioner_id: Mapped[str] = mapped_column(String(64))
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    working_days: Mapped[list] = mapped_column(JSON, default=list)

    schedule: Mapped[ClinicScheduleRecord] = relationship(back_populates="other_worker_schedules")

    def to_domain(self) -> OtherWorkerSchedule:
        return OtherWorkerSchedule(
            practitioner_id=self.practitioner_id,
            start_time=self.start_time,
            end_time=self.end_time,
            working_days=self.working_days or (),
        )


class RoomShiftRecord(Base):
    """A recurring (``day_of_week``) or dated (``date``) room shift."""

    __tablename__ = "room_shifts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    schedule_id: Mapped[str] = mapped_column(ForeignKey("clinic_schedules.id", ondelete="CASCADE"), index=True)
    room_number: Mapped[int] = mapped_column(Integer)
    practitioner_id: Mapped[str] = mapped_column(String(64))
    side_practitioner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    day_of_week: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    is_override: Mapped[bool] = mapped_column(Boolean, default=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    schedule: Mapped[ClinicScheduleRecord] = relationship(back_populates="room_shifts")

    __table_args__ = (
        Index("idx_room_shifts_room_day", "schedule_id", "room_number", "day_of_week"),
        Index("idx_room_shifts_room_date", "schedule_id", "room_number", "date"),
    )

    def to_domain(self) -> RoomShift:
        return RoomShift(
            id=self.id,
            room_number=self.room_number,
            practitioner_id=self.practitioner_id,
            side_practitioner_id=self.side_practitioner_id,
            start_time=self.start_time,
            end_time=self.end_time,
            day_of_week=self.day_of_week,
            date=self.date,
            priority=self.priority,
            is_override=self.is_override,
            reason=self.reason,
        )


class ScheduleOverrideRecord(Base):
    """A one-day override, unique per (schedule, date, room, practitioner)."""

    __tablename__ = "schedule_overrides"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    schedule_id: Mapped[str] = mapped_column(ForeignKey("clinic_schedules.id", ondelete="CASCADE"), index=True)
    date: Mapped[date_type] = mapped_column(Date)
    room_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    practitioner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    is_unavailable: Mapped[bool] = mapped_column(Boolean, default=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    schedule: Mapped[ClinicScheduleRecord] = relationship(back_populates="schedule_overrides")

    __table_args__ = (
        UniqueConstraint(
            "schedule_id", "date", "room_number", "practitioner_id",
            name="uq_schedule_overrides_key",
        ),
        Index("idx_schedule_overrides_date", "schedule_id", "date"),
    )

    def to_domain(self) -> ScheduleOverride:
        return ScheduleOverride(
            id=self.id,
            date=self.date,
            room_number=self.room_number,
            practitioner_id=self.practitioner_id,
            start_time=self.start_time,
            end_time=self.end_time,
            is_unavailable=self.is_unavailable,
            reason=self.reason,
        )
