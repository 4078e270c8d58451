"""Validation module for schedule rule records.

This module is the single source of truth for record constraints. Every
record is validated before it reaches the store, so the resolver can assume
well-formed input.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Union

from clinicsched.domain.models import (
    ClinicSchedule,
    OtherWorkerSchedule,
    RoomAssignment,
    RoomShift,
    ScheduleConfig,
    ScheduleOverride,
    Weekday,
)

# Zero-padded 24h clock; string comparison of these values orders them correctly.
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MAX_ROOM_COUNT = 50


class ValidationErrorType(Enum):
    """Types of validation errors."""

    INVALID_TIME_FORMAT = "invalid_time_format"
    INVALID_TIME_WINDOW = "invalid_time_window"
    ROOM_OUT_OF_RANGE = "room_out_of_range"
    INVALID_ROOM_COUNT = "invalid_room_count"
    DAY_AND_DATE_BOTH_SET = "day_and_date_both_set"
    DAY_AND_DATE_MISSING = "day_and_date_missing"
    INVALID_WEEKDAY = "invalid_weekday"
    MISSING_PRACTITIONER = "missing_practitioner"
    MISSING_ID = "missing_id"
    NEGATIVE_PRIORITY = "negative_priority"
    INVALID_PERIOD = "invalid_period"
    EMPTY_OPENING_DAYS = "empty_opening_days"


@dataclass
class ValidationIssue:
    """A single violated constraint."""

    error_type: ValidationErrorType
    message: str
    field_name: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.field_name:
            parts.append(f"{self.field_name}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating one or more records."""

    is_valid: bool = True
    errors: list[ValidationIssue] = field(default_factory=list)

    def add_error(self, error: ValidationIssue) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def merge(self, other: "ValidationResult", prefix: str = "") -> None:
        """Fold another result's errors into this one."""
        for error in other.errors:
            if prefix:
                error = ValidationIssue(
                    error_type=error.error_type,
                    message=error.message,
                    field_name=f"{prefix}.{error.field_name}" if error.field_name else prefix,
                    details=error.details,
                )
            self.add_error(error)

    def error_types(self) -> set[ValidationErrorType]:
        return {e.error_type for e in self.errors}

    def raise_if_invalid(self) -> None:
        """Raise ``ValidationError`` if any error was collected."""
        if not self.is_valid:
            raise ValidationError(self)


class ValidationError(ValueError):
    """Raised when a record violates a constraint.

    The message lists every violated constraint; the full result stays
    available on ``result`` for callers that want the typed issues.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(str(e) for e in result.errors))

    @property
    def errors(self) -> list[ValidationIssue]:
        return self.result.errors

    @classmethod
    def single(
        cls,
        error_type: ValidationErrorType,
        message: str,
        field_name: Optional[str] = None,
    ) -> "ValidationError":
        result = ValidationResult()
        result.add_error(ValidationIssue(error_type=error_type, message=message, field_name=field_name))
        return cls(result)


def parse_weekday(value: Union[Weekday, str], field_name: str = "day_of_week") -> Weekday:
    """Parse a weekday, reporting failures as ``ValidationError``."""
    try:
        return Weekday.parse(value)
    except ValueError:
        raise ValidationError.single(
            ValidationErrorType.INVALID_WEEKDAY,
            f"Unknown weekday {value!r}",
            field_name=field_name,
        ) from None


class ScheduleValidator:
    """Validates schedule records against all constraints.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate_shift(shift, room_count=3)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def validate_config(self, config: ScheduleConfig) -> ValidationResult:
        """Validate organization-wide calendar settings."""
        result = ValidationResult()
        self._check_room_count(config.room_count, result)
        if not config.opening_days:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.EMPTY_OPENING_DAYS,
                    message="At least one opening day is required",
                    field_name="opening_days",
                )
            )
        return result

    def validate_schedule(self, schedule: ClinicSchedule) -> ValidationResult:
        """Validate a schedule period."""
        result = ValidationResult()
        if not schedule.organization_id:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.MISSING_ID,
                    message="Organization id is required",
                    field_name="organization_id",
                )
            )
        if schedule.start_date > schedule.end_date:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.INVALID_PERIOD,
                    message=(
                        f"Start date {schedule.start_date.isoformat()} is after "
                        f"end date {schedule.end_date.isoformat()}"
                    ),
                    field_name="start_date",
                )
            )
        self._check_room_count(schedule.room_count, result)
        return result

    def validate_assignment(
        self,
        assignment: RoomAssignment,
        room_count: int,
    ) -> ValidationResult:
        """Validate a default room assignment."""
        result = ValidationResult()
        self._check_room(assignment.room_number, room_count, result)
        self._check_window(assignment.start_time, assignment.end_time, result)
        return result

    def validate_other_worker(self, worker: OtherWorkerSchedule) -> ValidationResult:
        """Validate a non-room-bound worker schedule."""
        result = ValidationResult()
        self._check_practitioner(worker.practitioner_id, "practitioner_id", result)
        self._check_window(worker.start_time, worker.end_time, result)
        return result

    def validate_shift(self, shift: RoomShift, room_count: int) -> ValidationResult:
        """Validate a room shift.

        Checks the time window, the room range, the practitioner id, the
        priority and that exactly one of ``day_of_week``/``date`` is set.
        """
        result = ValidationResult()
        self._check_practitioner(shift.practitioner_id, "practitioner_id", result)
        self._check_room(shift.room_number, room_count, result)
        self._check_window(shift.start_time, shift.end_time, result)

        if shift.day_of_week is not None and shift.date is not None:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.DAY_AND_DATE_BOTH_SET,
                    message="Either date or dayOfWeek must be specified, but not both",
                    field_name="date",
                )
            )
        elif shift.day_of_week is None and shift.date is None:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.DAY_AND_DATE_MISSING,
                    message="Either date or dayOfWeek must be specified",
                    field_name="date",
                )
            )

        if shift.priority < 0:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.NEGATIVE_PRIORITY,
                    message=f"Priority must be >= 0, got {shift.priority}",
                    field_name="priority",
                )
            )
        return result

    def validate_override(
        self,
        override: ScheduleOverride,
        room_count: int,
    ) -> ValidationResult:
        """Validate a one-day override.

        Either time may be given alone; when both are given they must form
        a valid window.
        """
        result = ValidationResult()
        if override.room_number is not None:
            self._check_room(override.room_number, room_count, result)
        if override.practitioner_id is not None:
            self._check_practitioner(override.practitioner_id, "practitioner_id", result)

        for name in ("start_time", "end_time"):
            value = getattr(override, name)
            if value is not None:
                self._check_time_format(value, name, result)
        if (
            result.is_valid
            and override.start_time is not None
            and override.end_time is not None
            and override.start_time >= override.end_time
        ):
            result.add_error(self._window_error(override.start_time, override.end_time))
        return result

    def _check_room_count(self, room_count: int, result: ValidationResult) -> None:
        if not 1 <= room_count <= MAX_ROOM_COUNT:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.INVALID_ROOM_COUNT,
                    message=f"Room count must be between 1 and {MAX_ROOM_COUNT}, got {room_count}",
                    field_name="room_count",
                )
            )

    def _check_room(self, room_number: int, room_count: int, result: ValidationResult) -> None:
        if not 1 <= room_number <= room_count:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.ROOM_OUT_OF_RANGE,
                    message=f"Room number {room_number} is outside 1..{room_count}",
                    field_name="room_number",
                    details={"room_number": room_number, "room_count": room_count},
                )
            )

    def _check_practitioner(
        self,
        practitioner_id: Optional[str],
        field_name: str,
        result: ValidationResult,
    ) -> None:
        if not practitioner_id:
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.MISSING_PRACTITIONER,
                    message="Practitioner id is required",
                    field_name=field_name,
                )
            )

    def _check_time_format(self, value: str, field_name: str, result: ValidationResult) -> bool:
        if not isinstance(value, str) or not TIME_PATTERN.match(value):
            result.add_error(
                ValidationIssue(
                    error_type=ValidationErrorType.INVALID_TIME_FORMAT,
                    message=f"Time {value!r} is not in HH:MM format",
                    field_name=field_name,
                )
            )
            return False
        return True

    def _check_window(self, start_time: str, end_time: str, result: ValidationResult) -> None:
        start_ok = self._check_time_format(start_time, "start_time", result)
        end_ok = self._check_time_format(end_time, "end_time", result)
        if start_ok and end_ok and start_time >= end_time:
            result.add_error(self._window_error(start_time, end_time))

    @staticmethod
    def _window_error(start_time: str, end_time: str) -> ValidationIssue:
        return ValidationIssue(
            error_type=ValidationErrorType.INVALID_TIME_WINDOW,
            message=f"Start time {start_time} must be before end time {end_time}",
            field_name="start_time",
        )


def validate_date_range(start_date: date, end_date: date) -> ValidationResult:
    """Validate a requested date range (used by the CLI and exporters)."""
    result = ValidationResult()
    if start_date > end_date:
        result.add_error(
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_PERIOD,
                message=f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}",
                field_name="start_date",
            )
        )
    return result
