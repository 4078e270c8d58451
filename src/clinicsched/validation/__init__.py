"""Validation module for schedule rule records."""

from clinicsched.validation.validator import (
    ScheduleValidator,
    ValidationError,
    ValidationErrorType,
    ValidationIssue,
    ValidationResult,
    parse_weekday,
    validate_date_range,
)

__all__ = [
    "ScheduleValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationIssue",
    "ValidationResult",
    "parse_weekday",
    "validate_date_range",
]
