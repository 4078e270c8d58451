"""Relational persistence for schedules, shifts and overrides."""

from clinicsched.storage.database import (
    Base,
    create_db_engine,
    create_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)
from clinicsched.storage.store import (
    OverrideFilter,
    RecordNotFoundError,
    ScheduleNotFoundError,
    ScheduleStore,
    ShiftDraft,
    ShiftNotFoundError,
)

__all__ = [
    # Engine and sessions
    "Base",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
    # Store
    "ScheduleStore",
    "ShiftDraft",
    "OverrideFilter",
    # Errors
    "RecordNotFoundError",
    "ScheduleNotFoundError",
    "ShiftNotFoundError",
]
