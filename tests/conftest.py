"""Shared fixtures: an in-memory database and a seeded schedule."""

from datetime import date

import pytest

from clinicsched.domain.models import (
    WORKWEEK,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    ScheduleConfig,
)
from clinicsched.storage.database import create_db_engine, create_session_factory, create_tables
from clinicsched.storage.store import ScheduleStore

ORG = "org-1"
PERIOD_START = date(2024, 1, 1)  # Monday
PERIOD_END = date(2024, 1, 28)  # Sunday, four weeks later


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    store = ScheduleStore(session_factory)
    store.save_schedule_config(ORG, ScheduleConfig(room_count=3, opening_days=WORKWEEK))
    for practitioner in [
        Practitioner("P1", "Alice", "Adams", "dentist", "#1976d2"),
        Practitioner("P2", "Ben", "Baker", "assistant", "#ffeb3b"),
        Practitioner("W1", "Fran", "Fox", "reception"),
    ]:
        store.save_practitioner(ORG, practitioner)
    return store


@pytest.fixture
def schedule(store):
    return store.save_schedule(
        ORG,
        "January",
        PERIOD_START,
        PERIOD_END,
        room_count=3,
        assignments=[RoomAssignment(1, "P1", "P2", "09:00", "17:00")],
        other_workers=[OtherWorkerSchedule("W1", "08:00", "16:00")],
    )
