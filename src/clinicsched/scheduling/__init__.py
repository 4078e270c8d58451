"""Resolution engine turning schedule rules into per-day room occupancy."""

from clinicsched.scheduling.cache import ResolutionCache
from clinicsched.scheduling.indexes import NO_EFFECT, OverrideEffect, OverrideIndex, ShiftIndex
from clinicsched.scheduling.resolver import ScheduleResolver, resolve
from clinicsched.scheduling.scheduler import ClinicScheduler, find_double_bookings

__all__ = [
    # Core
    "ScheduleResolver",
    "resolve",
    "ClinicScheduler",
    # Lookups
    "ShiftIndex",
    "OverrideIndex",
    "OverrideEffect",
    "NO_EFFECT",
    # Caching and reporting
    "ResolutionCache",
    "find_double_bookings",
]
