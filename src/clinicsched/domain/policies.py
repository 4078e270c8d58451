"""Policy definitions for schedule resolution rules.

Ordering rules are kept separate from the resolver so they can be tested
on their own and swapped without touching the precedence logic.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from clinicsched.domain.models import RoomShift


class ShiftOrderingPolicy(ABC):
    """Abstract base class for ordering shifts within a room+day."""

    @abstractmethod
    def sort_key(self, shift: RoomShift) -> tuple:
        """Key used to sort shifts; smaller keys are shown first."""
        pass

    def order(self, shifts: Iterable[RoomShift]) -> list[RoomShift]:
        """Return the shifts in display order.

        The sort is stable, so shifts with equal keys keep their input order.
        """
        return sorted(shifts, key=self.sort_key)


class DefaultShiftOrderingPolicy(ShiftOrderingPolicy):
    """Highest priority first; ties broken by earliest start time.

    Start times are compared as strings. This only works because times are
    stored as zero-padded ``HH:MM``, which the validator enforces.
    """

    def sort_key(self, shift: RoomShift) -> tuple:
        return (-shift.priority, shift.start_time)
