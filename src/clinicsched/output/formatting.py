"""Formatting helpers shared by the output generators."""

from datetime import date
from typing import Optional

from clinicsched.domain.models import Occupant, Practitioner, RoomSlot

# Default calendar colours by occupant position
DEFAULT_MAIN_COLOR = "#1976d2"  # Blue
DEFAULT_SIDE_COLOR = "#388e3c"  # Green
DEFAULT_OTHER_COLOR = "#7b1fa2"  # Purple

EMPTY_ROOM_LABEL = "No assignment"
EMPTY_WORKERS_LABEL = "None"


def normalize_hex(color: Optional[str]) -> Optional[str]:
    """Normalize a hex colour to six uppercase digits without ``#``.

    Three-digit shorthand is expanded. Returns None for anything that is
    not a hex colour.

    Example:
        >>> normalize_hex("#1976d2")
        '1976D2'
        >>> normalize_hex("fff")
        'FFFFFF'
    """
    if not color:
        return None
    value = color.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        return None
    try:
        int(value, 16)
    except ValueError:
        return None
    return value.upper()


def contrast_text_color(background: Optional[str]) -> str:
    """Pick black or white text for a background colour.

    Uses the YIQ brightness ``(R*299 + G*587 + B*114) / 1000``: black
    (``000000``) when the result is at least 128, white (``FFFFFF``)
    otherwise. A missing or malformed colour yields black.
    """
    value = normalize_hex(background)
    if value is None:
        return "000000"
    r = int(value[0:2], 16)
    g = int(value[2:4], 16)
    b = int(value[4:6], 16)
    yiq = (r * 299 + g * 587 + b * 114) / 1000
    return "000000" if yiq >= 128 else "FFFFFF"


def to_argb(color: Optional[str], fallback: str = "FFFFFF") -> str:
    """Convert a hex colour to the ``FFRRGGBB`` form spreadsheets expect."""
    value = normalize_hex(color) or normalize_hex(fallback) or "FFFFFF"
    return f"FF{value}"


def hex_to_rgb(color: Optional[str], fallback: str = "FFFFFF") -> tuple[float, float, float]:
    """Convert a hex colour to an RGB tuple on the 0-1 scale."""
    value = normalize_hex(color) or normalize_hex(fallback) or "FFFFFF"
    return tuple(int(value[i:i + 2], 16) / 255 for i in (0, 2, 4))


def iso_week(day: date) -> int:
    """ISO-8601 week number (weeks start Monday; week 1 holds January 4th)."""
    return day.isocalendar()[1]


def week_label(day: date) -> str:
    return f"W{iso_week(day)}"


def export_filename(start_date: date, end_date: date) -> str:
    """File name for a spreadsheet export of a date range."""
    return f"clinic-schedule-{start_date.isoformat()}-to-{end_date.isoformat()}.xlsx"


def short_date(day: date) -> str:
    """Month abbreviation and day without padding, e.g. ``Jan 5``."""
    return f"{day.strftime('%b')} {day.day}"


def long_date(day: date) -> str:
    """Full weekday and date, e.g. ``Monday, January 5, 2026``."""
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


def display_name(practitioner_id: str, practitioners: dict[str, Practitioner]) -> str:
    """Name of a practitioner, falling back to the raw id."""
    practitioner = practitioners.get(practitioner_id)
    return practitioner.display_name if practitioner else practitioner_id


def practitioner_color(
    practitioner_id: Optional[str],
    practitioners: dict[str, Practitioner],
    default: str,
) -> str:
    """Calendar colour of a practitioner, or the positional default."""
    practitioner = practitioners.get(practitioner_id) if practitioner_id else None
    if practitioner is not None and normalize_hex(practitioner.color):
        return practitioner.color
    return default


def occupant_label(occupant: Occupant, practitioners: dict[str, Practitioner]) -> str:
    """``Name (09:00 - 17:00)``"""
    return f"{display_name(occupant.practitioner_id, practitioners)} ({occupant.time_range})"


def slot_label(slot: RoomSlot, practitioners: dict[str, Practitioner]) -> str:
    """``main / side`` label of a room slot; either side may be missing."""
    parts = [
        occupant_label(occupant, practitioners)
        for occupant in (slot.main, slot.side)
        if occupant is not None
    ]
    return " / ".join(parts)
