"""Spreadsheet export of resolved schedules.

The workbook has a single "Clinic Schedule" sheet laid out as:

- row 1: title, merged across all columns
- row 2: date range subtitle, merged across all columns
- row 3: blank spacer
- row 4: column headers
- row 5 onward: one row per opening day, with a thin separator row between
  ISO weeks

Room columns come in pairs (main, side). Occupied cells are filled with the
practitioner's calendar colour, and the text colour is picked for contrast.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from clinicsched.domain.models import DayAssignment, Occupant, Practitioner
from clinicsched.output.formatting import (
    DEFAULT_MAIN_COLOR,
    DEFAULT_OTHER_COLOR,
    DEFAULT_SIDE_COLOR,
    EMPTY_ROOM_LABEL,
    EMPTY_WORKERS_LABEL,
    contrast_text_color,
    display_name,
    long_date,
    practitioner_color,
    short_date,
    to_argb,
    week_label,
)

logger = logging.getLogger(__name__)

SHEET_TITLE = "Clinic Schedule"
HEADER_ROW = 4
FIRST_DATA_ROW = 5

HEADER_FILL = "FF4A90E2"
EMPTY_FILL = "FFF2F2F2"
EMPTY_FONT = "FF666666"
ROW_FILLS = ("FFFFFFFF", "FFF8F9FA")
SEPARATOR_COLOR = "FF4682B4"
GRID_COLOR = "FFE0E0E0"

DATA_ROW_HEIGHT = 60
SEPARATOR_ROW_HEIGHT = 8

_CENTER = Alignment(horizontal="center", vertical="center")
_CENTER_WRAP = Alignment(horizontal="center", vertical="center", wrap_text=True)
_THIN = Side(style="thin", color=GRID_COLOR)
_GRID = Border(top=_THIN, bottom=_THIN, left=_THIN, right=_THIN)


def _solid(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", fgColor=argb)


def build_headers(room_count: int) -> list[str]:
    """Column headers for a sheet with ``room_count`` rooms."""
    headers = ["Week", "Date", "Day"]
    for room_number in range(1, room_count + 1):
        headers.append(f"Room {room_number} – Main")
        headers.append(f"Room {room_number} – Side")
    headers.append("Other Workers")
    return headers


def column_widths(room_count: int) -> list[int]:
    return [10, 18, 18] + [25, 25] * room_count + [35]


class XLSXGenerator:
    """Generates the spreadsheet export.

    Every occupant of a room is listed in its column (mains in the main
    column, sides in the side column); the cell takes the colour of the
    first one.

    Example:
        >>> generator = XLSXGenerator()
        >>> generator.generate(days, practitioners, "schedule.xlsx", start, end)
    """

    def __init__(self, title: str = SHEET_TITLE):
        self.title = title

    def generate(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]],
        output_path: Union[str, Path],
        start_date=None,
        end_date=None,
        room_count: Optional[int] = None,
    ) -> None:
        """Build the workbook and save it to a file.

        Args:
            days: Resolved opening days, in order.
            practitioners: Directory used for names and colours.
            output_path: Destination ``.xlsx`` path.
            start_date: First day of the requested range (defaults to the
                first resolved day).
            end_date: Last day of the requested range (defaults to the last
                resolved day).
            room_count: Number of room column pairs. Defaults to the rooms
                of the first day.
        """
        workbook = self.build_workbook(days, practitioners, start_date, end_date, room_count)
        workbook.save(str(output_path))
        logger.info("Wrote schedule spreadsheet with %d days to %s", len(days), output_path)

    def generate_to_buffer(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]] = None,
        start_date=None,
        end_date=None,
        room_count: Optional[int] = None,
    ) -> BytesIO:
        """Build the workbook and return it as a bytes buffer."""
        workbook = self.build_workbook(days, practitioners, start_date, end_date, room_count)
        buffer = BytesIO()
        workbook.save(buffer)
        buffer.seek(0)
        return buffer

    def build_workbook(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]] = None,
        start_date=None,
        end_date=None,
        room_count: Optional[int] = None,
    ) -> Workbook:
        practitioners = practitioners or {}
        if room_count is None:
            room_count = len(days[0].rooms) if days else 0
        headers = build_headers(room_count)

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE

        self._write_title(sheet, headers, days, start_date, end_date)
        self._write_header_row(sheet, headers)

        row = FIRST_DATA_ROW
        for index, day in enumerate(days):
            is_new_week = index == 0 or days[index - 1].iso_week != day.iso_week
            self._write_day_row(sheet, row, index, day, is_new_week, practitioners, room_count)
            row += 1

            is_last_of_week = index + 1 < len(days) and days[index + 1].iso_week != day.iso_week
            if is_last_of_week:
                self._write_separator(sheet, row, len(headers))
                row += 1

        for index, width in enumerate(column_widths(room_count), 1):
            sheet.column_dimensions[get_column_letter(index)].width = width
        return workbook

    def _write_title(self, sheet, headers: list[str], days, start_date, end_date) -> None:
        last_column = len(headers)

        title = sheet.cell(row=1, column=1, value=self.title)
        title.font = Font(size=20, bold=True, color="FF34495E")
        title.alignment = _CENTER
        sheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=last_column)
        sheet.row_dimensions[1].height = 30

        start_date = start_date or (days[0].date if days else None)
        end_date = end_date or (days[-1].date if days else None)
        subtitle = f"{long_date(start_date)} - {long_date(end_date)}" if start_date and end_date else ""
        cell = sheet.cell(row=2, column=1, value=subtitle)
        cell.font = Font(size=12, color="FF566573")
        cell.alignment = _CENTER
        sheet.merge_cells(start_row=2, start_column=1, end_row=2, end_column=last_column)
        sheet.row_dimensions[2].height = 20

    def _write_header_row(self, sheet, headers: list[str]) -> None:
        border = Border(
            top=Side(style="thin", color="FFB0C4DE"),
            bottom=Side(style="medium", color=SEPARATOR_COLOR),
            left=Side(style="thin", color="FFB0C4DE"),
            right=Side(style="thin", color="FFB0C4DE"),
        )
        for column, header in enumerate(headers, 1):
            cell = sheet.cell(row=HEADER_ROW, column=column, value=header)
            cell.fill = _solid(HEADER_FILL)
            cell.font = Font(bold=True, color="FFFFFFFF", size=10)
            cell.alignment = _CENTER_WRAP
            cell.border = border
        sheet.row_dimensions[HEADER_ROW].height = 35

    def _write_day_row(
        self,
        sheet,
        row: int,
        index: int,
        day: DayAssignment,
        is_new_week: bool,
        practitioners: dict[str, Practitioner],
        room_count: int,
    ) -> None:
        row_fill = _solid(ROW_FILLS[index % 2])
        leading = [
            (week_label(day.date) if is_new_week else "", Font(bold=True, size=11)),
            (short_date(day.date), Font(size=10)),
            (day.day_of_week.value, Font(bold=True, size=10)),
        ]
        for column, (value, font) in enumerate(leading, 1):
            cell = sheet.cell(row=row, column=column, value=value)
            cell.font = font
            cell.fill = row_fill
            cell.alignment = _CENTER
            cell.border = _GRID

        for room_number in range(1, room_count + 1):
            main_column = 4 + (room_number - 1) * 2
            try:
                room_day = day.room(room_number)
            except KeyError:
                mains, sides = [], []
            else:
                mains = [slot.main for slot in room_day.slots if slot.main is not None]
                sides = [slot.side for slot in room_day.slots if slot.side is not None]
            self._write_occupants(
                sheet.cell(row=row, column=main_column), mains, practitioners, DEFAULT_MAIN_COLOR, EMPTY_ROOM_LABEL
            )
            self._write_occupants(
                sheet.cell(row=row, column=main_column + 1), sides, practitioners, DEFAULT_SIDE_COLOR, EMPTY_ROOM_LABEL
            )

        self._write_occupants(
            sheet.cell(row=row, column=4 + room_count * 2),
            list(day.other_workers),
            practitioners,
            DEFAULT_OTHER_COLOR,
            EMPTY_WORKERS_LABEL,
        )
        sheet.row_dimensions[row].height = DATA_ROW_HEIGHT

    @staticmethod
    def _write_occupants(
        cell,
        occupants: list[Occupant],
        practitioners: dict[str, Practitioner],
        default_color: str,
        empty_label: str,
    ) -> None:
        cell.alignment = _CENTER_WRAP
        cell.border = _GRID
        if not occupants:
            cell.value = empty_label
            cell.fill = _solid(EMPTY_FILL)
            cell.font = Font(color=EMPTY_FONT, size=9, italic=True)
            return

        cell.value = "\n\n".join(
            f"{display_name(o.practitioner_id, practitioners)}\n{o.time_range}" for o in occupants
        )
        background = to_argb(practitioner_color(occupants[0].practitioner_id, practitioners, default_color))
        cell.fill = _solid(background)
        cell.font = Font(color="FF" + contrast_text_color(background[2:]), size=9, bold=True)

    @staticmethod
    def _write_separator(sheet, row: int, column_count: int) -> None:
        for column in range(1, column_count + 1):
            sheet.cell(row=row, column=column).border = Border(
                bottom=Side(style="medium", color=SEPARATOR_COLOR)
            )
        sheet.row_dimensions[row].height = SEPARATOR_ROW_HEIGHT
