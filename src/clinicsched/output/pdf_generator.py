"""PDF generation for schedule output.

This module creates a printable schedule: one row per opening day with a
column per room, coloured practitioner blocks, week separators, and page
numbers on every landscape letter page.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from clinicsched.domain.models import DayAssignment, Occupant, Practitioner
from clinicsched.output.formatting import (
    DEFAULT_MAIN_COLOR,
    DEFAULT_OTHER_COLOR,
    DEFAULT_SIDE_COLOR,
    EMPTY_ROOM_LABEL,
    EMPTY_WORKERS_LABEL,
    contrast_text_color,
    display_name,
    hex_to_rgb,
    long_date,
    practitioner_color,
    short_date,
    week_label,
)

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "header": (0.29, 0.565, 0.886),  # #4A90E2
    "empty": (0.95, 0.95, 0.95),  # Light gray
    "grid": (0.8, 0.8, 0.8),
    "week_separator": (0.275, 0.51, 0.706),  # Steel blue
}

LINE_HEIGHT = 11


def _require_reportlab():
    try:
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.pdfgen import canvas
    except ImportError:
        raise ImportError(
            "reportlab is required for PDF generation. "
            "Install with: pip install reportlab"
        )
    return canvas, landscape(letter)


class PDFGenerator:
    """Generates printable PDF schedules.

    Each page shows a block of consecutive opening days. Room cells list
    every (main / side) pair of the day in the practitioner's colour.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(days, practitioners, "schedule.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
        title: str = "Clinic Schedule",
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.title = title

    def generate(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]],
        output_path: Union[str, Path],
    ) -> None:
        """Generate PDF schedule and save to file.

        Args:
            days: Resolved opening days, in order.
            practitioners: Directory used for names and colours.
            output_path: Path to save the PDF.
        """
        canvas, pagesize = _require_reportlab()
        c = canvas.Canvas(str(output_path), pagesize=pagesize)
        self._draw_pages(c, days, practitioners or {})
        c.save()

    def generate_to_buffer(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]] = None,
    ) -> BytesIO:
        """Generate PDF and return as bytes buffer."""
        canvas, pagesize = _require_reportlab()
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=pagesize)
        self._draw_pages(c, days, practitioners or {})
        c.save()
        buffer.seek(0)
        return buffer

    def _row_lines(self, day: DayAssignment) -> int:
        """Text lines needed for a day's tallest cell."""
        lines = max((len(room_day.slots) * 2 for room_day in day.rooms), default=1)
        return max(lines, len(day.other_workers), 2)

    def _paginate(self, days: list[DayAssignment], usable_height: float) -> list[list[DayAssignment]]:
        pages: list[list[DayAssignment]] = []
        current: list[DayAssignment] = []
        used = 0.0
        for day in days:
            height = self._row_lines(day) * LINE_HEIGHT + 6
            if current and used + height > usable_height:
                pages.append(current)
                current, used = [], 0.0
            current.append(day)
            used += height
        if current or not pages:
            pages.append(current)
        return pages

    def _draw_pages(self, c, days: list[DayAssignment], practitioners: dict[str, Practitioner]) -> None:
        header_height = 60
        column_header_height = 18
        footer_height = 30
        usable_height = (
            self.page_height - 2 * self.margin - header_height - column_header_height - footer_height
        )

        room_numbers = [room_day.room_number for room_day in days[0].rooms] if days else []
        date_width = 80
        others_width = 140
        room_width = (self.page_width - 2 * self.margin - date_width - others_width) / max(len(room_numbers), 1)
        columns = (
            [("Date", date_width)]
            + [(f"Room {n}", room_width) for n in room_numbers]
            + [("Other Workers", others_width)]
        )

        pages = self._paginate(days, usable_height)
        previous_week = None
        for page_num, page_days in enumerate(pages, 1):
            self._draw_header(c, days)
            y = self.page_height - self.margin - header_height
            self._draw_column_headers(c, columns, y, column_header_height)
            y -= column_header_height

            for day in page_days:
                row_height = self._row_lines(day) * LINE_HEIGHT + 6
                if previous_week is not None and day.iso_week != previous_week:
                    c.setStrokeColorRGB(*COLORS["week_separator"])
                    c.setLineWidth(1.5)
                    c.line(self.margin, y, self.page_width - self.margin, y)
                y -= row_height
                self._draw_day_row(c, day, practitioners, columns, y, row_height, day.iso_week != previous_week)
                previous_week = day.iso_week

            self._draw_legend(c, self.margin, self.margin + 10)
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica", 9)
            c.drawCentredString(self.page_width / 2, self.margin - 10, f"Page {page_num} of {len(pages)}")
            c.showPage()

    def _draw_header(self, c, days: list[DayAssignment]) -> None:
        """Draw page header with title and date range."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, self.title)

        c.setFont("Helvetica", 10)
        if days:
            subtitle = f"{long_date(days[0].date)} - {long_date(days[-1].date)}"
        else:
            subtitle = "No opening days in the selected range"
        c.drawString(self.margin, self.page_height - self.margin - 35, subtitle)

    def _draw_column_headers(self, c, columns: list[tuple[str, float]], y: float, height: float) -> None:
        x = self.margin
        c.setFont("Helvetica-Bold", 9)
        for label, width in columns:
            c.setFillColorRGB(*COLORS["header"])
            c.rect(x, y - height, width, height, fill=1, stroke=0)
            c.setFillColorRGB(1, 1, 1)
            c.drawString(x + 4, y - height + 5, label)
            x += width

    def _draw_day_row(
        self,
        c,
        day: DayAssignment,
        practitioners: dict[str, Practitioner],
        columns: list[tuple[str, float]],
        y: float,
        height: float,
        week_start: bool,
    ) -> None:
        """Draw a single day's row."""
        x = self.margin
        date_width = columns[0][1]
        c.setStrokeColorRGB(*COLORS["grid"])
        c.setLineWidth(0.5)
        c.rect(x, y, date_width, height, fill=0, stroke=1)
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x + 4, y + height - LINE_HEIGHT, f"{day.day_of_week.value[:3]} {short_date(day.date)}")
        if week_start:
            c.setFont("Helvetica", 7)
            c.drawString(x + 4, y + height - 2 * LINE_HEIGHT, week_label(day.date))
        x += date_width

        for room_day, (_, width) in zip(day.rooms, columns[1:-1]):
            if room_day.is_empty:
                self._draw_empty_cell(c, x, y, width, height, EMPTY_ROOM_LABEL)
            else:
                blocks = []
                for slot in room_day.slots:
                    if slot.main is not None:
                        blocks.append((slot.main, DEFAULT_MAIN_COLOR))
                    if slot.side is not None:
                        blocks.append((slot.side, DEFAULT_SIDE_COLOR))
                self._draw_blocks(c, blocks, practitioners, x, y, width, height)
            x += width

        others_width = columns[-1][1]
        if day.other_workers:
            blocks = [(worker, DEFAULT_OTHER_COLOR) for worker in day.other_workers]
            self._draw_blocks(c, blocks, practitioners, x, y, others_width, height)
        else:
            self._draw_empty_cell(c, x, y, others_width, height, EMPTY_WORKERS_LABEL)

    def _draw_blocks(
        self,
        c,
        blocks: list[tuple[Occupant, str]],
        practitioners: dict[str, Practitioner],
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        c.setStrokeColorRGB(*COLORS["grid"])
        c.rect(x, y, width, height, fill=0, stroke=1)

        block_height = (height - 4) / len(blocks)
        top = y + height - 2
        for occupant, default_color in blocks:
            color = practitioner_color(occupant.practitioner_id, practitioners, default_color)
            c.setFillColorRGB(*hex_to_rgb(color))
            c.rect(x + 2, top - block_height, width - 4, block_height - 1, fill=1, stroke=0)

            text_rgb = hex_to_rgb(contrast_text_color(color))
            c.setFillColorRGB(*text_rgb)
            c.setFont("Helvetica", 7)
            name = display_name(occupant.practitioner_id, practitioners)
            max_chars = max(int(width / 4), 8)
            c.drawString(x + 4, top - block_height / 2 - 2, f"{name} {occupant.time_range}"[:max_chars])
            top -= block_height

    def _draw_empty_cell(self, c, x: float, y: float, width: float, height: float, label: str) -> None:
        c.setFillColorRGB(*COLORS["empty"])
        c.setStrokeColorRGB(*COLORS["grid"])
        c.rect(x, y, width, height, fill=1, stroke=1)
        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.setFont("Helvetica-Oblique", 8)
        c.drawString(x + 4, y + height - LINE_HEIGHT, label)

    def _draw_legend(self, c, x: float, y: float) -> None:
        """Draw legend for colors."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x, y, "Legend:")

        items = [
            (DEFAULT_MAIN_COLOR, "Main"),
            (DEFAULT_SIDE_COLOR, "Side"),
            (DEFAULT_OTHER_COLOR, "Other workers"),
        ]

        c.setFont("Helvetica", 7)
        current_x = x + 45
        for color, label in items:
            c.setFillColorRGB(*hex_to_rgb(color))
            c.rect(current_x, y - 2, 12, 10, fill=1, stroke=1)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(current_x + 15, y, label)
            current_x += 80
