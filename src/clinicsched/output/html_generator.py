"""HTML preview output for resolved schedules.

This module renders a standalone HTML page with one table row per opening
day: the date, the weekday, every room's (main / side) pairs and the other
workers of the day.
"""

import html
from pathlib import Path
from typing import Optional, Union

from clinicsched.domain.models import DayAssignment, Practitioner
from clinicsched.output.formatting import (
    DEFAULT_MAIN_COLOR,
    DEFAULT_OTHER_COLOR,
    EMPTY_ROOM_LABEL,
    EMPTY_WORKERS_LABEL,
    contrast_text_color,
    long_date,
    occupant_label,
    practitioner_color,
    short_date,
    slot_label,
    week_label,
)

_STYLE = """
body { font-family: Arial, sans-serif; margin: 24px; }
h1 { margin-bottom: 4px; }
.subtitle { color: #666; margin-top: 0; }
table { border-collapse: collapse; width: 100%; }
th { background: #4a90e2; color: #fff; padding: 6px; text-align: left; }
td { border: 1px solid #ddd; padding: 6px; vertical-align: top; }
tr.week-start td { border-top: 2px solid #4682b4; }
.empty { background: #f2f2f2; color: #666; font-style: italic; }
.slot { display: block; padding: 2px 4px; margin: 1px 0; border-radius: 3px; }
"""


class HTMLGenerator:
    """Generates an HTML schedule preview.

    All practitioner names and reasons are HTML-escaped.

    Example:
        >>> generator = HTMLGenerator()
        >>> page = generator.generate_to_string(days, practitioners)
    """

    def __init__(self, title: str = "Clinic Schedule"):
        self.title = title

    def generate(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]],
        output_path: Union[str, Path],
    ) -> str:
        """Render the preview and save it to a file.

        Returns:
            The generated HTML.
        """
        content = self.generate_to_string(days, practitioners)
        Path(output_path).write_text(content, encoding="utf-8")
        return content

    def generate_to_string(
        self,
        days: list[DayAssignment],
        practitioners: Optional[dict[str, Practitioner]] = None,
    ) -> str:
        practitioners = practitioners or {}
        room_numbers = [room_day.room_number for room_day in days[0].rooms] if days else []

        lines = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(self.title)}</title>",
            f"<style>{_STYLE}</style>",
            "</head>",
            "<body>",
            f"<h1>{html.escape(self.title)}</h1>",
        ]
        if days:
            lines.append(
                f'<p class="subtitle">{html.escape(long_date(days[0].date))} - '
                f"{html.escape(long_date(days[-1].date))}</p>"
            )
        else:
            lines.append('<p class="subtitle">No opening days in the selected range.</p>')

        lines.append("<table>")
        header = ["Week", "Date", "Day"] + [f"Room {n}" for n in room_numbers] + ["Other Workers"]
        lines.append("<tr>" + "".join(f"<th>{html.escape(h)}</th>" for h in header) + "</tr>")

        previous_week = None
        for day in days:
            week = day.iso_week
            new_week = week != previous_week
            row_class = ' class="week-start"' if new_week and previous_week is not None else ""
            cells = [
                week_label(day.date) if new_week else "",
                short_date(day.date),
                day.day_of_week.value,
            ]
            lines.append(
                f"<tr{row_class}>"
                + "".join(f"<td>{html.escape(c)}</td>" for c in cells)
                + "".join(self._room_cell(day.room(n), practitioners) for n in room_numbers)
                + self._workers_cell(day, practitioners)
                + "</tr>"
            )
            previous_week = week

        lines.extend(["</table>", "</body>", "</html>"])
        return "\n".join(lines) + "\n"

    def _room_cell(self, room_day, practitioners: dict[str, Practitioner]) -> str:
        if room_day.is_empty:
            return f'<td class="empty">{EMPTY_ROOM_LABEL}</td>'
        spans = []
        for slot in room_day.slots:
            color = practitioner_color(
                slot.main.practitioner_id if slot.main else None, practitioners, DEFAULT_MAIN_COLOR
            )
            spans.append(self._span(slot_label(slot, practitioners), color))
        return "<td>" + "".join(spans) + "</td>"

    def _workers_cell(self, day: DayAssignment, practitioners: dict[str, Practitioner]) -> str:
        if not day.other_workers:
            return f'<td class="empty">{EMPTY_WORKERS_LABEL}</td>'
        spans = [
            self._span(
                occupant_label(worker, practitioners),
                practitioner_color(worker.practitioner_id, practitioners, DEFAULT_OTHER_COLOR),
            )
            for worker in day.other_workers
        ]
        return "<td>" + "".join(spans) + "</td>"

    @staticmethod
    def _span(text: str, color: str) -> str:
        return (
            f'<span class="slot" style="background:{html.escape(color)};'
            f'color:#{contrast_text_color(color)}">{html.escape(text)}</span>'
        )
