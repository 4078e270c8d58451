"""Tests for formatting helpers and the HTML, PDF and XLSX generators."""

from datetime import date

import pytest
from openpyxl import load_workbook

from clinicsched.domain.models import (
    WORKWEEK,
    Occupant,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    RoomShift,
    RoomSlot,
    ScheduleConfig,
)
from clinicsched.output.formatting import (
    contrast_text_color,
    display_name,
    export_filename,
    hex_to_rgb,
    iso_week,
    long_date,
    normalize_hex,
    practitioner_color,
    short_date,
    slot_label,
    to_argb,
    week_label,
)
from clinicsched.output.html_generator import HTMLGenerator
from clinicsched.output.pdf_generator import PDFGenerator
from clinicsched.output.xlsx_generator import XLSXGenerator, build_headers, column_widths
from clinicsched.scheduling.resolver import resolve

START = date(2024, 1, 8)  # Monday of ISO week 2
END = date(2024, 1, 19)  # Friday of ISO week 3


@pytest.fixture
def practitioners():
    return {
        "P1": Practitioner("P1", "Alice", "Adams", color="#1976d2"),
        "P2": Practitioner("P2", "Ben", "Baker", color="#ffeb3b"),
        "W1": Practitioner("W1", "Fran", "Fox"),
    }


@pytest.fixture
def days():
    return resolve(
        START,
        END,
        ScheduleConfig(room_count=2, opening_days=WORKWEEK),
        assignments=[RoomAssignment(1, "P1", "P2", "09:00", "17:00")],
        other_workers=[OtherWorkerSchedule("W1", "08:00", "16:00")],
    )


class TestFormatting:
    """Tests for the shared formatting helpers."""

    def test_normalize_hex(self):
        assert normalize_hex("#1976d2") == "1976D2"
        assert normalize_hex("fff") == "FFFFFF"
        assert normalize_hex("#12345") is None
        assert normalize_hex("zzzzzz") is None
        assert normalize_hex(None) is None

    def test_contrast_text_color(self):
        assert contrast_text_color("#ffeb3b") == "000000"
        assert contrast_text_color("#1976d2") == "FFFFFF"
        assert contrast_text_color("#000") == "FFFFFF"
        assert contrast_text_color(None) == "000000"
        assert contrast_text_color("not a colour") == "000000"

    def test_contrast_threshold(self):
        # 0x80 grey has a YIQ brightness of exactly 128.
        assert contrast_text_color("#808080") == "000000"
        assert contrast_text_color("#7f7f7f") == "FFFFFF"

    def test_color_conversions(self):
        assert to_argb("#1976d2") == "FF1976D2"
        assert to_argb(None) == "FFFFFFFF"
        assert hex_to_rgb("#ff0000") == (1.0, 0.0, 0.0)

    def test_iso_week(self):
        assert iso_week(date(2024, 1, 8)) == 2
        assert iso_week(date(2024, 12, 30)) == 1
        assert iso_week(date(2021, 1, 3)) == 53
        assert week_label(date(2024, 1, 15)) == "W3"

    def test_dates(self):
        assert short_date(date(2026, 1, 5)) == "Jan 5"
        assert long_date(date(2026, 1, 5)) == "Monday, January 5, 2026"
        assert export_filename(date(2024, 1, 1), date(2024, 1, 31)) == (
            "clinic-schedule-2024-01-01-to-2024-01-31.xlsx"
        )

    def test_names_and_colors(self, practitioners):
        assert display_name("P1", practitioners) == "Alice Adams"
        assert display_name("ghost", practitioners) == "ghost"
        assert practitioner_color("P1", practitioners, "#000000") == "#1976d2"
        assert practitioner_color("W1", practitioners, "#7b1fa2") == "#7b1fa2"
        assert practitioner_color(None, practitioners, "#7b1fa2") == "#7b1fa2"

    def test_slot_label(self, practitioners):
        slot = RoomSlot(main=Occupant("P1", "09:00", "12:00"), side=Occupant("P2", "09:00", "11:00"))
        assert slot_label(slot, practitioners) == "Alice Adams (09:00 - 12:00) / Ben Baker (09:00 - 11:00)"
        assert slot_label(RoomSlot(side=Occupant("P2", "09:00", "11:00")), practitioners) == (
            "Ben Baker (09:00 - 11:00)"
        )


class TestXLSXGenerator:
    """Tests for the spreadsheet export, read back with openpyxl."""

    @pytest.fixture
    def sheet(self, days, practitioners):
        buffer = XLSXGenerator().generate_to_buffer(days, practitioners, START, END)
        return load_workbook(buffer).active

    def test_headers(self):
        assert build_headers(2) == [
            "Week", "Date", "Day",
            "Room 1 – Main", "Room 1 – Side",
            "Room 2 – Main", "Room 2 – Side",
            "Other Workers",
        ]
        assert column_widths(2) == [10, 18, 18, 25, 25, 25, 25, 35]

    def test_title_block(self, sheet):
        assert sheet.title == "Clinic Schedule"
        assert sheet["A1"].value == "Clinic Schedule"
        assert sheet["A1"].font.bold
        assert sheet["A2"].value == "Monday, January 8, 2024 - Friday, January 19, 2024"
        merged = {str(r) for r in sheet.merged_cells.ranges}
        assert {"A1:H1", "A2:H2"} <= merged

    def test_header_row(self, sheet):
        assert [c.value for c in sheet[4]] == build_headers(2)
        assert sheet["A4"].fill.fgColor.rgb == "FF4A90E2"
        assert sheet.row_dimensions[4].height == 35

    def test_day_rows(self, sheet):
        assert sheet["A5"].value == "W2"
        assert not sheet["A6"].value
        assert sheet["B5"].value == "Jan 8"
        assert sheet["C5"].value == "Monday"
        assert sheet.row_dimensions[5].height == 60

    def test_cells_are_centered(self, sheet):
        for coordinate in ("A4", "B5", "D5", "F5"):
            alignment = sheet[coordinate].alignment
            assert (alignment.horizontal, alignment.vertical) == ("center", "center")
        assert sheet["D5"].alignment.wrap_text

    def test_occupant_cells(self, sheet):
        main = sheet["D5"]
        assert main.value == "Alice Adams\n09:00 - 17:00"
        assert main.fill.fgColor.rgb == "FF1976D2"
        assert main.font.color.rgb == "FFFFFFFF"

        side = sheet["E5"]
        assert side.value == "Ben Baker\n09:00 - 17:00"
        assert side.font.color.rgb == "FF000000"

        workers = sheet["H5"]
        assert workers.value == "Fran Fox\n08:00 - 16:00"
        assert workers.fill.fgColor.rgb == "FF7B1FA2"

    def test_empty_cells(self, sheet):
        cell = sheet["F5"]
        assert cell.value == "No assignment"
        assert cell.fill.fgColor.rgb == "FFF2F2F2"
        assert cell.font.italic

    def test_week_separator(self, sheet):
        # Five weekday rows (5-9), then the separator, then week 3.
        assert sheet.row_dimensions[10].height == 8
        assert sheet["A10"].border.bottom.style == "medium"
        assert sheet["A11"].value == "W3"
        # No separator after the final day.
        assert sheet.max_row == 15

    def test_column_widths(self, sheet):
        assert sheet.column_dimensions["A"].width == 10
        assert sheet.column_dimensions["D"].width == 25
        assert sheet.column_dimensions["H"].width == 35

    def test_multiple_occupants_share_a_cell(self, practitioners):
        days = resolve(
            START,
            START,
            ScheduleConfig(room_count=1, opening_days=WORKWEEK),
            shifts=[
                RoomShift("s1", 1, "P2", "13:00", "17:00", date=START),
                RoomShift("s2", 1, "P1", "08:00", "12:00", date=START, priority=1),
            ],
        )
        sheet = XLSXGenerator().build_workbook(days, practitioners).active
        assert sheet["D5"].value == "Alice Adams\n08:00 - 12:00\n\nBen Baker\n13:00 - 17:00"
        assert sheet["D5"].fill.fgColor.rgb == "FF1976D2"

    def test_empty_range(self):
        buffer = XLSXGenerator().generate_to_buffer([], room_count=2)
        sheet = load_workbook(buffer).active
        assert sheet.max_row == 4

    def test_generate_to_file(self, days, practitioners, tmp_path):
        path = tmp_path / export_filename(START, END)
        XLSXGenerator().generate(days, practitioners, path, START, END)
        assert load_workbook(path).active["A5"].value == "W2"


class TestHTMLGenerator:
    def test_renders_table(self, days, practitioners):
        content = HTMLGenerator().generate_to_string(days, practitioners)

        assert content.startswith("<!DOCTYPE html>")
        assert "<th>Room 2</th>" in content
        assert "Alice Adams (09:00 - 17:00) / Ben Baker (09:00 - 17:00)" in content
        assert content.count('class="week-start"') == 1
        assert '<td class="empty">No assignment</td>' in content

    def test_escapes_names(self, days):
        practitioners = {"P1": Practitioner("P1", "<script>", "Smith")}
        content = HTMLGenerator(title="A & B").generate_to_string(days, practitioners)
        assert "<script>" not in content
        assert "&lt;script&gt; Smith" in content
        assert "<h1>A &amp; B</h1>" in content

    def test_no_days(self):
        content = HTMLGenerator().generate_to_string([])
        assert "No opening days" in content

    def test_write_file(self, days, practitioners, tmp_path):
        path = tmp_path / "schedule.html"
        content = HTMLGenerator().generate(days, practitioners, path)
        assert path.read_text(encoding="utf-8") == content


class TestPDFGenerator:
    def test_buffer_is_pdf(self, days, practitioners):
        data = PDFGenerator().generate_to_buffer(days, practitioners).getvalue()
        assert data.startswith(b"%PDF")

    def test_long_range_paginates(self, practitioners):
        days = resolve(
            date(2024, 1, 1),
            date(2024, 3, 31),
            ScheduleConfig(room_count=3),
            assignments=[RoomAssignment(1, "P1", "P2"), RoomAssignment(3, "P2")],
        )
        data = PDFGenerator().generate_to_buffer(days, practitioners).getvalue()
        assert data.startswith(b"%PDF")

    def test_empty(self):
        assert PDFGenerator().generate_to_buffer([]).getvalue().startswith(b"%PDF")

    def test_write_file(self, days, practitioners, tmp_path):
        path = tmp_path / "schedule.pdf"
        PDFGenerator().generate(days, practitioners, path)
        assert path.read_bytes().startswith(b"%PDF")
