"""Smoke tests for the end-to-end flow: seed, resolve, export, CLI."""

import logging
from datetime import date

import pytest
from openpyxl import load_workbook

from clinicsched.cli import build_scheduler, main, seed_demo_schedule
from clinicsched.config import get_settings
from clinicsched.domain.models import Weekday

MONDAY = date(2024, 1, 15)
LAST_SUNDAY = date(2024, 1, 28)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop the stdout handler the CLI installs so each test sees a fresh stream."""
    yield
    logger = logging.getLogger("clinicsched")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings_env(tmp_path, monkeypatch):
    """Point the settings at a throwaway database file."""
    url = f"sqlite:///{tmp_path / 'clinic.db'}"
    monkeypatch.setenv("CLINICSCHED_DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


class TestSmoke:
    """End-to-end smoke tests for the scheduling system."""

    @pytest.fixture
    def demo(self):
        scheduler = build_scheduler("sqlite:///:memory:")
        schedule_id = seed_demo_schedule(scheduler, MONDAY, weeks=2)
        return scheduler, schedule_id

    def test_demo_schedule_resolves(self, demo):
        scheduler, schedule_id = demo
        days, stats = scheduler.preview_with_stats(schedule_id, MONDAY, LAST_SUNDAY)
        by_date = {d.date: d for d in days}

        # Default opening days are Monday to Saturday.
        assert len(days) == 12
        assert all(d.day_of_week != Weekday.SUNDAY for d in days)

        assert by_date[MONDAY].room(1).practitioner_ids() == ["dr-adams", "as-diaz"]
        assert by_date[MONDAY].room(3).is_empty
        assert by_date[date(2024, 1, 16)].room(3).practitioner_ids() == ["dr-chen"]
        assert by_date[date(2024, 1, 18)].room(3).practitioner_ids() == ["dr-chen", "dr-baker", "as-evans"]

        # Conference day: the main is gone, the assistant stays.
        assert by_date[date(2024, 1, 17)].room(2).practitioner_ids() == ["as-evans"]

        # Late start only moves the start time.
        late = by_date[date(2024, 1, 18)].room(1).primary.main
        assert (late.start_time, late.end_time) == ("12:00", "16:00")

        saturday = by_date[date(2024, 1, 20)]
        assert saturday.room(1).practitioner_ids() == ["dr-chen"]
        assert saturday.room(2).is_empty
        assert [w.practitioner_id for w in saturday.other_workers] == ["rc-fox"]

        assert stats["opening_days"] == 12
        assert stats["double_bookings"]
        assert {b["date"].weekday() for b in stats["double_bookings"]} == {3}

    def test_cli_demo_writes_outputs(self, tmp_path, capsys):
        html_path = tmp_path / "demo.html"
        pdf_path = tmp_path / "demo.pdf"
        xlsx_path = tmp_path / "demo.xlsx"

        exit_code = main([
            "demo",
            "--start", MONDAY.isoformat(),
            "--end", LAST_SUNDAY.isoformat(),
            "--html", str(html_path),
            "--pdf", str(pdf_path),
            "--xlsx", str(xlsx_path),
        ])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "Week 3" in out
        assert "Occupied room-days" in out
        assert "Alice Adams" in html_path.read_text(encoding="utf-8")
        assert pdf_path.read_bytes().startswith(b"%PDF")
        sheet = load_workbook(xlsx_path).active
        assert sheet["A5"].value == "W3"

    def test_cli_export_and_print(self, settings_env, tmp_path):
        scheduler = build_scheduler()
        seed_demo_schedule(scheduler, MONDAY, weeks=1)

        xlsx_path = tmp_path / "week.xlsx"
        pdf_path = tmp_path / "week.pdf"
        range_args = ["-o", "demo-clinic", "-s", "2024-01-15", "-e", "2024-01-21"]

        assert main(["export", *range_args, "--output", str(xlsx_path)]) == 0
        assert main(["print", *range_args, "--output", str(pdf_path)]) == 0

        sheet = load_workbook(xlsx_path).active
        assert sheet["C5"].value == "Monday"
        assert pdf_path.read_bytes().startswith(b"%PDF")

    def test_cli_preview_prints(self, settings_env, capsys):
        seed_demo_schedule(build_scheduler(), MONDAY, weeks=1)

        assert main(["preview", "-o", "demo-clinic", "-s", "2024-01-15", "-e", "2024-01-16"]) == 0
        out = capsys.readouterr().out
        assert "Room 1: Alice Adams (08:00 - 16:00) / Dana Diaz (08:00 - 16:00)" in out

    def test_cli_unknown_organization(self, settings_env, capsys):
        assert main(["init-db"]) == 0
        assert main(["preview", "-o", "nobody", "-s", "2024-01-15", "-e", "2024-01-16"]) == 2
        assert "No active schedule" in capsys.readouterr().err

    def test_cli_without_command(self, capsys):
        assert main([]) == 1
