"""Command-line interface for the clinic scheduling tool."""

import argparse
import sys
from datetime import date, timedelta
from typing import Optional

from clinicsched.config import get_settings
from clinicsched.domain.models import (
    DEFAULT_OPENING_DAYS,
    DayAssignment,
    OtherWorkerSchedule,
    Practitioner,
    RoomAssignment,
    Weekday,
)
from clinicsched.logging_config import setup_logging
from clinicsched.output.formatting import (
    EMPTY_ROOM_LABEL,
    EMPTY_WORKERS_LABEL,
    export_filename,
    occupant_label,
    short_date,
    slot_label,
)
from clinicsched.output.html_generator import HTMLGenerator
from clinicsched.output.pdf_generator import PDFGenerator
from clinicsched.output.xlsx_generator import XLSXGenerator
from clinicsched.scheduling.cache import ResolutionCache
from clinicsched.scheduling.scheduler import ClinicScheduler
from clinicsched.storage.database import create_db_engine, create_session_factory, create_tables
from clinicsched.storage.store import ScheduleNotFoundError, ScheduleStore
from clinicsched.validation.validator import ValidationError

DEMO_ORGANIZATION = "demo-clinic"

DEMO_PRACTITIONERS = [
    Practitioner(id="dr-adams", first_name="Alice", last_name="Adams", role="dentist", color="#1976d2"),
    Practitioner(id="dr-baker", first_name="Ben", last_name="Baker", role="dentist", color="#ffb74d"),
    Practitioner(id="dr-chen", first_name="Carol", last_name="Chen", role="dentist", color="#d32f2f"),
    Practitioner(id="as-diaz", first_name="Dana", last_name="Diaz", role="assistant", color="#388e3c"),
    Practitioner(id="as-evans", first_name="Eli", last_name="Evans", role="assistant", color="#c5e1a5"),
    Practitioner(id="rc-fox", first_name="Fran", last_name="Fox", role="reception", color="#7b1fa2"),
]


def _monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def build_scheduler(database_url: Optional[str] = None) -> ClinicScheduler:
    """Create a scheduler backed by the configured database."""
    settings = get_settings()
    engine = create_db_engine(database_url or settings.database_url, echo=settings.database_echo)
    create_tables(engine)
    store = ScheduleStore(create_session_factory(engine), default_config=settings.schedule_config())
    return ClinicScheduler(
        store,
        cache=ResolutionCache(max_entries=settings.cache_max_entries),
        cache_enabled=settings.cache_enabled,
    )


def seed_demo_schedule(scheduler: ClinicScheduler, start_date: date, weeks: int = 4) -> str:
    """Seed a sample three-room schedule and return its id."""
    for practitioner in DEMO_PRACTITIONERS:
        scheduler.save_practitioner(DEMO_ORGANIZATION, practitioner)

    schedule = scheduler.save_schedule(
        DEMO_ORGANIZATION,
        "Demo schedule",
        start_date,
        start_date + timedelta(weeks=weeks, days=-1),
        room_count=3,
        assignments=[
            RoomAssignment(1, "dr-adams", "as-diaz", "08:00", "16:00"),
            RoomAssignment(2, "dr-baker", "as-evans", "09:00", "17:00"),
        ],
        other_workers=[
            OtherWorkerSchedule("rc-fox", "08:00", "17:00", DEFAULT_OPENING_DAYS),
        ],
    )

    # Room 3 is only used on recurring Tuesday/Thursday shifts.
    scheduler.create_shift(schedule.id, 3, "dr-chen", "09:00", "13:00", day_of_week=Weekday.TUESDAY)
    scheduler.create_shift(schedule.id, 3, "dr-chen", "09:00", "13:00", day_of_week=Weekday.THURSDAY)
    scheduler.create_shift(
        schedule.id, 3, "dr-baker", "14:00", "18:00",
        day_of_week=Weekday.THURSDAY, side_practitioner_id="as-evans",
    )
    # One-off Saturday surgery and a day off.
    scheduler.create_shift(
        schedule.id, 1, "dr-chen", "09:00", "12:00",
        date=start_date + timedelta(days=5), priority=1, reason="Saturday surgery",
    )
    scheduler.create_override(
        schedule.id, start_date + timedelta(days=2),
        practitioner_id="dr-baker", is_unavailable=True, reason="Conference",
    )
    scheduler.create_override(
        schedule.id, start_date + timedelta(days=3),
        practitioner_id="dr-adams", start_time="12:00", reason="Late start",
    )
    return schedule.id


def print_schedule(days: list[DayAssignment], practitioners: dict[str, Practitioner]) -> None:
    """Print a plain-text rendition of resolved days."""
    if not days:
        print("  No opening days in the selected range.")
        return

    previous_week = None
    for day in days:
        if day.iso_week != previous_week:
            print(f"\n  Week {day.iso_week}")
            print("  " + "-" * 60)
            previous_week = day.iso_week
        print(f"  {day.day_of_week.value[:3]} {short_date(day.date)}")
        for room_day in day.rooms:
            if room_day.is_empty:
                label = EMPTY_ROOM_LABEL
            else:
                label = "; ".join(slot_label(slot, practitioners) for slot in room_day.slots)
            print(f"    Room {room_day.room_number}: {label}")
        workers = ", ".join(occupant_label(w, practitioners) for w in day.other_workers)
        print(f"    Other workers: {workers or EMPTY_WORKERS_LABEL}")


def write_outputs(
    days: list[DayAssignment],
    practitioners: dict[str, Practitioner],
    start_date: date,
    end_date: date,
    room_count: int,
    html_path: Optional[str] = None,
    pdf_path: Optional[str] = None,
    xlsx_path: Optional[str] = None,
) -> None:
    if html_path:
        HTMLGenerator().generate(days, practitioners, html_path)
        print(f"  HTML preview written to {html_path}")
    if pdf_path:
        PDFGenerator().generate(days, practitioners, pdf_path)
        print(f"  PDF written to {pdf_path}")
    if xlsx_path:
        XLSXGenerator().generate(days, practitioners, xlsx_path, start_date, end_date, room_count)
        print(f"  Spreadsheet written to {xlsx_path}")


def run_demo(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    html_path: Optional[str] = None,
    pdf_path: Optional[str] = None,
    xlsx_path: Optional[str] = None,
) -> None:
    """Run the demo on an in-memory database."""
    start_date = start_date or _monday_of(date.today())
    end_date = end_date or start_date + timedelta(days=13)
    print(f"Resolving demo schedule from {start_date} to {end_date}...")

    scheduler = build_scheduler("sqlite:///:memory:")
    schedule_id = seed_demo_schedule(scheduler, _monday_of(start_date))
    days, stats = scheduler.preview_with_stats(schedule_id, start_date, end_date)
    practitioners = scheduler.practitioners(schedule_id)

    print_schedule(days, practitioners)
    print(f"\n  Opening days: {stats['opening_days']}")
    print(f"  Occupied room-days: {stats['occupied_room_days']}/{stats['room_days']}"
          f" ({stats['occupancy_rate']:.0%})")
    print(f"  Practitioners scheduled: {stats['practitioners_scheduled']}")
    if stats["double_bookings"]:
        print(f"  Double bookings: {len(stats['double_bookings'])}")

    write_outputs(days, practitioners, start_date, end_date, 3, html_path, pdf_path, xlsx_path)


def _resolve_active(organization_id: str, start_date: date, end_date: date):
    scheduler = build_scheduler()
    schedule = scheduler.store.get_active_schedule(organization_id)
    if schedule is None:
        raise ScheduleNotFoundError(f"No active schedule for organization {organization_id}")
    days = scheduler.preview(schedule.id, start_date, end_date)
    return days, scheduler.practitioners(schedule.id), schedule.room_count


def run_preview(organization_id: str, start_date: date, end_date: date, html_path: Optional[str]) -> None:
    days, practitioners, room_count = _resolve_active(organization_id, start_date, end_date)
    if html_path:
        write_outputs(days, practitioners, start_date, end_date, room_count, html_path=html_path)
    else:
        print_schedule(days, practitioners)


def run_export(organization_id: str, start_date: date, end_date: date, output: Optional[str]) -> None:
    days, practitioners, room_count = _resolve_active(organization_id, start_date, end_date)
    output = output or export_filename(start_date, end_date)
    write_outputs(days, practitioners, start_date, end_date, room_count, xlsx_path=output)


def run_print(organization_id: str, start_date: date, end_date: date, output: str) -> None:
    days, practitioners, room_count = _resolve_active(organization_id, start_date, end_date)
    write_outputs(days, practitioners, start_date, end_date, room_count, pdf_path=output)


def _add_range_arguments(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument(
        "--start", "-s",
        type=date.fromisoformat,
        required=required,
        help="First day of the range (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end", "-e",
        type=date.fromisoformat,
        required=required,
        help="Last day of the range (YYYY-MM-DD)",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Clinic room scheduling tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db                            Create the database tables
  %(prog)s demo                               Resolve a sample schedule
  %(prog)s demo --xlsx demo.xlsx              Also write the spreadsheet
  %(prog)s preview -o clinic-1 -s 2024-01-15 -e 2024-01-19
  %(prog)s export -o clinic-1 -s 2024-01-01 -e 2024-01-31
  %(prog)s print -o clinic-1 -s 2024-01-15 -e 2024-01-19 --output week.pdf
        """,
    )
    parser.add_argument("--log-level", type=str, help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create database tables")

    demo_parser = subparsers.add_parser("demo", help="Resolve a sample schedule in memory")
    _add_range_arguments(demo_parser, required=False)
    demo_parser.add_argument("--html", type=str, help="Output HTML file path")
    demo_parser.add_argument("--pdf", type=str, help="Output PDF file path")
    demo_parser.add_argument("--xlsx", type=str, help="Output spreadsheet file path")

    preview_parser = subparsers.add_parser("preview", help="Preview the active schedule")
    preview_parser.add_argument("--organization", "-o", required=True, help="Organization id")
    _add_range_arguments(preview_parser)
    preview_parser.add_argument("--html", type=str, help="Write the preview as HTML instead of printing")

    export_parser = subparsers.add_parser("export", help="Export the active schedule to a spreadsheet")
    export_parser.add_argument("--organization", "-o", required=True, help="Organization id")
    _add_range_arguments(export_parser)
    export_parser.add_argument(
        "--output",
        type=str,
        help="Output path (default: clinic-schedule-<start>-to-<end>.xlsx)",
    )

    print_parser = subparsers.add_parser("print", help="Write a printable PDF of the active schedule")
    print_parser.add_argument("--organization", "-o", required=True, help="Organization id")
    _add_range_arguments(print_parser)
    print_parser.add_argument("--output", type=str, required=True, help="Output PDF file path")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.command == "init-db":
            settings = get_settings()
            create_tables(create_db_engine(settings.database_url))
            print(f"Database ready at {settings.database_url}")
            return 0
        elif args.command == "demo":
            run_demo(args.start, args.end, args.html, args.pdf, args.xlsx)
            return 0
        elif args.command == "preview":
            run_preview(args.organization, args.start, args.end, args.html)
            return 0
        elif args.command == "export":
            run_export(args.organization, args.start, args.end, args.output)
            return 0
        elif args.command == "print":
            run_print(args.organization, args.start, args.end, args.output)
            return 0
        else:
            parser.print_help()
            return 1
    except (ValidationError, ScheduleNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
