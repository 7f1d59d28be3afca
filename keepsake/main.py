"""Keepsake command-line entry point.

Usage examples:
    # Newest memories first
    python -m keepsake timeline --couple c1

    # Gallery rows for a 4-column grid
    python -m keepsake gallery --couple c1 --columns 4

    # Calendar marks for February 2024, with the 14th selected
    python -m keepsake calendar 2024 2 --couple c1 --day 2024-02-14

    # Convert a place-search coordinate pair
    python -m keepsake convert 309947 552085
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from keepsake.backend import create_backend
from keepsake.config import settings
from keepsake.errors import BackendError
from keepsake.geo.convert import to_wgs84
from keepsake.journal import Journal
from keepsake.places.naver import NaverPlaceSearch
from keepsake.session import Session
from keepsake.tasks.coordinator import TaskBoard
from keepsake.timeline.views import day_key

if TYPE_CHECKING:
    from keepsake.models import TimelineEvent
    from keepsake.notices import NoticeBoard

logger = logging.getLogger(__name__)


def _format_event(event: TimelineEvent) -> str:
    parts = [day_key(event.event_date), event.location or "No location"]
    if event.rating:
        parts.append(f"★{event.rating:g}")
    if event.description:
        parts.append(event.description)
    if event.keywords:
        parts.append(" ".join(f"#{k}" for k in event.unique_keywords))
    return "  ".join(parts)


def _print_notices(notices: NoticeBoard) -> int:
    for notice in notices.pending:
        print(f"! {notice.title}: {notice.detail}", file=sys.stderr)
    return 1 if len(notices) else 0


async def _run(args: argparse.Namespace) -> int:
    if args.command == "convert":
        coords = to_wgs84(args.mapx, args.mapy)
        if not coords.converted:
            print("Conversion failed", file=sys.stderr)
            return 1
        print(f"{coords.latitude:.6f}, {coords.longitude:.6f}")
        return 0

    if args.command == "places":
        try:
            places = await NaverPlaceSearch().search(args.query)
        except BackendError as exc:
            print(f"! Couldn't search places: {exc}", file=sys.stderr)
            return 1
        for place in places:
            coords = place.coordinates()
            where = f"{coords.latitude:.5f},{coords.longitude:.5f}" if coords.converted else "-"
            print(f"{place.title}  [{place.category}]  {place.road_address or place.address}  {where}")
        return 0

    session = Session(user_id=args.user, couple_id=args.couple)
    backend = create_backend(args.backend)
    journal = Journal(backend, session)

    if args.command == "timeline":
        for event in await journal.load_timeline():
            print(_format_event(event))

    elif args.command == "gallery":
        for section in await journal.load_gallery(args.columns):
            print(f"== {section.short_label} ({len(section.events)})")
            for row in section.rows:
                print("  " + " | ".join(e.image_path or "" for e in row))

    elif args.command == "calendar":
        month = await journal.load_month(args.year, args.month, selected_day=args.day)
        if month is not None:
            for day, mark in month.marks.items():
                flag = "*" if mark.selected else " "
                print(f"{flag} {day}{'  •' if mark.has_events else ''}")
            for event in month.selected_events:
                print("  " + _format_event(event))

    elif args.command == "stats":
        stats = await journal.load_stats()
        if stats is not None:
            print(f"{stats.total} memories collected")
            for ranked in stats.top_locations:
                print(f"  place     {ranked.value} ({ranked.count})")
            for ranked in stats.top_categories:
                print(f"  category  {ranked.value} ({ranked.count})")

    elif args.command == "search":
        search = await journal.open_search()
        search.update(args.query)
        for event in await search.wait():
            print(_format_event(event))

    elif args.command == "tasks":
        board = TaskBoard(backend, session, notices=journal.notices)
        await board.load()
        done, total = board.progress
        print(f"{done}/{total} done")
        for task in board.ordered:
            print(f"[{'x' if task.completed else ' '}] {task.text}")

    return _print_notices(journal.notices)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="keepsake", description="Shared memory journal")
    parser.add_argument("--backend", choices=["sqlite", "supabase"], default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    def couple_command(name: str, help_text: str) -> argparse.ArgumentParser:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--couple", required=True, help="Couple id")
        cmd.add_argument("--user", default="cli", help="Acting user id")
        return cmd

    couple_command("timeline", "List memories, newest first")
    gallery = couple_command("gallery", "Month-grouped image grid")
    gallery.add_argument("--columns", type=int, default=None)
    cal = couple_command("calendar", "Day marks for one month")
    cal.add_argument("year", type=int)
    cal.add_argument("month", type=int, choices=range(1, 13))
    cal.add_argument("--day", default=None, help="Selected day (YYYY-MM-DD)")
    couple_command("stats", "Totals and top places/categories")
    search = couple_command("search", "Search descriptions, places, categories, keywords")
    search.add_argument("query")
    couple_command("tasks", "Shared checklist")

    convert = sub.add_parser("convert", help="Convert provider coordinates to WGS84")
    convert.add_argument("mapx")
    convert.add_argument("mapy")
    places = sub.add_parser("places", help="Search places by keyword")
    places.add_argument("query")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
