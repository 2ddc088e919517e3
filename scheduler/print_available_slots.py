"""Print a user's free/busy slots as JSON lines.

Usage:
    python -m scheduler.print_available_slots USER_ID 2026-01-05T00:00:00 2026-01-09T23:59:59
"""
import argparse
import sys
from datetime import datetime

from scheduler.core.errors import SchedulingError
from scheduler.database import SessionLocal
from scheduler.repository import SqlAlchemyRepository
from scheduler.services.availability_service import get_available_slots


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('user_id')
    parser.add_argument('start_date', type=datetime.fromisoformat)
    parser.add_argument('end_date', type=datetime.fromisoformat)
    parser.add_argument('--available-only', action='store_true')
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    db = SessionLocal()
    try:
        slots = get_available_slots(SqlAlchemyRepository(db), args.user_id, args.start_date, args.end_date)
    except SchedulingError as exc:
        print(exc.message, file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()

    for slot in slots:
        if args.available_only and not slot.available:
            continue
        print(slot.model_dump_json())


if __name__ == '__main__':
    main()
