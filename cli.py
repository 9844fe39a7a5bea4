import argparse
import logging
import sys
from pathlib import Path

from core.errors import TestSessionError
from core.logging_setup import setup_console_logging
from core.sampling import category_distribution
from csv_import import parse_question_csv

logger = logging.getLogger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a CSV question bank as a new test")
    parser.add_argument("file", type=Path, help="Path to .csv question bank")
    parser.add_argument("--title", type=str, help="Test title (defaults to file name)")
    parser.add_argument(
        "--time-limit",
        type=int,
        default=20,
        help="Time limit in minutes",
    )
    parser.add_argument(
        "--questions-count",
        type=int,
        default=None,
        help="Questions per session (default: all)",
    )
    parser.add_argument(
        "--owner",
        type=str,
        default=None,
        help="Username or email of the test owner",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the file without writing to the database",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_console_logging()
    args = parse_args(argv)

    try:
        rows = parse_question_csv(args.file.read_bytes(), source=args.file.name)
    except (OSError, TestSessionError) as exc:
        logger.error("Cannot import %s: %s", args.file, exc)
        return 1

    for category, count in sorted(category_distribution(rows).items()):
        print(f"{category}: {count}")

    if args.dry_run:
        print(f"{len(rows)} questions are valid")
        return 0

    # database imports are deferred so --dry-run never touches the data dir
    from api.database import SessionLocal, init_db
    from api.services.auth_service import get_user_by_login
    from api.services.test_service import create_test_with_questions

    init_db()
    with SessionLocal() as db:
        owner_id = None
        if args.owner:
            owner = get_user_by_login(db, args.owner)
            if owner is None:
                logger.error("Unknown owner %s", args.owner)
                return 1
            owner_id = owner.id

        try:
            test = create_test_with_questions(
                db,
                title=args.title or args.file.stem,
                time_limit=args.time_limit,
                rows=rows,
                created_by=owner_id,
                questions_count=args.questions_count,
            )
        except TestSessionError as exc:
            logger.error("Cannot import %s: %s", args.file, exc.message)
            return 1

    print(f"Created test {test.test_id} with {len(rows)} questions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
