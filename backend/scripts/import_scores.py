"""
Import Scores Script

Imports a roster or test-result CSV file through the same reconciler the
admin API uses.

Usage:
    cd backend
    python scripts/import_scores.py roster students.csv
    python scripts/import_scores.py results mock1.csv --test-name "Mock 1" --test-date 2026-05-10
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import settings
from app.infrastructure.db.database import close_db, get_session_context
from app.infrastructure.db.repositories.score_repository import ScoreRepository
from app.infrastructure.services.score_import_service import ScoreImportService
from app.infrastructure.services.score_row_mapper import ScoreRowMapper

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_import(args: argparse.Namespace) -> int:
    """Run one import; returns the number of row errors."""
    content = Path(args.csv_file).read_text(encoding=args.encoding)
    mapper = ScoreRowMapper(strict_section_totals=settings.strict_section_totals)

    try:
        async with get_session_context() as session:
            service = ScoreImportService(ScoreRepository(session), mapper)

            if args.kind == "roster":
                result = await service.import_roster_csv(content)
                print(f"Upserted students: {result.inserted_or_updated_count}")
            else:
                result = await service.import_test_csv(
                    content, args.test_name, args.test_date
                )
                print(f"Inserted: {result.inserted_count}")
                print(f"Skipped (already present): {len(result.skipped)}")
                for skipped in result.skipped:
                    print(f"  - {skipped['student_external_id']}")
    finally:
        await close_db()

    for error in result.row_errors:
        print(f"  ! {error}")
    print(f"Row errors: {len(result.row_errors)}")
    return len(result.row_errors)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import score portal CSV files")
    parser.add_argument("kind", choices=["roster", "results"], help="File type")
    parser.add_argument("csv_file", help="Path to the CSV file")
    parser.add_argument("--test-name", help="Exam name (results only)")
    parser.add_argument(
        "--test-date",
        type=date.fromisoformat,
        help="Exam date as YYYY-MM-DD (results only)"
    )
    parser.add_argument(
        "--encoding",
        default="utf-8-sig",
        help="File encoding (default: utf-8-sig)"
    )
    args = parser.parse_args()

    if args.kind == "results" and (not args.test_name or not args.test_date):
        parser.error("results imports require --test-name and --test-date")

    errors = asyncio.run(run_import(args))
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()
