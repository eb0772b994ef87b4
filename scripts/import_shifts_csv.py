#!/usr/bin/env python3
"""
Import shifts from a CSV file on the server, using the same pipeline as the
upload endpoints.

Usage (from the project root):
  .venv/bin/python scripts/import_shifts_csv.py --file schedule.csv --actor-email manager@example.com
  .venv/bin/python scripts/import_shifts_csv.py --file schedule.csv --actor-email manager@example.com --dry-run

DATABASE_URL must be set (or present in .env).
"""
import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func, select

from src.shift_tool.database import SessionLocal
from src.shift_tool.models.user import User
from src.shift_tool.api.deps import can_import_shifts
from src.shift_tool.services.shift_import import (
    IncompleteMappingError,
    decode_csv_content,
    import_csv,
    preview_csv_import,
)


def print_preview(preview) -> None:
    if preview.needs_mapping:
        print(f"Column mapping incomplete. Missing: {', '.join(preview.mapping.missing_required)}")
        return
    print(f"Rows: {preview.total_rows}, would create: {preview.will_create}, would skip: {preview.will_skip}")
    for row in preview.preview_rows:
        if row.errors:
            print(f"  row {row.row_number}: {'; '.join(row.errors)}")


def main():
    parser = argparse.ArgumentParser(description="Bulk-import shifts from a CSV file")
    parser.add_argument("--file", required=True, help="CSV file with email, date, start_time, end_time, role, department")
    parser.add_argument("--actor-email", required=True, help="Email of the manager or admin performing the import")
    parser.add_argument("--dry-run", action="store_true", help="Validate and report without writing")
    args = parser.parse_args()

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        sys.exit(1)

    try:
        csv_content = decode_csv_content(path.read_bytes())
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    email = args.actor_email.strip().lower()
    db = SessionLocal()
    try:
        actor = db.execute(
            select(User).where(func.lower(User.email) == email, User.is_active == True)
        ).scalar_one_or_none()
        if not actor:
            print(f"Error: no active user with email '{email}'", file=sys.stderr)
            sys.exit(1)
        if not can_import_shifts(actor):
            print("Error: only managers and admins can import shifts", file=sys.stderr)
            sys.exit(1)

        if args.dry_run:
            print_preview(preview_csv_import(db, csv_content, actor, preview_limit=sys.maxsize))
            return

        result = import_csv(db, csv_content, actor)
        print(f"Created {result.created} of {result.total} shifts.")
        for error in result.errors:
            print(f"  row {error.row} ({error.email}): {error.reason}")
        if result.error_csv_path:
            print(f"Rejected rows written to {result.error_csv_path}")
    except IncompleteMappingError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
