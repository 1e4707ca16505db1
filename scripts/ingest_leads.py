#!/usr/bin/env python3
"""
Lead Spreadsheet Ingestion Script

Imports leads from a CSV/XLSX/XLS file into the Supabase database with:
- Column mapping from the administrator mappings, then built-in aliases
- Duplicate detection by phone (stored leads and repeats within the file)
- Automatic grade classification with the active grade rules
- Summary statistics and error logging

Usage:
    python ingest_leads.py path/to/leads.csv
    python ingest_leads.py path/to/leads.xlsx --dry-run --error-log errors.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.lead_batch_service import UploadOutcome, ingest_upload


def print_summary(outcome: UploadOutcome) -> None:
    """Print upload summary statistics."""
    summary = outcome.summary

    print()
    print("=" * 60)
    print("UPLOAD SUMMARY")
    print("=" * 60)
    print(f"Batch:            {outcome.batch_id or '(dry run)'}")
    print(f"Total Rows:       {summary.total_count}")
    print(f"Successful:       {summary.success_count}")
    print(f"Duplicates:       {summary.duplicate_count}")
    print(f"Errors:           {summary.error_count}")
    print()

    if summary.grade_summary:
        print("Grades:")
        for grade_name, count in sorted(summary.grade_summary.items()):
            print(f"  {grade_name:<16}{count}")
        print()

    if summary.unmapped_columns:
        print(f"Unmapped columns: {', '.join(summary.unmapped_columns)}")
        print()

    if summary.errors:
        print("First 5 errors:")
        for issue in summary.errors[:5]:
            print(f"  - Row {issue.row}: {issue.message}")
        if len(summary.errors) > 5:
            print(f"  ... and {len(summary.errors) - 5} more")
    else:
        print("No errors!")

    print("=" * 60)


def save_error_log(outcome: UploadOutcome, output_path: str) -> None:
    """Save every error and duplicate to a JSON file."""
    summary = outcome.summary
    if not summary.errors and not summary.duplicates:
        return

    payload = {
        "errors": [issue.to_dict() for issue in summary.errors],
        "duplicates": [dup.to_dict() for dup in summary.duplicates],
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)

    print(f"\nError log saved to: {output_path}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Ingest leads from a spreadsheet into Supabase database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic import
  python ingest_leads.py leads.csv

  # Dry run (parse and classify, don't insert)
  python ingest_leads.py leads.xlsx --dry-run

  # Save error log to custom path
  python ingest_leads.py leads.csv --error-log errors.json
        """
    )

    parser.add_argument(
        "file_path",
        help="Path to the CSV, XLSX or XLS file to ingest"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse, deduplicate and classify without inserting to database"
    )

    parser.add_argument(
        "--uploaded-by",
        default=None,
        help="Member id recorded on the upload batch"
    )

    parser.add_argument(
        "--error-log",
        default="ingestion_errors.json",
        help="Path to save error log (default: ingestion_errors.json)"
    )

    args = parser.parse_args()

    try:
        path = Path(args.file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {args.file_path}")

        print(f"Reading: {path}")
        print(f"Dry run: {args.dry_run}")

        outcome = ingest_upload(
            path.read_bytes(),
            path.name,
            uploaded_by=args.uploaded_by,
            dry_run=args.dry_run,
        )

        print_summary(outcome)
        save_error_log(outcome, args.error_log)

        # Duplicates are expected; only row errors count as partial success
        if outcome.summary.error_count > 0:
            return 1
        return 0

    except KeyboardInterrupt:
        print("\n\nIngestion interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
