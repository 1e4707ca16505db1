#!/usr/bin/env python3
"""
Lead Reclassification Script

Re-runs the active grade rules over every stored lead.

Modes:
- auto_only (default): leads with a manually assigned grade are left alone
- all: every lead is re-graded, manual grades included

Usage:
    python reclassify_leads.py
    python reclassify_leads.py --mode all --dry-run
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.lead_batch_service import run_reclassification
from services.reclassification_service import ReclassificationResult, ReclassifyMode


def print_summary(result: ReclassificationResult, dry_run: bool) -> None:
    print()
    print("=" * 60)
    print("RECLASSIFICATION SUMMARY" + (" (DRY RUN)" if dry_run else ""))
    print("=" * 60)
    print(f"Evaluated:        {result.total_count}")
    print(f"Changed:          {result.updated_count}")
    print()
    for grade_name, count in sorted(result.grade_summary.items()):
        print(f"  {grade_name:<16}{count}")
    print()
    print(result.message)
    print("=" * 60)


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Reclassify stored leads with the current grade rules")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ReclassifyMode],
        default=ReclassifyMode.AUTO_ONLY.value,
        help="auto_only keeps manual grades; all overwrites them (default: auto_only)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute new grades without updating the database"
    )
    args = parser.parse_args()

    try:
        result = run_reclassification(ReclassifyMode(args.mode), dry_run=args.dry_run)
        print_summary(result, args.dry_run)
        return 0

    except KeyboardInterrupt:
        print("\n\nReclassification interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
