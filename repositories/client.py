"""
Supabase client initialization.

This module contains *only* the database connection setup and exposes a single
`supabase` client object for the repository modules.

Environment variables required:
- SUPABASE_URL: Supabase project URL
- SUPABASE_KEY: Supabase service key (server side only; reclassification and uploads
  write across all leads)
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from supabase import Client, create_client  # type: ignore[import-not-found]

# .env lives at the project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
SUPABASE_KEY: str | None = os.getenv("SUPABASE_KEY")

if not SUPABASE_URL:
    raise RuntimeError(
        "Missing environment variable: SUPABASE_URL. "
        "Set SUPABASE_URL to your Supabase project URL."
    )

if not SUPABASE_KEY:
    raise RuntimeError(
        "Missing environment variable: SUPABASE_KEY. "
        "Set SUPABASE_KEY to your Supabase service key."
    )

supabase: Client = create_client(SUPABASE_URL, SUPABASE_KEY)

# Supabase caps a single select at 1000 rows.
PAGE_SIZE = 1000


def fetch_all(query_factory, page_size: int = PAGE_SIZE) -> list[dict]:
    """
    Read every row of a select by paging with `.range()`.

    `query_factory` must return a fresh filtered select builder on each call.

    Raises:
        RuntimeError: If Supabase returns an error response
    """

    rows: list[dict] = []
    offset = 0
    while True:
        response = query_factory().range(offset, offset + page_size - 1).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to fetch rows: {error}")

        page_rows = getattr(response, "data", None) or []
        rows.extend(page_rows)
        if len(page_rows) < page_size:
            return rows
        offset += len(page_rows)


__all__ = ["PAGE_SIZE", "fetch_all", "supabase"]
