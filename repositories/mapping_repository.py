"""
CSV mapping repository (persistence).

Administrator-configured spreadsheet column -> lead field mappings.
"""

from __future__ import annotations

from typing import List

from repositories.client import supabase
from domain.field_mapping import FieldMapping

_MAPPINGS_TABLE: str = "csv_mappings"


def list_field_mappings() -> List[FieldMapping]:
    response = (
        supabase.table(_MAPPINGS_TABLE)
        .select("csv_column, system_field, is_required, display_order")
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list CSV mappings: {error}")

    rows = getattr(response, "data", None) or []
    return [FieldMapping.from_row(row) for row in rows if row.get("csv_column") and row.get("system_field")]


__all__ = ["list_field_mappings"]
