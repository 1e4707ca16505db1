"""
Domain: administrator-configured spreadsheet column -> lead field mapping.

`csv_column` is matched case-insensitively; mappings apply in `display_order`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class FieldMapping:
    csv_column: str
    system_field: str
    is_required: bool = False
    display_order: int = 0

    @staticmethod
    def from_row(row: Mapping[str, Any]) -> "FieldMapping":
        return FieldMapping(
            csv_column=str(row["csv_column"]),
            system_field=str(row["system_field"]),
            is_required=bool(row.get("is_required") or False),
            display_order=int(row.get("display_order") or 0),
        )


__all__ = ["FieldMapping"]
