"""
System settings repository (persistence).

Key/value settings stored as JSON in `system_settings`.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from domain.thresholds import EligibilityThresholds
from repositories.client import supabase

_SETTINGS_TABLE: str = "system_settings"

ELIGIBILITY_THRESHOLDS_KEY = "distribution_eligibility_thresholds"
_ELIGIBILITY_THRESHOLDS_DESCRIPTION = (
    "등급별 배분 자격 기준 (원 단위). grade_a_min_payment: A등급 최소 월납, "
    "grade_b_min_payment: B등급 최소 월납, grade_b_max_payment: B등급 최대 월납"
)


def get_setting(key: str) -> Optional[Any]:
    """Stored value for `key` (JSON strings are decoded), or None."""

    response = supabase.table(_SETTINGS_TABLE).select("value").eq("key", key).limit(1).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch setting {key}: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None

    value = rows[0].get("value")
    if isinstance(value, str):
        return json.loads(value)
    return value


def upsert_setting(key: str, value: Any, description: Optional[str] = None) -> None:
    payload = {
        "key": key,
        "value": value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if description is not None:
        payload["description"] = description

    response = supabase.table(_SETTINGS_TABLE).upsert(payload, on_conflict="key").execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to save setting {key}: {error}")


def get_eligibility_thresholds() -> EligibilityThresholds:
    """Stored thresholds merged over the defaults; defaults when nothing is stored."""

    return EligibilityThresholds.from_mapping(get_setting(ELIGIBILITY_THRESHOLDS_KEY))


def save_eligibility_thresholds(thresholds: EligibilityThresholds) -> EligibilityThresholds:
    """
    Validate and store thresholds.

    Raises:
        InvalidThresholdBandError: bands would overlap or leave a gap
        ValueError: negative amounts or over-long copy
        RuntimeError: If Supabase returns an error response
    """

    thresholds.validate()
    upsert_setting(ELIGIBILITY_THRESHOLDS_KEY, thresholds.to_dict(), _ELIGIBILITY_THRESHOLDS_DESCRIPTION)
    return thresholds


__all__ = [
    "ELIGIBILITY_THRESHOLDS_KEY",
    "get_eligibility_thresholds",
    "get_setting",
    "save_eligibility_thresholds",
    "upsert_setting",
]
