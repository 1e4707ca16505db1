"""
Settings API Endpoints.

Endpoints for reading and updating the fixed-tier eligibility thresholds.
"""

import logging
from dataclasses import replace

from fastapi import APIRouter, HTTPException

from api.models import EligibilityThresholdsUpdate
from domain.thresholds import GradeTierDescription, InvalidThresholdBandError
from repositories.settings_repository import get_eligibility_thresholds, save_eligibility_thresholds

logger = logging.getLogger(__name__)

router = APIRouter()

_TIER_KEYS = ("grade_a_description", "grade_b_description", "grade_c_description", "grade_d_description")


@router.get(
    "/settings/eligibility-thresholds",
    summary="Get Eligibility Thresholds",
    description="Current A/B payment bands and tier descriptions (defaults merged in)."
)
def get_thresholds():
    try:
        return get_eligibility_thresholds().to_dict()

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load eligibility thresholds: {str(e)}"
        )


@router.patch(
    "/settings/eligibility-thresholds",
    summary="Update Eligibility Thresholds",
    description="Partially update the payment bands; grade_a_min_payment must equal grade_b_max_payment."
)
def update_thresholds(request: EligibilityThresholdsUpdate):
    try:
        current = get_eligibility_thresholds()
        changes = request.model_dump(exclude_none=True, exclude=set(_TIER_KEYS))

        for key in _TIER_KEYS:
            patch = getattr(request, key)
            if patch is None:
                continue
            tier: GradeTierDescription = getattr(current, key)
            changes[key] = replace(tier, **patch.model_dump(exclude_none=True))

        saved = save_eligibility_thresholds(replace(current, **changes))
        return saved.to_dict()

    except (InvalidThresholdBandError, ValueError) as e:
        logger.warning("Rejected eligibility thresholds update", extra={"error": str(e)})
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save eligibility thresholds: {str(e)}"
        )
