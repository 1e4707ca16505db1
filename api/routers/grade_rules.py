"""
Grade Rules API Endpoints.

Endpoints for authoring classification rules, testing them and reclassifying stored leads.
"""

from fastapi import APIRouter, HTTPException

from api.models import (
    GradeRuleCreateRequest,
    GradeRuleTestRequest,
    GradeRuleTestResponse,
    ReclassifyRequest,
    ReclassifyResponse,
    RuleCreatedResponse,
)
from domain.rules import InvalidConditionError, NoValidConditionsError
from repositories.grade_repository import get_grade, insert_grade_rule, list_grades_with_rules
from services.grade_classifier import NoDefaultGradeError, build_grade_rule, classify_sample
from services.lead_batch_service import run_reclassification
from services.reclassification_service import NoActiveGradesError

router = APIRouter()


@router.post(
    "/grade-rules",
    response_model=RuleCreatedResponse,
    summary="Create Grade Rule",
    description="Add a classification rule to a grade. Conditions with empty values are ignored."
)
def create_grade_rule(request: GradeRuleCreateRequest):
    try:
        if get_grade(grade_id=request.grade_id) is None:
            raise HTTPException(status_code=404, detail=f"Grade not found: {request.grade_id}")

        rule = build_grade_rule(
            grade_id=request.grade_id,
            raw_conditions=[c.model_dump() for c in request.conditions],
            logic_operator=request.logic_operator,
        )
        return RuleCreatedResponse(id=insert_grade_rule(rule))

    except (NoValidConditionsError, InvalidConditionError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create grade rule: {str(e)}"
        )


@router.post(
    "/grade-rules/test",
    response_model=GradeRuleTestResponse,
    summary="Test Grade Rules",
    description="Classify ad-hoc lead attributes against the active grade rules and explain the result."
)
def test_grade_rules(request: GradeRuleTestRequest):
    """
    Returns the assigned grade and one evaluation log entry per rule evaluated,
    in grade priority order, up to and including the matching rule.
    """
    try:
        result = classify_sample(request.lead_data, list_grades_with_rules())
        return GradeRuleTestResponse(**result.to_dict())

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to test grade rules: {str(e)}"
        )


@router.post(
    "/grade-rules/reclassify",
    response_model=ReclassifyResponse,
    summary="Reclassify Leads",
    description="Re-run grade rules over stored leads. `auto_only` keeps manually assigned grades."
)
def reclassify_leads(request: ReclassifyRequest):
    try:
        result = run_reclassification(request.mode, dry_run=request.dry_run)
        return ReclassifyResponse(**result.to_dict())

    except (NoActiveGradesError, NoDefaultGradeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reclassify leads: {str(e)}"
        )
