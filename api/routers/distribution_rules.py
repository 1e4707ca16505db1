"""
Distribution Rules API Endpoints.

Endpoints for authoring and testing member eligibility rules.
"""

from fastapi import APIRouter, HTTPException

from api.models import DistributionRuleCreateRequest, DistributionTestRequest, RuleCreatedResponse
from domain.rules import InvalidConditionError, NoValidConditionsError
from repositories.distribution_rule_repository import insert_distribution_rule
from repositories.grade_repository import get_grade
from services.distribution_rule_service import InvalidExclusionRuleError, build_distribution_rule
from services.member_service import MemberNotFoundError, MissingTestSubjectError, run_distribution_test

router = APIRouter()


@router.post(
    "/distribution-rules",
    response_model=RuleCreatedResponse,
    summary="Create Distribution Rule",
    description="Add an eligibility rule for receiving leads of a grade."
)
def create_distribution_rule(request: DistributionRuleCreateRequest):
    try:
        if get_grade(grade_id=request.grade_id) is None:
            raise HTTPException(status_code=404, detail=f"Grade not found: {request.grade_id}")

        rule = build_distribution_rule(
            grade_id=request.grade_id,
            name=request.name,
            raw_conditions=[c.model_dump() for c in request.conditions],
            logic_operator=request.logic_operator,
            exclusion_rules=request.exclusion_rules,
            priority=request.priority,
            is_active=request.is_active,
        )
        return RuleCreatedResponse(id=insert_distribution_rule(rule))

    except (NoValidConditionsError, InvalidConditionError, InvalidExclusionRuleError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create distribution rule: {str(e)}"
        )


@router.post(
    "/distribution-rules/test",
    summary="Test Distribution Rules",
    description="Evaluate a member, or ad-hoc test data, against every active distribution rule."
)
def test_distribution_rules(request: DistributionTestRequest):
    """
    **Example request:**
    ```json
    {"test_data": {"monthly_payment": 450000, "newbie_test_passed": true}}
    ```

    The response carries the fixed-tier eligibility, the overall result and one
    result per grade (grades without rules fall back to the fixed tiers).
    """
    try:
        test_data = request.test_data.model_dump() if request.test_data else None
        result = run_distribution_test(
            member_id=request.member_id,
            test_data=test_data,
            grade_id=request.grade_id,
        )
        return result.to_dict()

    except MissingTestSubjectError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MemberNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to test distribution rules: {str(e)}"
        )
