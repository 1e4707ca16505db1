"""
Members API Endpoints.

Endpoints for recording member monthly performance.
"""

from fastapi import APIRouter, HTTPException

from api.models import PerformanceRecordRequest, PerformanceRecordResponse
from domain.member import PerformanceDetail
from domain.period import Period
from services.member_service import MemberNotFoundError, record_monthly_performance

router = APIRouter()


@router.put(
    "/members/{member_id}/performance",
    response_model=PerformanceRecordResponse,
    summary="Record Monthly Performance",
    description="Replace a member's contracts for one month and recompute the monthly totals."
)
def put_monthly_performance(member_id: str, request: PerformanceRecordRequest):
    """
    Contracts without `commission_amount` get CMP computed from their product:
    monthly_payment × insurer_commission_rate ÷ adjustment_rate, rounded to whole won.
    """
    try:
        details = [
            PerformanceDetail(
                monthly_payment=d.monthly_payment,
                commission_amount=d.commission_amount or 0,
                product_id=d.product_id,
                client_name=d.client_name,
                contract_date=d.contract_date,
                memo=d.memo,
            )
            for d in request.details
        ]
        performance_id, performance = record_monthly_performance(
            member_id,
            Period(request.year, request.month),
            details,
            notes=request.notes,
        )
        return PerformanceRecordResponse(
            id=performance_id,
            member_id=performance.member_id,
            year=performance.year,
            month=performance.month,
            total_monthly_payment=performance.total_monthly_payment,
            total_commission=performance.total_commission,
            contract_count=performance.contract_count,
        )

    except MemberNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to record performance: {str(e)}"
        )
