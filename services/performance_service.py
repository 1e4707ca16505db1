"""
Member performance aggregation and commission (CMP) calculation.

CMP = monthly_payment * insurer_commission_rate / adjustment_rate, rounded half-up to
whole won. Negative inputs or a non-positive adjustment rate yield 0.

Monthly performance is the sum of a member's performance detail rows for one
(year, month); eligibility reads the month before the reference month.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from domain.member import InsuranceProduct, MonthlyPerformance, PerformanceDetail
from domain.period import Period


@dataclass(frozen=True, slots=True)
class PerformanceSummary:
    total_monthly_payment: float
    total_commission: float
    contract_count: int
    average_commission_rate: float

    def to_monthly_performance(self, member_id: str, period: Period) -> MonthlyPerformance:
        return MonthlyPerformance(
            member_id=member_id,
            year=period.year,
            month=period.month,
            total_monthly_payment=self.total_monthly_payment,
            total_commission=self.total_commission,
            contract_count=self.contract_count,
        )


def _round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def calculate_commission(monthly_payment: float, insurer_commission_rate: float, adjustment_rate: float = 1.0) -> int:
    """
    >>> calculate_commission(1_000_000, 1.5, 1.05)
    1428571
    """

    if monthly_payment < 0 or insurer_commission_rate < 0 or adjustment_rate <= 0:
        return 0
    cmp = Decimal(str(monthly_payment)) * Decimal(str(insurer_commission_rate)) / Decimal(str(adjustment_rate))
    return int(_round_half_up(cmp))


def calculate_commission_with_product(monthly_payment: float, product: Optional[InsuranceProduct]) -> int:
    if product is None:
        return 0
    return calculate_commission(monthly_payment, product.insurer_commission_rate, product.adjustment_rate)


def effective_commission_rate(insurer_commission_rate: float, adjustment_rate: float) -> float:
    """Single CMP rate equivalent to the two product rates (1.5 / 1.05 -> 1.4286...)."""

    if adjustment_rate <= 0:
        return 0.0
    return insurer_commission_rate / adjustment_rate


def summarize_performance(details: Iterable[PerformanceDetail]) -> PerformanceSummary:
    """Totals over detail rows; the average commission rate is total commission / total payment, 4 decimals."""

    details = list(details)
    if not details:
        return PerformanceSummary(0, 0, 0, 0.0)

    total_payment = sum(d.monthly_payment or 0 for d in details)
    total_commission = sum(d.commission_amount or 0 for d in details)

    average_rate = 0.0
    if total_payment > 0:
        ratio = Decimal(str(total_commission)) / Decimal(str(total_payment))
        average_rate = float(_round_half_up(ratio, "0.0001"))

    return PerformanceSummary(
        total_monthly_payment=total_payment,
        total_commission=total_commission,
        contract_count=len(details),
        average_commission_rate=average_rate,
    )


def aggregate_monthly_performance(member_id: str, period: Period, details: Iterable[PerformanceDetail]) -> MonthlyPerformance:
    return summarize_performance(details).to_monthly_performance(member_id, period)


def format_commission_rate(rate: float) -> str:
    """1.5 -> "150%"."""

    return f"{_round_half_up(Decimal(str(rate)) * 100)}%"


__all__ = [
    "PerformanceSummary",
    "aggregate_monthly_performance",
    "calculate_commission",
    "calculate_commission_with_product",
    "effective_commission_rate",
    "format_commission_rate",
    "summarize_performance",
]
