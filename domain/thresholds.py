"""
Domain: eligibility thresholds for the fixed A/B/C/D distribution tiers.

Amounts are monthly insurance payments in won. Band contract, checked whenever
thresholds are saved:
- All amounts are >= 0.
- grade_b_min_payment < grade_b_max_payment.
- grade_b_max_payment == grade_a_min_payment (B's upper bound is A's lower bound, so
  the bands are contiguous and never overlap).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Mapping, Optional

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 200
FOOTER_MAX_LENGTH = 500


class InvalidThresholdBandError(ValueError):
    """Raised when thresholds would leave a gap or overlap between tiers."""


@dataclass(frozen=True, slots=True)
class GradeTierDescription:
    """Display copy for one tier on the eligibility criteria card."""

    title: str = ""
    description: str = ""
    note: str = ""

    @staticmethod
    def from_mapping(raw: Optional[Mapping[str, Any]], default: "GradeTierDescription") -> "GradeTierDescription":
        if not raw:
            return default
        return GradeTierDescription(
            title=str(raw.get("title", default.title) or ""),
            description=str(raw.get("description", default.description) or ""),
            note=str(raw.get("note", default.note) or ""),
        )


@dataclass(frozen=True, slots=True)
class EligibilityThresholds:
    grade_a_min_payment: float = 600000
    grade_b_min_payment: float = 200000
    grade_b_max_payment: float = 600000

    grade_a_description: GradeTierDescription = field(
        default_factory=lambda: GradeTierDescription(
            title="A등급 리드 자격",
            description="전월 보험 월납 ≥ 60만원",
            note="+ 신입 테스트 통과 필요",
        )
    )
    grade_b_description: GradeTierDescription = field(
        default_factory=lambda: GradeTierDescription(
            title="B등급 리드 자격",
            description="전월 보험 월납 ≥ 20만원 AND < 60만원",
            note="+ 신입 테스트 통과 필요",
        )
    )
    grade_c_description: GradeTierDescription = field(
        default_factory=lambda: GradeTierDescription(
            title="C등급 리드 자격",
            description="신입 테스트 통과자 (A, B등급 자격 미달)",
        )
    )
    grade_d_description: GradeTierDescription = field(
        default_factory=lambda: GradeTierDescription(
            title="D등급 리드 자격",
            description="신입 트레이니 (테스트 미통과)",
        )
    )
    footer_note: str = "* 배분 자격은 소프트 적용됩니다 (자격자/비자격자 표시만, 배분 차단 없음)"

    @staticmethod
    def from_mapping(raw: Optional[Mapping[str, Any]]) -> "EligibilityThresholds":
        """
        Build thresholds from a stored settings value, merging over the defaults.

        Does not validate; call `validate()` before saving.
        """

        defaults = EligibilityThresholds()
        if not raw:
            return defaults

        def amount(key: str) -> float:
            value = raw.get(key)
            return getattr(defaults, key) if value is None else float(value)

        return EligibilityThresholds(
            grade_a_min_payment=amount("grade_a_min_payment"),
            grade_b_min_payment=amount("grade_b_min_payment"),
            grade_b_max_payment=amount("grade_b_max_payment"),
            grade_a_description=GradeTierDescription.from_mapping(
                raw.get("grade_a_description"), defaults.grade_a_description
            ),
            grade_b_description=GradeTierDescription.from_mapping(
                raw.get("grade_b_description"), defaults.grade_b_description
            ),
            grade_c_description=GradeTierDescription.from_mapping(
                raw.get("grade_c_description"), defaults.grade_c_description
            ),
            grade_d_description=GradeTierDescription.from_mapping(
                raw.get("grade_d_description"), defaults.grade_d_description
            ),
            footer_note=str(raw.get("footer_note", defaults.footer_note) or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_amounts(self, *, a_min: float, b_min: float, b_max: float) -> "EligibilityThresholds":
        return replace(
            self,
            grade_a_min_payment=a_min,
            grade_b_min_payment=b_min,
            grade_b_max_payment=b_max,
        )

    def validate(self) -> "EligibilityThresholds":
        """
        Enforce the band contract and copy length limits.

        Returns self so callers can chain `EligibilityThresholds.from_mapping(x).validate()`.
        """

        for key in ("grade_a_min_payment", "grade_b_min_payment", "grade_b_max_payment"):
            if getattr(self, key) < 0:
                raise ValueError(f"{key} must be >= 0")

        if self.grade_b_min_payment >= self.grade_b_max_payment:
            raise InvalidThresholdBandError(
                "grade_b_min_payment must be lower than grade_b_max_payment "
                f"({self.grade_b_min_payment} >= {self.grade_b_max_payment})"
            )
        if self.grade_a_min_payment != self.grade_b_max_payment:
            raise InvalidThresholdBandError(
                "grade_a_min_payment must equal grade_b_max_payment "
                f"({self.grade_a_min_payment} != {self.grade_b_max_payment})"
            )

        for key in ("grade_a_description", "grade_b_description", "grade_c_description", "grade_d_description"):
            tier: GradeTierDescription = getattr(self, key)
            if len(tier.title) > TITLE_MAX_LENGTH:
                raise ValueError(f"{key}.title must be at most {TITLE_MAX_LENGTH} characters")
            if len(tier.description) > DESCRIPTION_MAX_LENGTH:
                raise ValueError(f"{key}.description must be at most {DESCRIPTION_MAX_LENGTH} characters")
            if len(tier.note) > DESCRIPTION_MAX_LENGTH:
                raise ValueError(f"{key}.note must be at most {DESCRIPTION_MAX_LENGTH} characters")
        if len(self.footer_note) > FOOTER_MAX_LENGTH:
            raise ValueError(f"footer_note must be at most {FOOTER_MAX_LENGTH} characters")

        return self


__all__ = [
    "EligibilityThresholds",
    "GradeTierDescription",
    "InvalidThresholdBandError",
]
