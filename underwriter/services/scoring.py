"""Deterministic credit scoring and debt-to-income calculations.

All money values are handled as ``Decimal``. The same helpers back both the
underwriting pipeline and the borrower-facing loan simulator so the two can
never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

BASE_SCORE = 650
MIN_SCORE = 300
MAX_SCORE = 850

LOAN_PAYMENT_FACTOR = Decimal("0.008")
MONTHS_PER_YEAR = Decimal("12")
DTI_PLACES = Decimal("0.001")
# Stand-in ratio when monthly income is zero or negative.
MAX_DTI = Decimal("Infinity")

INCOME_TIERS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("100000"), 100),
    (Decimal("75000"), 70),
    (Decimal("50000"), 40),
)

EMPLOYMENT_DURATION_BONUS: dict[str, int] = {
    "0-1y": 0,
    "1-2y": 20,
    "2-3y": 40,
    "3-5y": 60,
    "5+y": 80,
}

EMPLOYMENT_STATUS_BONUS: dict[str, int] = {
    "full_time": 30,
    "self_employed": 15,
}


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _enum_value(value) -> str:
    return str(getattr(value, "value", value))


def estimate_loan_payment(loan_amount) -> Decimal:
    """Monthly payment proxy for a requested loan."""
    return _as_decimal(loan_amount) * LOAN_PAYMENT_FACTOR


def monthly_income(annual_income) -> Decimal:
    return _as_decimal(annual_income) / MONTHS_PER_YEAR


def debt_to_income(annual_income, monthly_debt, loan_amount) -> Decimal:
    income = monthly_income(annual_income)
    if income <= 0:
        return MAX_DTI
    total_monthly_debt = _as_decimal(monthly_debt) + estimate_loan_payment(loan_amount)
    return total_monthly_debt / income


def round_dti(dti: Decimal) -> Decimal:
    if not dti.is_finite():
        return dti
    return dti.quantize(DTI_PLACES, rounding=ROUND_HALF_UP)


def income_bonus(annual_income) -> int:
    income = _as_decimal(annual_income)
    for threshold, bonus in INCOME_TIERS:
        if income > threshold:
            return bonus
    return 0


def dti_adjustment(dti: Decimal) -> int:
    if dti < Decimal("0.2"):
        return 50
    if dti < Decimal("0.35"):
        return 20
    if dti > Decimal("0.5"):
        return -50
    return 0


def clamp_score(score: int) -> int:
    return min(MAX_SCORE, max(MIN_SCORE, int(round(score))))


@dataclass(frozen=True)
class CreditScoreResult:
    credit_score: int
    dti_ratio: Decimal
    raw_dti_ratio: Decimal
    estimated_loan_payment: Decimal
    total_monthly_debt: Decimal
    factors: dict[str, int] = field(default_factory=dict)

    def as_output(self) -> dict[str, Any]:
        return {
            "credit_score": self.credit_score,
            "dti_ratio": str(self.dti_ratio),
            "estimated_loan_payment": str(self.estimated_loan_payment),
            "total_monthly_debt": str(self.total_monthly_debt),
            "factors": dict(self.factors),
        }


def calculate_credit_score(
    *,
    annual_income,
    monthly_debt,
    loan_amount,
    employment_duration,
    employment_status,
) -> CreditScoreResult:
    income = _as_decimal(annual_income)
    payment = estimate_loan_payment(loan_amount)
    dti = debt_to_income(income, monthly_debt, loan_amount)

    factors = {
        "base": BASE_SCORE,
        "income": income_bonus(income),
        "employment_duration": EMPLOYMENT_DURATION_BONUS.get(_enum_value(employment_duration), 0),
        "employment_status": EMPLOYMENT_STATUS_BONUS.get(_enum_value(employment_status), 0),
        "dti": dti_adjustment(dti),
    }
    return CreditScoreResult(
        credit_score=clamp_score(sum(factors.values())),
        dti_ratio=round_dti(dti),
        raw_dti_ratio=dti,
        estimated_loan_payment=payment,
        total_monthly_debt=_as_decimal(monthly_debt) + payment,
        factors=factors,
    )
