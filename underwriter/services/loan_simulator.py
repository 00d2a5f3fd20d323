"""Borrower-side what-if tools.

Nothing here is persisted. The simulator shares the scoring and risk code
with the pipeline; the health score and tips are lighter form-completeness
heuristics shown while the borrower fills in an application.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from underwriter.schemas.borrower_tools import (
    HealthScoreFactor,
    HealthScoreRequest,
    HealthScoreResult,
    LoanSimulationRequest,
    LoanSimulationResult,
    PersonalizedTip,
    PersonalizedTipsRequest,
    TipCategory,
    TipImpact,
)
from underwriter.schemas.loan import EmploymentDuration, EmploymentStatus, RiskTier
from underwriter.services.risk import classify_risk
from underwriter.services.scoring import MONTHS_PER_YEAR, calculate_credit_score

SIMULATION_TERM_MONTHS = 60

APPROVAL_CHANCE = {
    RiskTier.LOW: 92,
    RiskTier.MEDIUM: 65,
    RiskTier.HIGH: 18,
}

RECOMMENDATIONS = {
    RiskTier.LOW: "Excellent profile! Very high approval probability.",
    RiskTier.MEDIUM: "Good profile. Application will be reviewed by a loan officer.",
    RiskTier.HIGH: "Consider improving your credit score and reducing debt before applying.",
}

ANNUAL_RATE = {
    RiskTier.LOW: Decimal("0.08"),
    RiskTier.MEDIUM: Decimal("0.12"),
    RiskTier.HIGH: Decimal("0.16"),
}

HEALTH_MAX_SCORE = 100

REQUIRED_DOCUMENTS = (
    "3 months of payslips",
    "6 months of bank statements",
    "Government-issued ID",
    "Address proof",
    "Employment verification letter",
)


def _whole(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _dollars(value: Decimal) -> str:
    return f"${_whole(value):,}"


def monthly_installment(loan_amount: Decimal, annual_rate: Decimal, months: int) -> Decimal:
    """Standard amortised payment for a fixed-rate loan."""
    rate = annual_rate / MONTHS_PER_YEAR
    growth = (1 + rate) ** months
    return loan_amount * rate * growth / (growth - 1)


def simulate_loan(request: LoanSimulationRequest) -> LoanSimulationResult:
    credit = calculate_credit_score(
        annual_income=request.annual_income,
        monthly_debt=request.monthly_debt,
        loan_amount=request.loan_amount,
        employment_duration=request.employment_duration,
        employment_status=request.employment_status,
    )
    risk = classify_risk(credit.credit_score, credit.dti_ratio)
    tier = risk.risk_tier
    emi = monthly_installment(request.loan_amount, ANNUAL_RATE[tier], SIMULATION_TERM_MONTHS)
    return LoanSimulationResult(
        approval_chance=APPROVAL_CHANCE[tier],
        risk_tier=tier,
        estimated_emi=_whole(emi),
        credit_score=credit.credit_score,
        dti_ratio=credit.dti_ratio if credit.dti_ratio.is_finite() else None,
        recommendation=RECOMMENDATIONS[tier],
    )


def _personal_info_factor(request: HealthScoreRequest) -> HealthScoreFactor:
    for label, value in (
        ("Full Name", request.full_name),
        ("Email", request.email),
        ("Phone", request.phone),
    ):
        if not value:
            return HealthScoreFactor(
                category="Personal Information",
                impact=0,
                suggestion=f"Add {label} to gain 15 points",
            )
    return HealthScoreFactor(category="Personal Information", impact=15, suggestion="Complete")


def _employment_factor(request: HealthScoreRequest) -> HealthScoreFactor:
    if not (
        request.employment_status
        and request.employment_duration
        and request.employer
        and request.job_title
    ):
        return HealthScoreFactor(
            category="Employment",
            impact=0,
            suggestion="Complete employment details to gain up to 25 points",
        )
    full_time = request.employment_status == EmploymentStatus.FULL_TIME.value
    impact = 15
    if full_time:
        impact += 5
    if request.employment_duration == EmploymentDuration.FIVE_PLUS_YEARS.value:
        impact += 5
    elif request.employment_duration == EmploymentDuration.THREE_TO_FIVE_YEARS.value:
        impact += 3
    return HealthScoreFactor(
        category="Employment",
        impact=impact,
        suggestion=(
            "Strong employment profile"
            if full_time
            else "Consider full-time employment for better score"
        ),
    )


def _financial_factor(request: HealthScoreRequest) -> HealthScoreFactor:
    if request.annual_income is None or request.monthly_debt is None:
        return HealthScoreFactor(
            category="Financial Health",
            impact=0,
            suggestion="Add income and debt information to gain up to 35 points",
        )
    income = request.annual_income
    income_per_month = income / MONTHS_PER_YEAR
    impact = 0
    suggestion = ""

    if income > 0:
        if income >= 100000:
            impact += 15
            suggestion = "Excellent income level"
        elif income >= 75000:
            impact += 12
            suggestion = "Increase income to $100k+ to gain 3 more points"
        elif income >= 50000:
            impact += 8
            suggestion = "Increase income to $75k+ to gain 7 more points"
        else:
            impact += 5
            suggestion = "Increase income to $75k+ to gain 10 more points"

    # Existing obligations only; the requested loan is not included here.
    dti = request.monthly_debt / income_per_month if income_per_month > 0 else None
    if dti is not None and dti < Decimal("0.2"):
        impact += 20
        suggestion += ". Excellent debt-to-income ratio"
    elif dti is not None and dti < Decimal("0.35"):
        impact += 15
        reduce_by = _dollars((dti - Decimal("0.2")) * income_per_month)
        suggestion += f". Reduce monthly debt by {reduce_by} to gain 5 points"
    elif dti is not None and dti < Decimal("0.5"):
        impact += 8
        reduce_by = _dollars((dti - Decimal("0.35")) * income_per_month)
        suggestion += f". Reduce monthly debt by {reduce_by} to gain 7 points"
    else:
        suggestion += ". High debt-to-income ratio - consider reducing monthly debt"

    return HealthScoreFactor(
        category="Financial Health", impact=impact, suggestion=suggestion.lstrip(". ")
    )


def _loan_amount_factor(request: HealthScoreRequest) -> HealthScoreFactor:
    if not request.loan_amount or request.annual_income is None:
        return HealthScoreFactor(
            category="Loan Amount",
            impact=0,
            suggestion="Add loan amount to gain up to 15 points",
        )
    income = request.annual_income
    ratio = request.loan_amount / income if income > 0 else None
    if ratio is not None and ratio < Decimal("0.3"):
        return HealthScoreFactor(
            category="Loan Amount",
            impact=15,
            suggestion="Loan amount is well within your income",
        )
    if ratio is not None and ratio < Decimal("0.5"):
        return HealthScoreFactor(
            category="Loan Amount",
            impact=10,
            suggestion=f"Reduce loan to {_dollars(income * Decimal('0.3'))} to gain 5 points",
        )
    if ratio is not None and ratio < Decimal("0.8"):
        return HealthScoreFactor(
            category="Loan Amount",
            impact=5,
            suggestion=f"Reduce loan to {_dollars(income * Decimal('0.5'))} to gain 10 points",
        )
    return HealthScoreFactor(
        category="Loan Amount",
        impact=0,
        suggestion=f"Reduce loan to {_dollars(income * Decimal('0.5'))} to improve score",
    )


def _purpose_factor(request: HealthScoreRequest) -> HealthScoreFactor:
    if request.loan_purpose:
        return HealthScoreFactor(category="Loan Purpose", impact=10, suggestion="Purpose specified")
    return HealthScoreFactor(
        category="Loan Purpose",
        impact=0,
        suggestion="Specify loan purpose to gain 10 points",
    )


def calculate_health_score(request: HealthScoreRequest) -> HealthScoreResult:
    factors = [
        _personal_info_factor(request),
        _employment_factor(request),
        _financial_factor(request),
        _loan_amount_factor(request),
        _purpose_factor(request),
    ]
    return HealthScoreResult(
        score=min(HEALTH_MAX_SCORE, sum(factor.impact for factor in factors)),
        max_score=HEALTH_MAX_SCORE,
        factors=factors,
        missing_documents=list(REQUIRED_DOCUMENTS),
    )


def personalized_tips(request: PersonalizedTipsRequest) -> list[PersonalizedTip]:
    income = request.annual_income or Decimal("0")
    debt = request.monthly_debt or Decimal("0")
    loan = request.loan_amount or Decimal("0")
    income_per_month = income / MONTHS_PER_YEAR
    tips: list[PersonalizedTip] = []

    if income < 75000:
        tips.append(
            PersonalizedTip(
                id="tip-income-1",
                category=TipCategory.INCOME,
                title="Increase Income Documentation",
                description=(
                    "Applicants with annual income above $75,000 have 23% higher approval "
                    "rates. Consider documenting additional income sources."
                ),
                impact=TipImpact.HIGH,
            )
        )

    if income_per_month > 0:
        dti = debt / income_per_month
        if dti > Decimal("0.35"):
            target = _dollars(income_per_month * Decimal("0.35"))
            tips.append(
                PersonalizedTip(
                    id="tip-debt-1",
                    category=TipCategory.DEBT,
                    title="Reduce Monthly Debt Obligations",
                    description=(
                        f"Your debt-to-income ratio is {dti * 100:.1f}%. Reducing monthly debt "
                        f"to {target} (35% DTI) improves approval odds by ~28%."
                    ),
                    impact=TipImpact.HIGH,
                )
            )

    if request.employment_duration == EmploymentDuration.LESS_THAN_ONE_YEAR.value:
        tips.append(
            PersonalizedTip(
                id="tip-employment-1",
                category=TipCategory.EMPLOYMENT,
                title="Wait for Employment Stability",
                description=(
                    "Applicants with 2+ years at current employer have 31% higher approval "
                    "rates. Consider waiting 12 months for better terms."
                ),
                impact=TipImpact.MEDIUM,
            )
        )

    if request.employment_status != EmploymentStatus.FULL_TIME.value:
        tips.append(
            PersonalizedTip(
                id="tip-employment-2",
                category=TipCategory.EMPLOYMENT,
                title="Full-Time Employment Advantage",
                description=(
                    "Full-time employees receive 15% better interest rates on average. "
                    "Consider transitioning to full-time if possible."
                ),
                impact=TipImpact.MEDIUM,
            )
        )

    tips.append(
        PersonalizedTip(
            id="tip-docs-1",
            category=TipCategory.DOCUMENTS,
            title="Link 6+ Months of Bank Statements",
            description=(
                "Applicants with your profile who provided 6+ months of salary credit "
                "history improved approval odds by 19%."
            ),
            impact=TipImpact.HIGH,
        )
    )
    tips.append(
        PersonalizedTip(
            id="tip-docs-2",
            category=TipCategory.DOCUMENTS,
            title="Provide Employment Verification",
            description=(
                "An official employment letter from HR increases approval probability by 12% "
                "and can reduce interest rates."
            ),
            impact=TipImpact.MEDIUM,
        )
    )

    if income > 0 and loan / income > Decimal("0.5"):
        tips.append(
            PersonalizedTip(
                id="tip-amount-1",
                category=TipCategory.GENERAL,
                title="Consider a Smaller Loan Amount",
                description=(
                    f"Reducing your loan request to {_dollars(income * Decimal('0.4'))} would "
                    "improve your approval chances by ~22% and reduce EMI burden."
                ),
                impact=TipImpact.HIGH,
            )
        )

    tips.append(
        PersonalizedTip(
            id="tip-general-1",
            category=TipCategory.GENERAL,
            title="Submit During Business Hours",
            description=(
                "Applications submitted Monday-Friday 9am-5pm are processed 40% faster due "
                "to immediate agent availability."
            ),
            impact=TipImpact.LOW,
        )
    )
    return tips
