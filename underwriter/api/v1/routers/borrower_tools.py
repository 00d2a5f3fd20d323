from fastapi import APIRouter, Depends

from underwriter.api import deps
from underwriter.models.user import User
from underwriter.schemas.borrower_tools import (
    HealthScoreRequest,
    HealthScoreResult,
    LoanSimulationRequest,
    LoanSimulationResult,
    PersonalizedTip,
    PersonalizedTipsRequest,
)
from underwriter.services import loan_simulator

router = APIRouter(tags=["borrower-tools"])


@router.post("/health-score", response_model=HealthScoreResult, summary="Score a draft application")
async def health_score(
    payload: HealthScoreRequest,
    _: User = Depends(deps.require_authenticated_user),
) -> HealthScoreResult:
    return loan_simulator.calculate_health_score(payload)


@router.post(
    "/simulate-loan",
    response_model=LoanSimulationResult,
    summary="Estimate the outcome of a loan scenario",
)
async def simulate_loan(
    payload: LoanSimulationRequest,
    _: User = Depends(deps.require_authenticated_user),
) -> LoanSimulationResult:
    return loan_simulator.simulate_loan(payload)


@router.post(
    "/personalized-tips",
    response_model=list[PersonalizedTip],
    summary="Suggestions for improving an application",
)
async def personalized_tips(
    payload: PersonalizedTipsRequest,
    _: User = Depends(deps.require_authenticated_user),
) -> list[PersonalizedTip]:
    return loan_simulator.personalized_tips(payload)
