import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.api import deps
from underwriter.core.permissions import OVERRIDE_ROLES, REVIEWER_ROLES
from underwriter.db.session import get_db
from underwriter.models.user import User
from underwriter.schemas.agent_state import AgentStateDTO
from underwriter.schemas.loan import (
    LoanApplicationCreate,
    LoanApplicationDTO,
    LoanApplicationListResponse,
    LoanApplicationStatus,
    OverrideRequest,
)
from underwriter.services import agent_states, loan_applications
from underwriter.services.pipeline_queue import PipelineQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["loan-applications"])

_REVIEWER_ROLE_VALUES = {role.value for role in REVIEWER_ROLES}


async def _get_application_or_404(db: AsyncSession, application_id: str):
    application = await loan_applications.get_application(db, application_id)
    if application is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Loan application not found"
        )
    return application


@router.post(
    "",
    response_model=LoanApplicationDTO,
    status_code=201,
    summary="Submit a loan application for underwriting",
)
async def submit_loan_application(
    payload: LoanApplicationCreate,
    current_user: User = Depends(deps.require_authenticated_user),
    pipeline_queue: PipelineQueue = Depends(deps.get_pipeline_queue),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.submit_application(db, payload, user=current_user)
    await db.commit()
    await pipeline_queue.enqueue(application.id)
    logger.info("Accepted application %s", application.id)
    return LoanApplicationDTO.model_validate(application)


@router.get(
    "/my-application",
    response_model=LoanApplicationDTO,
    summary="Get the caller's most recent application",
)
async def get_my_application(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.get_latest_for_user(db, current_user.id)
    if application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No application found")
    return LoanApplicationDTO.model_validate(application)


@router.get("", response_model=LoanApplicationListResponse, summary="List loan applications")
async def list_loan_applications(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    status_filter: list[LoanApplicationStatus] | None = Query(default=None, alias="status"),
    _: User = Depends(deps.require_roles(*REVIEWER_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationListResponse:
    items, total = await loan_applications.list_applications(
        db,
        limit=page_size,
        offset=(page - 1) * page_size,
        statuses=status_filter,
    )
    return LoanApplicationListResponse(
        items=[LoanApplicationDTO.model_validate(item) for item in items],
        total=total,
    )


@router.get(
    "/{application_id}",
    response_model=LoanApplicationDTO,
    summary="Get a loan application by id",
)
async def get_loan_application(
    application_id: str,
    _: User = Depends(deps.require_roles(*REVIEWER_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await _get_application_or_404(db, application_id)
    return LoanApplicationDTO.model_validate(application)


@router.get(
    "/{application_id}/agents",
    response_model=list[AgentStateDTO],
    summary="List pipeline stage records for an application",
)
async def list_application_agents(
    application_id: str,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> list[AgentStateDTO]:
    application = await _get_application_or_404(db, application_id)
    is_reviewer = current_user.role in _REVIEWER_ROLE_VALUES
    if not is_reviewer and application.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    states = await agent_states.list_for_application(db, application_id)
    items = [AgentStateDTO.model_validate(state) for state in states]
    if not is_reviewer:
        items = [item.model_copy(update={"error": None}) for item in items]
    return items


@router.post(
    "/{application_id}/override",
    response_model=LoanApplicationDTO,
    summary="Override the automated decision",
)
async def override_loan_decision(
    application_id: str,
    payload: OverrideRequest,
    current_user: User = Depends(deps.require_roles(*OVERRIDE_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await _get_application_or_404(db, application_id)
    try:
        application = await loan_applications.override_decision(
            db,
            application,
            new_decision=payload.new_decision,
            reason=payload.override_reason,
            actor=current_user,
        )
    except loan_applications.OverrideNotAllowedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": exc.code, "message": exc.message, "details": exc.details},
        ) from exc
    await db.commit()
    return LoanApplicationDTO.model_validate(application)
