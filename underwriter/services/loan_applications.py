from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.models.loan_application import LoanApplication
from underwriter.models.types import utcnow
from underwriter.models.user import User
from underwriter.schemas.audit import AuditAction
from underwriter.schemas.loan import (
    LoanApplicationCreate,
    LoanApplicationStatus,
    OverrideDecision,
)
from underwriter.services.audit import record_audit_log


@dataclass(frozen=True)
class OverrideNotAllowedError(ValueError):
    code: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


def _enum_value(value) -> str | None:
    if value is None:
        return None
    return value.value if hasattr(value, "value") else str(value)


async def submit_application(
    db: AsyncSession,
    payload: LoanApplicationCreate,
    *,
    user: User,
) -> LoanApplication:
    """Store a new application in ``processing`` status.

    Decision fields stay empty until the pipeline writes them. The caller
    commits before handing the id to the pipeline queue.
    """
    application = LoanApplication(
        user_id=user.id,
        full_name=payload.full_name,
        email=str(payload.email),
        phone=payload.phone,
        employment_status=_enum_value(payload.employment_status),
        employment_duration=_enum_value(payload.employment_duration),
        employer=payload.employer,
        job_title=payload.job_title,
        annual_income=payload.annual_income,
        monthly_debt=payload.monthly_debt,
        loan_amount=payload.loan_amount,
        loan_purpose=_enum_value(payload.loan_purpose),
        status=LoanApplicationStatus.PROCESSING.value,
    )
    db.add(application)
    await db.flush()
    record_audit_log(
        db,
        action=AuditAction.APPLICATION_SUBMITTED,
        application_id=application.id,
        user_id=user.id,
        details={
            "loan_amount": payload.loan_amount,
            "loan_purpose": _enum_value(payload.loan_purpose),
        },
    )
    return application


async def get_application(db: AsyncSession, application_id: str) -> LoanApplication | None:
    return await db.get(LoanApplication, application_id)


async def list_applications(
    db: AsyncSession,
    *,
    limit: int,
    offset: int,
    statuses: list[str] | None = None,
    user_id: str | None = None,
) -> tuple[list[LoanApplication], int]:
    conditions = []
    if statuses:
        conditions.append(LoanApplication.status.in_([_enum_value(s) for s in statuses]))
    if user_id is not None:
        conditions.append(LoanApplication.user_id == user_id)

    count_stmt = select(func.count()).select_from(LoanApplication).where(*conditions)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = (
        select(LoanApplication)
        .where(*conditions)
        .order_by(LoanApplication.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def get_latest_for_user(db: AsyncSession, user_id: str) -> LoanApplication | None:
    stmt = (
        select(LoanApplication)
        .where(LoanApplication.user_id == user_id)
        .order_by(LoanApplication.created_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def override_decision(
    db: AsyncSession,
    application: LoanApplication,
    *,
    new_decision: OverrideDecision | str,
    reason: str,
    actor: User,
) -> LoanApplication:
    """Replace the pipeline's decision with a human one.

    Only decided applications can be overridden; an application that is still
    processing raises ``OverrideNotAllowedError``. Flushes, the caller commits.
    """
    if application.status == LoanApplicationStatus.PROCESSING.value:
        raise OverrideNotAllowedError(
            code="application_processing",
            message="Application is still processing and cannot be overridden",
            details={"status": application.status},
        )

    decision = _enum_value(new_decision)
    previous_decision = application.final_decision
    reason = reason.strip()

    application.status = decision
    application.final_decision = decision
    application.overridden_by = actor.id
    application.override_reason = reason
    application.overridden_at = utcnow()
    db.add(application)
    record_audit_log(
        db,
        action=AuditAction.OVERRIDE_APPLIED,
        application_id=application.id,
        user_id=actor.id,
        details={
            "previous_decision": previous_decision,
            "new_decision": decision,
            "reason": reason,
        },
    )
    await db.flush()
    return application
