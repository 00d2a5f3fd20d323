from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.api import deps
from underwriter.core.permissions import AUDIT_ROLES
from underwriter.db.session import get_db
from underwriter.models.user import User
from underwriter.schemas.audit import AuditActorSummary, AuditLogEntry, AuditLogListResponse
from underwriter.services import audit

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("", response_model=AuditLogListResponse, summary="List audit log entries")
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    application_id: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    action: list[str] | None = Query(default=None),
    agent_name: str | None = Query(default=None),
    _: User = Depends(deps.require_roles(*AUDIT_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    rows, total = await audit.list_audit_logs(
        db,
        application_id=application_id,
        user_id=user_id,
        actions=action,
        agent_name=agent_name,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    items: list[AuditLogEntry] = []
    for audit_log, user in rows:
        actor = None
        if user is not None:
            actor = AuditActorSummary(
                user_id=user.id,
                full_name=user.full_name,
                email=user.email,
                role=user.role,
            )
        items.append(AuditLogEntry.model_validate(audit_log).model_copy(update={"actor": actor}))
    return AuditLogListResponse(items=items, total=total)
