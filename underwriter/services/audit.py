from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.core.logging import get_audit_logger
from underwriter.models.audit_log import AuditLog
from underwriter.models.user import User
from underwriter.schemas.audit import AuditAction

audit_logger = get_audit_logger()


def serialize_for_audit(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={
            Decimal: lambda v: str(v),
            datetime: lambda v: v.isoformat(),
            date: lambda v: v.isoformat(),
        },
    )


def model_snapshot(model: Any, *, exclude: Iterable[str] | None = None) -> dict[str, Any]:
    if model is None:
        return {}
    excluded = set(exclude or [])
    data: dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.name in excluded:
            continue
        data[column.name] = getattr(model, column.key)
    return serialize_for_audit(data)


def record_audit_log(
    db: AsyncSession,
    *,
    action: AuditAction | str,
    application_id: str | None = None,
    user_id: str | None = None,
    agent_name: str | None = None,
    details: Any | None = None,
) -> AuditLog:
    """Append an audit entry to the session. The caller owns the commit."""
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    entry = AuditLog(
        application_id=application_id,
        user_id=user_id,
        action=action_value,
        agent_name=agent_name,
        details=serialize_for_audit(details) if details is not None else None,
    )
    db.add(entry)
    audit_logger.info(
        action_value,
        extra={
            "audit": {
                "application_id": application_id,
                "user_id": user_id,
                "agent_name": agent_name,
            }
        },
    )
    return entry


async def list_audit_logs(
    db: AsyncSession,
    *,
    application_id: str | None = None,
    user_id: str | None = None,
    actions: list[str] | None = None,
    agent_name: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[tuple[AuditLog, User | None]], int]:
    conditions = []
    if application_id:
        conditions.append(AuditLog.application_id == application_id)
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if actions:
        conditions.append(AuditLog.action.in_(actions))
    if agent_name:
        conditions.append(AuditLog.agent_name == agent_name)

    count_stmt = select(func.count()).select_from(AuditLog).where(*conditions)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = (
        select(AuditLog, User)
        .outerjoin(User, User.id == AuditLog.user_id)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    return [(row[0], row[1]) for row in rows], total
