"""Per-stage execution records for the underwriting pipeline.

Every transition commits immediately so that clients polling an
application's agent states see progress as soon as it happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.models.agent_state import AgentState
from underwriter.models.types import new_id, utcnow
from underwriter.schemas.agent_state import PIPELINE_ORDER, AgentName, AgentStatus
from underwriter.schemas.audit import AuditAction
from underwriter.services.audit import record_audit_log, serialize_for_audit


@dataclass(frozen=True)
class AgentStateTransitionError(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message


def error_detail(exc: BaseException) -> dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}


def _require_processing(state: AgentState) -> None:
    if state.agent_status != AgentStatus.PROCESSING.value:
        raise AgentStateTransitionError(
            "agent_state_not_processing",
            f"Agent state {state.id} is {state.agent_status}, expected processing",
        )


async def begin(
    db: AsyncSession,
    application_id: str,
    stage: AgentName,
    input: Any,
) -> AgentState:
    state = AgentState(
        id=new_id(),
        application_id=application_id,
        agent_name=stage.value,
        agent_status=AgentStatus.PENDING.value,
        input=serialize_for_audit(input),
    )
    db.add(state)
    state.agent_status = AgentStatus.PROCESSING.value
    state.started_at = utcnow()
    record_audit_log(
        db,
        action=AuditAction.AGENT_STARTED,
        application_id=application_id,
        agent_name=stage.value,
        details={"agent_state_id": state.id},
    )
    await db.commit()
    return state


async def complete(db: AsyncSession, state: AgentState, output: dict[str, Any]) -> AgentState:
    _require_processing(state)
    serialized = serialize_for_audit(output)
    state.agent_status = AgentStatus.COMPLETED.value
    state.output = serialized
    state.completed_at = utcnow()
    db.add(state)
    record_audit_log(
        db,
        action=AuditAction.AGENT_COMPLETED,
        application_id=state.application_id,
        agent_name=state.agent_name,
        details={"agent_state_id": state.id, "output": serialized},
    )
    await db.commit()
    return state


async def fail(db: AsyncSession, state: AgentState, exc: BaseException) -> AgentState:
    _require_processing(state)
    detail = error_detail(exc)
    state.agent_status = AgentStatus.FAILED.value
    state.error = detail
    state.completed_at = utcnow()
    db.add(state)
    record_audit_log(
        db,
        action=AuditAction.AGENT_FAILED,
        application_id=state.application_id,
        agent_name=state.agent_name,
        details={"agent_state_id": state.id, "error": detail},
    )
    await db.commit()
    return state


async def list_for_application(db: AsyncSession, application_id: str) -> list[AgentState]:
    pipeline_position = case(
        {stage.value: index for index, stage in enumerate(PIPELINE_ORDER)},
        value=AgentState.agent_name,
    )
    stmt = (
        select(AgentState)
        .where(AgentState.application_id == application_id)
        .order_by(AgentState.created_at.asc(), pipeline_position.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_all(db: AsyncSession, *, limit: int | None = None) -> list[AgentState]:
    stmt = select(AgentState).order_by(AgentState.created_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
