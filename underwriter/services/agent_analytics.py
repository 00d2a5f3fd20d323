from __future__ import annotations

from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.models.agent_state import AgentState
from underwriter.models.loan_application import LoanApplication
from underwriter.schemas.agent_state import PIPELINE_ORDER, AgentStateDTO, AgentStatus
from underwriter.schemas.analytics import (
    AgentAnalyticsResponse,
    AgentMetrics,
    DecisionStats,
    RiskTierStats,
)
from underwriter.services import agent_states

RECENT_STATES_LIMIT = 10
MS_PER_DAY = 86_400_000


def summarize_agent_metrics(
    status_counts: Iterable[tuple[str, str, int]],
    average_durations: dict[str, float],
) -> dict[str, AgentMetrics]:
    """Per-stage counts plus the mean wall time of completed runs, in milliseconds."""
    totals = {stage.value: {"total": 0, "completed": 0, "failed": 0} for stage in PIPELINE_ORDER}
    for name, status, count in status_counts:
        counts = totals.get(name)
        if counts is None:
            continue
        counts["total"] += count
        if status == AgentStatus.COMPLETED.value:
            counts["completed"] += count
        elif status == AgentStatus.FAILED.value:
            counts["failed"] += count

    return {
        name: AgentMetrics(avg_time_ms=round(average_durations.get(name, 0)), **counts)
        for name, counts in totals.items()
    }


def _duration_ms(dialect_name: str):
    if dialect_name == "sqlite":
        elapsed_days = func.julianday(AgentState.completed_at) - func.julianday(AgentState.started_at)
        return elapsed_days * MS_PER_DAY
    return func.extract("epoch", AgentState.completed_at - AgentState.started_at) * 1000


async def _stage_status_counts(db: AsyncSession) -> list[tuple[str, str, int]]:
    stmt = select(AgentState.agent_name, AgentState.agent_status, func.count()).group_by(
        AgentState.agent_name, AgentState.agent_status
    )
    result = await db.execute(stmt)
    return [(str(name), str(status), int(count)) for name, status, count in result.all()]


async def _average_durations(db: AsyncSession) -> dict[str, float]:
    duration = _duration_ms(db.get_bind().dialect.name)
    stmt = (
        select(AgentState.agent_name, func.avg(duration))
        .where(
            AgentState.agent_status == AgentStatus.COMPLETED.value,
            AgentState.started_at.is_not(None),
            AgentState.completed_at.is_not(None),
        )
        .group_by(AgentState.agent_name)
    )
    result = await db.execute(stmt)
    return {str(name): float(average) for name, average in result.all() if average is not None}


async def _grouped_counts(db: AsyncSession, column) -> dict[str, int]:
    stmt = select(column, func.count()).where(column.is_not(None)).group_by(column)
    result = await db.execute(stmt)
    return {str(key): int(count) for key, count in result.all()}


async def get_agent_analytics(db: AsyncSession) -> AgentAnalyticsResponse:
    metrics = summarize_agent_metrics(
        await _stage_status_counts(db), await _average_durations(db)
    )
    recent = await agent_states.list_all(db, limit=RECENT_STATES_LIMIT)
    decisions = await _grouped_counts(db, LoanApplication.status)
    tiers = await _grouped_counts(db, LoanApplication.risk_tier)
    return AgentAnalyticsResponse(
        agent_metrics=metrics,
        decision_stats=DecisionStats(
            **{key: decisions.get(key, 0) for key in DecisionStats.model_fields}
        ),
        risk_tier_stats=RiskTierStats(
            **{key: tiers.get(key, 0) for key in RiskTierStats.model_fields}
        ),
        recent_agent_states=[AgentStateDTO.model_validate(state) for state in recent],
    )
