import pytest
from sqlalchemy import select

from underwriter.models.audit_log import AuditLog
from underwriter.schemas.agent_state import AgentName, AgentStatus
from underwriter.services import agent_states


async def _actions(session_factory, application_id):
    async with session_factory() as session:
        result = await session.execute(
            select(AuditLog)
            .where(AuditLog.application_id == application_id)
            .order_by(AuditLog.created_at)
        )
        return [(entry.action, entry.agent_name) for entry in result.scalars().all()]


@pytest.mark.asyncio
async def test_begin_then_complete_records_timestamps_and_audit(
    session_factory, make_application
):
    application = await make_application()
    async with session_factory() as session:
        state = await agent_states.begin(
            session, application.id, AgentName.CREDIT_SCORER, {"extracted_data": {"income": "1"}}
        )
        assert state.agent_status == AgentStatus.PROCESSING.value
        assert state.started_at is not None
        assert state.completed_at is None

        state = await agent_states.complete(session, state, {"credit_score": 700})
        assert state.agent_status == AgentStatus.COMPLETED.value
        assert state.output == {"credit_score": 700}
        assert state.completed_at >= state.started_at

    assert await _actions(session_factory, application.id) == [
        ("agent_started", "credit_scorer"),
        ("agent_completed", "credit_scorer"),
    ]


@pytest.mark.asyncio
async def test_fail_records_error_detail(session_factory, make_application):
    application = await make_application()
    async with session_factory() as session:
        state = await agent_states.begin(session, application.id, AgentName.DOCUMENT_PARSER, {})
        state = await agent_states.fail(session, state, RuntimeError("boom"))
        assert state.agent_status == AgentStatus.FAILED.value
        assert state.error == {"type": "RuntimeError", "message": "boom"}
        assert state.output is None

    assert await _actions(session_factory, application.id) == [
        ("agent_started", "document_parser"),
        ("agent_failed", "document_parser"),
    ]


@pytest.mark.asyncio
async def test_terminal_states_cannot_transition_again(session_factory, make_application):
    application = await make_application()
    async with session_factory() as session:
        state = await agent_states.begin(session, application.id, AgentName.RISK_ASSESSOR, {})
        await agent_states.complete(session, state, {})
        with pytest.raises(agent_states.AgentStateTransitionError):
            await agent_states.complete(session, state, {})
        with pytest.raises(agent_states.AgentStateTransitionError):
            await agent_states.fail(session, state, RuntimeError("late"))


@pytest.mark.asyncio
async def test_list_for_application_follows_pipeline_order(session_factory, make_application):
    application = await make_application()
    other = await make_application()
    async with session_factory() as session:
        for stage in (AgentName.DOCUMENT_PARSER, AgentName.CREDIT_SCORER):
            state = await agent_states.begin(session, application.id, stage, {})
            await agent_states.complete(session, state, {})
        await agent_states.begin(session, other.id, AgentName.DOCUMENT_PARSER, {})

    async with session_factory() as session:
        states = await agent_states.list_for_application(session, application.id)
        assert [state.agent_name for state in states] == ["document_parser", "credit_scorer"]
        assert len(await agent_states.list_all(session)) == 3
        assert len(await agent_states.list_all(session, limit=1)) == 1
