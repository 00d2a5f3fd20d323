from datetime import datetime, timedelta, timezone

import pytest

from underwriter.models.agent_state import AgentState
from underwriter.services import agent_analytics


def test_summarize_counts_and_averages_completed_runs():
    metrics = agent_analytics.summarize_agent_metrics(
        [
            ("credit_scorer", "completed", 2),
            ("credit_scorer", "failed", 1),
            ("credit_scorer", "processing", 1),
            ("unknown_stage", "completed", 7),
        ],
        {"credit_scorer": 199.6},
    )
    assert set(metrics) == {
        "document_parser",
        "credit_scorer",
        "risk_assessor",
        "decision_explainer",
    }
    scorer = metrics["credit_scorer"]
    assert (scorer.total, scorer.completed, scorer.failed) == (4, 2, 1)
    assert scorer.avg_time_ms == 200
    assert metrics["document_parser"].total == 0
    assert metrics["document_parser"].avg_time_ms == 0


@pytest.mark.asyncio
async def test_agent_analytics_reports_pipeline_results(
    session_factory, make_application, orchestrator
):
    approved = await make_application()
    await make_application()
    await orchestrator.run(approved.id)

    async with session_factory() as session:
        report = await agent_analytics.get_agent_analytics(session)

    assert report.decision_stats.approved == 1
    assert report.decision_stats.processing == 1
    assert report.decision_stats.rejected == 0
    assert report.risk_tier_stats.low == 1
    assert report.risk_tier_stats.high == 0
    assert report.agent_metrics["decision_explainer"].completed == 1
    assert len(report.recent_agent_states) == 4
    assert report.recent_agent_states[0].agent_name.value == "decision_explainer"


@pytest.mark.asyncio
async def test_agent_analytics_aggregates_in_database(session_factory, make_application):
    application = await make_application()
    started = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = [("completed", 100), ("completed", 300), ("failed", 5000), ("processing", None)]
    rows += [("completed", 200)] * 8
    async with session_factory() as session:
        for index, (status, duration_ms) in enumerate(rows):
            session.add(
                AgentState(
                    application_id=application.id,
                    agent_name="credit_scorer",
                    agent_status=status,
                    started_at=started,
                    completed_at=(
                        started + timedelta(milliseconds=duration_ms)
                        if duration_ms is not None
                        else None
                    ),
                    created_at=started + timedelta(seconds=index),
                )
            )
        await session.commit()

        report = await agent_analytics.get_agent_analytics(session)

    scorer = report.agent_metrics["credit_scorer"]
    assert (scorer.total, scorer.completed, scorer.failed) == (12, 10, 1)
    assert scorer.avg_time_ms == 200
    assert report.agent_metrics["risk_assessor"].total == 0
    assert len(report.recent_agent_states) == agent_analytics.RECENT_STATES_LIMIT
    assert report.recent_agent_states[-1].agent_status.value == "failed"
