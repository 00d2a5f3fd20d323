from pydantic import BaseModel

from underwriter.schemas.agent_state import AgentStateDTO


class AgentMetrics(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    avg_time_ms: int = 0


class DecisionStats(BaseModel):
    approved: int = 0
    rejected: int = 0
    escalated: int = 0
    processing: int = 0


class RiskTierStats(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class AgentAnalyticsResponse(BaseModel):
    agent_metrics: dict[str, AgentMetrics]
    decision_stats: DecisionStats
    risk_tier_stats: RiskTierStats
    recent_agent_states: list[AgentStateDTO]
