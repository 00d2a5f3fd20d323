from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class AgentName(str, Enum):
    DOCUMENT_PARSER = "document_parser"
    CREDIT_SCORER = "credit_scorer"
    RISK_ASSESSOR = "risk_assessor"
    DECISION_EXPLAINER = "decision_explainer"


PIPELINE_ORDER: tuple[AgentName, ...] = (
    AgentName.DOCUMENT_PARSER,
    AgentName.CREDIT_SCORER,
    AgentName.RISK_ASSESSOR,
    AgentName.DECISION_EXPLAINER,
)


class AgentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentStateDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    agent_name: AgentName
    agent_status: AgentStatus
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
