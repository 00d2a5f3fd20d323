from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditAction(str, Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    AGENT_STARTED = "agent_started"
    AGENT_COMPLETED = "agent_completed"
    AGENT_FAILED = "agent_failed"
    DECISION_MADE = "decision_made"
    PROCESSING_FAILED = "processing_failed"
    OVERRIDE_APPLIED = "override_applied"
    USER_ROLE_UPDATED = "user_role_updated"


class AuditActorSummary(BaseModel):
    user_id: str
    full_name: str | None = None
    email: str | None = None
    role: str | None = None


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str | None = None
    user_id: str | None = None
    action: str
    agent_name: str | None = None
    details: dict[str, Any] | list[Any] | None = None
    created_at: datetime
    actor: AuditActorSummary | None = None


class AuditLogListResponse(BaseModel):
    items: list[AuditLogEntry]
    total: int
