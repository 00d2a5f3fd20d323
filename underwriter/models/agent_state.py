from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from underwriter.db.base import Base
from underwriter.models.types import new_id, utcnow


class AgentState(Base):
    __tablename__ = "agent_states"
    __table_args__ = (
        CheckConstraint(
            "agent_name IN ('document_parser', 'credit_scorer', 'risk_assessor', 'decision_explainer')",
            name="ck_agent_state_name",
        ),
        CheckConstraint(
            "agent_status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_agent_state_status",
        ),
        Index("ix_agent_states_application_created", "application_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    application_id = Column(String(36), ForeignKey("loan_applications.id"), nullable=False)
    agent_name = Column(String(100), nullable=False)
    agent_status = Column(String(50), nullable=False, default="pending")
    input = Column(JSON, nullable=True)
    output = Column(JSON, nullable=True)
    error = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    application = relationship("LoanApplication", back_populates="agent_states")
