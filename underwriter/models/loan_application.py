from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from underwriter.db.base import Base
from underwriter.models.types import new_id, utcnow


class LoanApplication(Base):
    __tablename__ = "loan_applications"
    __table_args__ = (
        CheckConstraint("annual_income >= 0", name="ck_loan_app_income_nonneg"),
        CheckConstraint("monthly_debt >= 0", name="ck_loan_app_debt_nonneg"),
        CheckConstraint("loan_amount >= 0", name="ck_loan_app_amount_nonneg"),
        CheckConstraint(
            "credit_score IS NULL OR (credit_score >= 300 AND credit_score <= 850)",
            name="ck_loan_app_credit_score_range",
        ),
        CheckConstraint(
            "status IN ('processing', 'approved', 'rejected', 'escalated')",
            name="ck_loan_app_status",
        ),
        CheckConstraint(
            "risk_tier IS NULL OR risk_tier IN ('low', 'medium', 'high')",
            name="ck_loan_app_risk_tier",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    full_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)

    employment_status = Column(String(50), nullable=False)
    employment_duration = Column(String(20), nullable=False)
    employer = Column(Text, nullable=False)
    job_title = Column(Text, nullable=False)

    annual_income = Column(Numeric(12, 2), nullable=False)
    monthly_debt = Column(Numeric(12, 2), nullable=False)
    loan_amount = Column(Numeric(12, 2), nullable=False)
    loan_purpose = Column(Text, nullable=False)

    credit_score = Column(Integer, nullable=True)
    status = Column(String(50), nullable=False, default="processing", index=True)
    risk_tier = Column(String(50), nullable=True)
    final_decision = Column(String(50), nullable=True)
    ai_explanation = Column(Text, nullable=True)

    overridden_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    override_reason = Column(Text, nullable=True)
    overridden_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    agent_states = relationship(
        "AgentState",
        back_populates="application",
        order_by="AgentState.created_at",
        lazy="noload",
    )
