from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String

from underwriter.db.base import Base
from underwriter.models.types import new_id, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_application_created", "application_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    application_id = Column(String(36), ForeignKey("loan_applications.id"), nullable=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    agent_name = Column(String(100), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
