from underwriter.models.agent_state import AgentState
from underwriter.models.audit_log import AuditLog
from underwriter.models.loan_application import LoanApplication
from underwriter.models.user import User

__all__ = [
    "AgentState",
    "AuditLog",
    "LoanApplication",
    "User",
]
