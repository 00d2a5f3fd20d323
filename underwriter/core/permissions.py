from enum import Enum


class UserRole(str, Enum):
    BORROWER = "borrower"
    LOAN_OFFICER = "loan_officer"
    COMPLIANCE_AUDITOR = "compliance_auditor"
    ADMIN = "admin"

    @classmethod
    def list_all(cls) -> list[str]:
        return [role.value for role in cls]


# Roles allowed to see every application rather than only their own.
REVIEWER_ROLES = (UserRole.LOAN_OFFICER, UserRole.COMPLIANCE_AUDITOR, UserRole.ADMIN)
AUDIT_ROLES = (UserRole.COMPLIANCE_AUDITOR, UserRole.ADMIN)
OVERRIDE_ROLES = (UserRole.LOAN_OFFICER,)
