from fastapi import APIRouter

from underwriter.api.v1.routers import (
    admin,
    audit_logs,
    borrower_tools,
    health,
    loan_applications,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(loan_applications.router)
api_router.include_router(audit_logs.router)
api_router.include_router(admin.router)
api_router.include_router(borrower_tools.router)

__all__ = ["api_router"]
