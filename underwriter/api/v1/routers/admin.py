from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.api import deps
from underwriter.core.permissions import UserRole
from underwriter.db.session import get_db
from underwriter.models.user import User
from underwriter.schemas.analytics import AgentAnalyticsResponse
from underwriter.schemas.users import UserDTO, UserRoleUpdate
from underwriter.services import agent_analytics, users

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserDTO], summary="List all users")
async def list_users(
    _: User = Depends(deps.require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> list[UserDTO]:
    return [UserDTO.model_validate(user) for user in await users.list_users(db)]


@router.patch("/users/{user_id}/role", response_model=UserDTO, summary="Change a user's role")
async def update_user_role(
    user_id: str,
    payload: UserRoleUpdate,
    current_user: User = Depends(deps.require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> UserDTO:
    user = await users.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user = await users.update_user_role(db, user, payload.role, actor=current_user)
    await db.commit()
    return UserDTO.model_validate(user)


@router.get(
    "/agent-analytics",
    response_model=AgentAnalyticsResponse,
    summary="Pipeline stage and decision statistics",
)
async def get_agent_analytics(
    _: User = Depends(deps.require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> AgentAnalyticsResponse:
    return await agent_analytics.get_agent_analytics(db)
