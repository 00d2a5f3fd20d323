from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from underwriter.core.permissions import UserRole
from underwriter.models.user import User
from underwriter.schemas.audit import AuditAction
from underwriter.services.audit import record_audit_log


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def update_user_role(
    db: AsyncSession,
    user: User,
    role: UserRole | str,
    *,
    actor: User,
) -> User:
    """Change a user's role and record who did it. Flushes, the caller commits."""
    new_role = UserRole(role).value
    previous_role = user.role
    user.role = new_role
    db.add(user)
    record_audit_log(
        db,
        action=AuditAction.USER_ROLE_UPDATED,
        user_id=actor.id,
        details={
            "target_user_id": user.id,
            "previous_role": previous_role,
            "new_role": new_role,
        },
    )
    await db.flush()
    return user
