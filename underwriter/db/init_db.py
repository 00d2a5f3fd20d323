import asyncio
import logging

from underwriter.core.permissions import UserRole
from underwriter.core.settings import settings
from underwriter.db.base import Base
from underwriter.db.session import AsyncSessionLocal, engine
from underwriter.models.user import User
from underwriter.services.users import get_user_by_email

logger = logging.getLogger(__name__)

DEMO_USERS = (
    ("borrower@demo.com", "Demo", "Borrower", UserRole.BORROWER),
    ("officer@demo.com", "Demo", "Officer", UserRole.LOAN_OFFICER),
    ("auditor@demo.com", "Demo", "Auditor", UserRole.COMPLIANCE_AUDITOR),
    ("admin@demo.com", "Demo", "Admin", UserRole.ADMIN),
)


async def create_tables() -> None:
    # Importing the models package registers every table on Base.metadata.
    import underwriter.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_demo_users(session_factory=AsyncSessionLocal) -> list[User]:
    """Create one user per role if missing. Returns the users that were created."""
    created: list[User] = []
    async with session_factory() as session:
        for email, first_name, last_name, role in DEMO_USERS:
            if await get_user_by_email(session, email) is not None:
                continue
            user = User(email=email, first_name=first_name, last_name=last_name, role=role.value)
            session.add(user)
            created.append(user)
        await session.commit()
    if created:
        logger.info("Seeded %d demo users", len(created))
    return created


async def init_db() -> None:
    await create_tables()
    if settings.seed_demo_users:
        await seed_demo_users()


if __name__ == "__main__":
    asyncio.run(init_db())
