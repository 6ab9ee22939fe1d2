# backoffice/crud/user.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(func.lower(User.email) == normalize_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, full_name: Optional[str] = None) -> User:
    """
    Placeholder account for an invitee. Credentials are set upstream when the
    invitation is accepted; this service never stores passwords.
    """
    email = normalize_email(email)
    user = User(email=email, full_name=full_name or email.split("@")[0])
    db.add(user)
    await db.flush()
    return user
