"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
Bearer tokens are Firebase ID tokens; roles come from the users table.
"""

from typing import Callable, Optional

from fastapi import Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.exceptions.exceptions import Forbidden, Unauthorized
from shared.models.models import User, UserRole
from shared.utils.security import IdentityVerificationError, verify_id_token
from shared.utils.validators import normalize_email

security = HTTPBearer(auto_error=False)


class AuthorizedContext:
    def __init__(self, claims: dict):
        self.email: str = normalize_email(claims["email"])


def get_identity_verifier() -> Callable[[str], dict]:
    """Overridable in tests; returns the callable that turns a token into claims."""
    return verify_id_token


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: Callable[[str], dict] = Depends(get_identity_verifier),
) -> AuthorizedContext:
    """
    Extract and verify the ID token from the Authorization header.
    Missing token → 401. Rejected token or no email claim → 403.
    """
    if not credentials:
        raise Unauthorized()

    try:
        claims = await run_in_threadpool(verifier, credentials.credentials)
    except IdentityVerificationError:
        raise Forbidden()

    if not claims or not claims.get("email"):
        raise Forbidden()

    return AuthorizedContext(claims)


async def _get_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


class RoleRequired:
    """Dependency factory for role-based access control."""

    def __init__(self, *roles: UserRole):
        self.roles = roles

    async def __call__(
        self,
        ctx: AuthorizedContext = Depends(get_token_data),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        user = await _get_user_by_email(ctx.email, db)
        if not user or user.role not in self.roles:
            raise Forbidden()
        return user


# Convenience role dependencies
require_admin = RoleRequired(UserRole.ADMIN)
require_member = RoleRequired(UserRole.MEMBER)


async def ensure_self_or_admin(
    ctx: AuthorizedContext,
    email: str,
    db: AsyncSession,
) -> None:
    """Owner-scoped reads: the caller must be the owner or an admin."""
    if ctx.email == normalize_email(email):
        return
    user = await _get_user_by_email(ctx.email, db)
    if not user or user.role != UserRole.ADMIN:
        raise Forbidden()
