"""
services/member/membership.py
Membership grant. Only the booking approval transition calls this.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import User, UserRole

logger = logging.getLogger(__name__)


async def grant_membership(db: AsyncSession, user: User) -> datetime:
    """
    Promote the user to MEMBER and stamp the grant date.
    Re-granting an existing member re-stamps the date. The caller commits.
    """
    granted_at = datetime.now(timezone.utc)
    user.role = UserRole.MEMBER
    user.membership_granted_date = granted_at
    await db.flush()
    logger.info(f"Membership granted to {user.email}")
    return granted_at
