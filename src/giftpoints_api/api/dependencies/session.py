"""Member identity resolved from the gateway's forwarded session header."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.db.session import get_session
from giftpoints_api.models.user import User


def _parse_user_id(raw: str | None) -> UUID:
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing session user context")
    try:
        return UUID(raw)
    except ValueError as error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid session user identifier",
        ) from error


async def require_member_session(
    session_user: str | None = Header(None, alias="X-Session-User"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Load the calling member; authentication itself happens upstream."""

    user = await db.get(User, _parse_user_id(session_user))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session user not found")
    return user
