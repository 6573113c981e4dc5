import secrets

from fastapi import Header, HTTPException, status

from giftpoints_api.core.settings import settings


async def require_internal_api_key(x_api_key: str = Header("", alias="X-API-Key")) -> None:
    """Guard operator routes; open when no internal key is configured."""

    expected = settings.internal_api_key
    if not expected:
        return
    if not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
