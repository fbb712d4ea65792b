"""
Identity resolution for the plans API.

Session issuance lives in the gateway in front of this service; by the time a
request arrives here the caller has been authenticated and the gateway
forwards the identity as X-User-Id / X-User-Name headers. Values are trusted
as already verified.
"""
from fastapi import Header, HTTPException
from typing import Optional
from urllib.parse import unquote
import logging

from planboard.models.user import CurrentUser

logger = logging.getLogger("planboard")


async def get_current_user(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id"),
    x_user_name: Optional[str] = Header(None, description="Authenticated user display name (URL-encoded)"),
) -> CurrentUser:
    """
    Extract the current user from request headers.

    Raises:
        HTTPException 401: Missing authentication
    """
    if x_user_id and x_user_id.strip():
        name = unquote(x_user_name) if x_user_name else None
        return CurrentUser(id=x_user_id.strip(), name=name)

    logger.debug("Rejected request without X-User-Id")
    raise HTTPException(
        status_code=401,
        detail="Missing X-User-Id header",
    )
