"""
Authentication Dependencies for FastAPI Routes

The identity provider signs session tokens with a shared HS256 secret
(AUTH_JWT_SECRET). Routes only need the user id from the `sub` claim.
"""
from fastapi import Header, HTTPException, status
from typing import Optional
import logging
import jwt

from config import Config

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


def decode_user_id(token: str, secret: Optional[str] = None) -> str:
    """
    Verify an HS256 token and return its subject.

    Raises:
        jwt.InvalidTokenError: bad signature, expired, malformed or missing sub
    """
    payload = jwt.decode(
        token,
        secret if secret is not None else Config.AUTH_JWT_SECRET,
        algorithms=["HS256"],
        options={"verify_exp": True, "verify_aud": False}
    )
    user_id = payload.get("sub")
    if not user_id:
        raise jwt.InvalidTokenError("missing sub claim")
    return str(user_id)


async def get_current_user_id(
    authorization: Optional[str] = Header(None, description="Bearer session token")
) -> str:
    """
    Verify the bearer token and extract the user ID.

    The frontend sends: Authorization: Bearer <jwt>

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED)

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED)

    try:
        return decode_user_id(parts[1])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED)
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED)
