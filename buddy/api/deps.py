"""Common API dependencies: current user extraction, response envelopes."""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from buddy.database import get_session
from buddy.models.user import User
from buddy.utils.ids import is_valid_id
from buddy.utils.security import decode_token

# Missing credentials are reported as 401 below rather than FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the user behind the bearer access token."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.PyJWTError:
        raise _unauthorized("Invalid token")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    user_id = payload.get("sub")
    if not is_valid_id(user_id, "usr"):
        raise _unauthorized("Invalid token subject")

    user = session.get(User, user_id)
    if not user:
        raise _unauthorized("User not found")
    return user


def envelope(message: str, **data) -> dict:
    """Standard success response body."""
    body = {"success": True, "message": message}
    if data:
        body["data"] = data
    return body
