"""
app/services/session_service.py

Purpose: Session issuance

- Signs a session token for a user
- Sets/clears the HTTP-only session cookie
- Shapes the {"success", "user", "token"} body
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi.responses import JSONResponse

from app.core.config import Settings
from app.core.logging import get_logger
from app.core.security import create_session_token
from app.models.user import UserPublic
from app.schemas.response import AuthResponse, MessageResponse
from utils.constants import LOGGED_OUT_MESSAGE

logger = get_logger(__name__)


def set_session_cookie(response: JSONResponse, token: str, settings: Settings) -> None:
    max_age = settings.COOKIE_EXPIRE_DAYS * 24 * 60 * 60
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        max_age=max_age,
        expires=datetime.now(timezone.utc) + timedelta(seconds=max_age),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def session_response(user: Dict[str, Any], status_code: int, settings: Settings) -> JSONResponse:
    """
    Issues a session for `user` and returns the response carrying it.

    Args:
        user: User document (hidden fields already excluded)
        status_code: 201 on registration, 200 otherwise
        settings: Application settings

    Returns:
        JSONResponse with the token in the body and in the cookie
    """
    public = UserPublic.from_document(user)
    token = create_session_token(public.id, settings)

    body = AuthResponse(user=public, token=token)
    response = JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True)
    )
    set_session_cookie(response, token, settings)

    logger.debug("Session issued", extra={"user_id": public.id})
    return response


def logout_response(settings: Settings) -> JSONResponse:
    """
    Overwrites the session cookie with an empty, already-expired value.
    """
    response = JSONResponse(
        status_code=200,
        content=MessageResponse(message=LOGGED_OUT_MESSAGE).model_dump()
    )
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value="",
        max_age=0,
        expires=datetime.now(timezone.utc),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    return response
