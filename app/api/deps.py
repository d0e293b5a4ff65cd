"""
app/api/deps.py

Purpose: FastAPI dependencies

- Repository and external service clients built from the app's Settings
- Session authentication (cookie or bearer token)
- Admin role check
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError, ForbiddenError
from app.core.security import decode_session_token
from app.db.mongo import get_users_collection
from app.db.user_repository import UserRepository
from app.models.user import UserRole
from app.services.email_service import EmailService
from app.services.image_service import ImageService
from utils.constants import LOGIN_REQUIRED_MESSAGE, ROLE_NOT_ALLOWED_MESSAGE


def get_user_repository() -> UserRepository:
    return UserRepository(get_users_collection())


def get_image_service(settings: Settings = Depends(get_settings)) -> ImageService:
    return ImageService(settings)


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)


def extract_session_token(request: Request, authorization: Optional[str], cookie_name: str) -> Optional[str]:
    """
    Resolves the session token from an "Authorization: Bearer <token>"
    header, falling back to the session cookie.
    """
    if authorization:
        scheme, _, value = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return request.cookies.get(cookie_name) or None


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
) -> Dict[str, Any]:
    """
    Loads the authenticated caller.

    Raises:
        AuthenticationError: No session token or its user no longer exists
        TokenInvalidError / TokenExpiredError: Token rejected
    """
    token = extract_session_token(request, authorization, settings.COOKIE_NAME)
    if not token:
        raise AuthenticationError(LOGIN_REQUIRED_MESSAGE)

    user_id = decode_session_token(token, settings)
    user = await users.find_by_id(user_id)
    if not user:
        raise AuthenticationError(LOGIN_REQUIRED_MESSAGE)

    request.state.user = user
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    role = user.get("role", UserRole.USER.value)
    if role != UserRole.ADMIN.value:
        raise ForbiddenError(ROLE_NOT_ALLOWED_MESSAGE.format(role=role))
    return user
