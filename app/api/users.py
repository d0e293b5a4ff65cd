"""
app/api/users.py

Purpose: Account endpoints for the storefront

- Register, login, logout
- Forgot/reset password
- Current user's profile and password
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_current_user,
    get_email_service,
    get_image_service,
    get_user_repository,
)
from app.core.config import Settings, get_settings
from app.db.user_repository import UserRepository
from app.models.user import UserPublic
from app.schemas.response import MessageResponse, UserResponse
from app.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
    UpdateProfileRequest,
)
from app.services import user_service
from app.services.email_service import EmailService
from app.services.image_service import ImageService
from app.services.session_service import logout_response, session_response
from utils.constants import PROFILE_UPDATED_MESSAGE, RESET_EMAIL_SENT_MESSAGE

router = APIRouter()


def user_body(user: Dict[str, Any]) -> Dict[str, Any]:
    return UserResponse(user=UserPublic.from_document(user)).model_dump(mode="json", by_alias=True)


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
    images: ImageService = Depends(get_image_service),
):
    """
    Creates an account with an uploaded avatar and signs the user in.
    """
    user = await user_service.register_user(payload, users, images, settings)
    return session_response(user, 201, settings)


@router.post("/login")
async def login(
    payload: LoginRequest,
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
):
    user = await user_service.authenticate(payload.email, payload.password, users, settings)
    return session_response(user, 200, settings)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(settings: Settings = Depends(get_settings)):
    """
    Expires the session cookie. There is no server-side session to revoke.
    """
    return logout_response(settings)


@router.post("/password/forgot")
async def forgot_password(
    payload: ForgotPasswordRequest,
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
    mailer: EmailService = Depends(get_email_service),
):
    email = await user_service.forgot_password(payload.email, users, mailer, settings)
    return MessageResponse(message=RESET_EMAIL_SENT_MESSAGE.format(email=email)).model_dump()


@router.put("/password/reset/{token}")
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
):
    user = await user_service.reset_password(token, payload, users, settings)
    return session_response(user, 200, settings)


@router.get("/me")
async def get_user_details(
    current_user: Dict[str, Any] = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
):
    user = await user_service.get_user_details(current_user["_id"], users)
    return user_body(user)


@router.put("/password/update")
async def update_password(
    payload: UpdatePasswordRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
):
    user = await user_service.update_password(current_user["_id"], payload, users, settings)
    return session_response(user, 200, settings)


@router.put("/me/update")
async def update_profile(
    payload: UpdateProfileRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    images: ImageService = Depends(get_image_service),
):
    await user_service.update_profile(current_user["_id"], payload, users, images)
    return MessageResponse(message=PROFILE_UPDATED_MESSAGE).model_dump()
