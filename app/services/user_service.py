"""
app/services/user_service.py

Purpose: User account operations

- Registration with hosted avatar
- Credential checks, password update and the emailed reset flow
- Profile and admin updates
- User retrieval and removal

Every function takes its collaborators explicitly; external calls within
one operation are awaited strictly in order.
"""

from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.exceptions import (
    AuthenticationError,
    DuplicateKeyError,
    EmailDeliveryError,
    ExternalServiceError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.core.security import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from app.db.user_repository import UserRepository
from app.models.user import new_user_document
from app.schemas.user import (
    RegisterRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UpdateRoleRequest,
)
from app.services.email_service import EmailService
from app.services.image_service import ImageService
from utils.constants import (
    INVALID_CREDENTIALS_MESSAGE,
    MISSING_CREDENTIALS_MESSAGE,
    OLD_PASSWORD_INCORRECT_MESSAGE,
    PASSWORD_MISMATCH_MESSAGE,
    RESET_EMAIL_TEMPLATE,
    RESET_TOKEN_INVALID_MESSAGE,
    USER_DOES_NOT_EXIST_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
)
from utils.time_utils import calculate_expiry, utcnow
from utils.validation_utils import normalize_email

logger = get_logger(__name__)

# Checked against when the email is unknown so both login failures cost the same
_dummy_password_hash: Optional[str] = None


async def _hash(password: str, settings: Settings) -> str:
    return await run_in_threadpool(hash_password, password, settings.BCRYPT_ROUNDS)


async def _verify(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(verify_password, password, password_hash)


async def _release_avatar(images: ImageService, public_id: str, reason: str) -> None:
    """Best-effort removal of a hosted image; failures are only logged."""
    try:
        await images.destroy(public_id)
    except ExternalServiceError as e:
        logger.warning(
            f"Could not release avatar ({reason}): {e.message}",
            extra={"public_id": public_id}
        )


async def register_user(
    payload: RegisterRequest,
    users: UserRepository,
    images: ImageService,
    settings: Settings,
) -> Dict[str, Any]:
    """
    Creates an account.

    The avatar is uploaded first; if the user cannot be stored afterwards
    the uploaded image is released before the error propagates.

    Returns:
        The created user document
    """
    with LogContext(email=payload.email, route="register"):
        avatar = await images.upload_avatar(payload.avatar)

        try:
            password_hash = await _hash(payload.password, settings)
            user = await users.create(
                new_user_document(
                    name=payload.name,
                    email=payload.email,
                    password_hash=password_hash,
                    avatar=avatar,
                )
            )
        except Exception:
            await _release_avatar(images, avatar.public_id, "registration failed")
            raise

        logger.info("New user registered", extra={"user_id": str(user["_id"])})
        return user


async def authenticate(
    email: Optional[str],
    password: Optional[str],
    users: UserRepository,
    settings: Settings,
) -> Dict[str, Any]:
    """
    Checks login credentials.

    Unknown email and wrong password raise the same error.

    Raises:
        ValidationError: Either field missing
        AuthenticationError: Credentials rejected
    """
    global _dummy_password_hash

    if not email or not password:
        raise ValidationError(MISSING_CREDENTIALS_MESSAGE)

    email = normalize_email(email)
    with LogContext(email=email, route="login"):
        user = await users.find_by_email(email, include_password=True)

        if not user:
            if _dummy_password_hash is None:
                _dummy_password_hash = await _hash("not-a-real-password", settings)
            await _verify(password, _dummy_password_hash)
            logger.info("Login rejected")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not await _verify(password, user.get("password", "")):
            logger.info("Login rejected", extra={"user_id": str(user["_id"])})
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        user.pop("password", None)
        return user


async def forgot_password(
    email: str,
    users: UserRepository,
    mailer: EmailService,
    settings: Settings,
) -> str:
    """
    Issues a reset token and emails the reset link.

    Only the token's hash is stored. If the email cannot be sent the
    pending token is cleared again.

    Returns:
        The address the link was sent to
    """
    email = normalize_email(email)
    with LogContext(email=email, route="forgot_password"):
        user = await users.find_by_email(email)
        if not user:
            raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

        token, token_hash = generate_reset_token()
        expires_at = calculate_expiry(utcnow(), settings.RESET_PASSWORD_TOKEN_TTL_MINUTES)
        await users.set_reset_token(user["_id"], token_hash, expires_at)

        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/password/reset/{token}"
        message = RESET_EMAIL_TEMPLATE.format(reset_url=reset_url)

        try:
            await mailer.send(user["email"], settings.RESET_EMAIL_SUBJECT, message)
        except Exception as e:
            await users.clear_reset_token(user["_id"])
            logger.error(
                "Reset email failed, pending token cleared",
                extra={"user_id": str(user["_id"])}
            )
            raise EmailDeliveryError(getattr(e, "message", None) or str(e)) from e

        logger.info("Password reset token issued", extra={"user_id": str(user["_id"])})
        return user["email"]


async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    users: UserRepository,
    settings: Settings,
) -> Dict[str, Any]:
    """
    Consumes a reset token and sets a new password.

    Raises:
        ValidationError: Token unknown/expired/already used, or the
            confirmation does not match
    """
    with LogContext(route="reset_password"):
        user = await users.find_by_reset_token(hash_reset_token(token), utcnow())
        if not user:
            raise ValidationError(RESET_TOKEN_INVALID_MESSAGE)

        if payload.password != payload.confirm_password:
            raise ValidationError(PASSWORD_MISMATCH_MESSAGE)

        password_hash = await _hash(payload.password, settings)
        await users.update_password(user["_id"], password_hash)

        logger.info("Password reset completed", extra={"user_id": str(user["_id"])})
        return user


async def get_user_details(user_id: Any, users: UserRepository) -> Dict[str, Any]:
    user = await users.find_by_id(user_id)
    if not user:
        raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)
    return user


async def update_password(
    user_id: Any,
    payload: UpdatePasswordRequest,
    users: UserRepository,
    settings: Settings,
) -> Dict[str, Any]:
    """
    Changes the caller's password after checking the current one.
    """
    with LogContext(user_id=str(user_id), route="update_password"):
        user = await users.find_by_id(user_id, include_password=True)
        if not user:
            raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

        if not await _verify(payload.old_password, user.get("password", "")):
            raise ValidationError(OLD_PASSWORD_INCORRECT_MESSAGE)

        if payload.new_password != payload.confirm_password:
            raise ValidationError(PASSWORD_MISMATCH_MESSAGE)

        password_hash = await _hash(payload.new_password, settings)
        await users.update_password(user["_id"], password_hash)

        logger.info("Password updated")
        user.pop("password", None)
        return user


async def update_profile(
    user_id: Any,
    payload: UpdateProfileRequest,
    users: UserRepository,
    images: ImageService,
) -> Dict[str, Any]:
    """
    Updates name and email, and replaces the avatar when a new one is sent.

    With a new avatar, an email owned by another account is rejected
    before any image work. The previous image is released before the new
    upload; a failed release does not stop the update. If the write still
    fails, the new upload is released before the error propagates.
    """
    with LogContext(user_id=str(user_id), route="update_profile"):
        fields: Dict[str, Any] = {"name": payload.name, "email": payload.email}
        avatar = None

        if payload.avatar:
            current = await users.find_by_id(user_id)
            if not current:
                raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

            owner = await users.find_by_email(payload.email)
            if owner and owner["_id"] != current["_id"]:
                raise DuplicateKeyError(field="email")

            previous = (current.get("avatar") or {}).get("public_id")
            if previous:
                await _release_avatar(images, previous, "avatar replaced")

            avatar = await images.upload_avatar(payload.avatar)
            fields["avatar"] = avatar.model_dump()

        try:
            user = await users.update_fields(user_id, fields)
            if not user:
                raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)
        except Exception:
            if avatar:
                await _release_avatar(images, avatar.public_id, "profile update failed")
            raise

        logger.info("Profile updated", extra={"avatar_changed": "avatar" in fields})
        return user


async def list_users(users: UserRepository) -> List[Dict[str, Any]]:
    # TODO: paginate once the admin UI sends skip/limit
    return await users.list_all()


async def get_user(user_id: str, users: UserRepository) -> Dict[str, Any]:
    user = await users.find_by_id(user_id)
    if not user:
        raise ResourceNotFoundError(USER_DOES_NOT_EXIST_MESSAGE.format(user_id=user_id))
    return user


async def update_user_role(
    user_id: str,
    payload: UpdateRoleRequest,
    users: UserRepository,
) -> Dict[str, Any]:
    """
    Admin update of name, email and role. Omitted fields are left as-is.
    """
    with LogContext(user_id=user_id, route="update_user_role"):
        fields = payload.model_dump(exclude_none=True, mode="json")

        if fields:
            user = await users.update_fields(user_id, fields)
        else:
            user = await users.find_by_id(user_id)

        if not user:
            raise ResourceNotFoundError(USER_DOES_NOT_EXIST_MESSAGE.format(user_id=user_id))

        logger.info(f"User updated by admin: {sorted(fields)}")
        return user


async def delete_user(
    user_id: str,
    users: UserRepository,
    images: ImageService,
    settings: Settings,
) -> None:
    """
    Removes a user. The hosted avatar is only released when
    RELEASE_AVATAR_ON_DELETE is enabled.
    """
    with LogContext(user_id=user_id, route="delete_user"):
        user = await users.find_by_id(user_id)
        if not user:
            raise ResourceNotFoundError(USER_DOES_NOT_EXIST_MESSAGE.format(user_id=user_id))

        public_id = (user.get("avatar") or {}).get("public_id")
        if public_id:
            if settings.RELEASE_AVATAR_ON_DELETE:
                await _release_avatar(images, public_id, "user deleted")
            else:
                logger.warning(
                    "Deleted user's avatar left on image host",
                    extra={"public_id": public_id}
                )

        await users.delete(user["_id"])
        logger.info("User deleted")
