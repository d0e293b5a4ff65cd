"""
app/schemas/user.py

Purpose: Request body schemas for the account endpoints

- Field names follow the JSON the storefront sends (camelCase confirmations)
- Format checks only; cross-field rules live in the service layer
"""

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Optional

from app.core.security import BCRYPT_MAX_BYTES
from app.models.user import UserRole
from utils.validation_utils import (
    is_inline_image,
    is_valid_email,
    is_valid_name,
    normalize_email,
    sanitize_name,
)


def _check_email(value: str) -> str:
    if not is_valid_email(value):
        raise ValueError("Please Enter a valid Email")
    return normalize_email(value)


def _check_name(value: str) -> str:
    if not is_valid_name(value):
        raise ValueError("Name must be between 1 and 30 characters")
    return sanitize_name(value)


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes")
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email)]
DisplayName = Annotated[str, AfterValidator(_check_name)]
Password = Annotated[str, Field(min_length=1), AfterValidator(_check_password)]


class RegisterRequest(BaseModel):
    name: DisplayName
    email: EmailAddress
    password: Password
    avatar: str = Field(..., description="Inline image data (data:image/...;base64,...)")

    @field_validator("avatar")
    @classmethod
    def validate_avatar(cls, v: str) -> str:
        if not is_inline_image(v):
            raise ValueError("Avatar must be inline base64 image data")
        return v.strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "password": "s3cret-pass",
                "avatar": "data:image/png;base64,iVBORw0KGgo="
            }
        }
    )


class LoginRequest(BaseModel):
    """
    Both fields optional so a missing one reaches the handler's
    "Please Enter all the details" branch instead of a schema error.
    """
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: Password
    confirm_password: str = Field(..., alias="confirmPassword")


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(..., alias="oldPassword")
    new_password: Password = Field(..., alias="newPassword")
    confirm_password: str = Field(..., alias="confirmPassword")


class UpdateProfileRequest(BaseModel):
    name: DisplayName
    email: EmailAddress
    avatar: Optional[str] = None

    @field_validator("avatar")
    @classmethod
    def validate_avatar(cls, v: Optional[str]) -> Optional[str]:
        # Empty string means "keep the current avatar"
        if not v or not v.strip():
            return None
        if not is_inline_image(v):
            raise ValueError("Avatar must be inline base64 image data")
        return v.strip()


class UpdateRoleRequest(BaseModel):
    name: Optional[DisplayName] = None
    email: Optional[EmailAddress] = None
    role: Optional[UserRole] = None
