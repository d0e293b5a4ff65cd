"""
app/models/user.py

Purpose: User document model

- Email identity and display name
- Salted password hash (never serialized)
- Avatar reference to the image host
- Role and pending password-reset state
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Avatar(BaseModel):
    """Reference to an image stored on the image host."""
    public_id: str = Field(..., description="Image host identifier")
    url: str = Field(..., description="Secure delivery URL")


# Stored but never returned to clients
HIDDEN_FIELDS = ("password", "reset_password_token", "reset_password_expire")


class UserPublic(BaseModel):
    """
    Client-facing view of a user document.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    email: str
    avatar: Optional[Avatar] = None
    role: UserRole = UserRole.USER
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserPublic":
        data = {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}
        data["_id"] = str(doc["_id"])
        return cls.model_validate(data)


def new_user_document(
    name: str,
    email: str,
    password_hash: str,
    avatar: Optional[Avatar],
    role: UserRole = UserRole.USER,
) -> Dict[str, Any]:
    """
    Builds the document inserted on registration.
    """
    return {
        "name": name,
        "email": email,
        "password": password_hash,
        "avatar": avatar.model_dump() if avatar else None,
        "role": role.value,
        "created_at": datetime.utcnow(),
    }
