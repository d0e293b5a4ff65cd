from pydantic import BaseModel
from typing import List, Literal

from app.models.user import UserPublic


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    success: Literal[False] = False
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class AuthResponse(BaseModel):
    """
    Body returned whenever a session is issued.
    """
    success: bool = True
    user: UserPublic
    token: str


class UserResponse(BaseModel):
    success: bool = True
    user: UserPublic


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserPublic]
