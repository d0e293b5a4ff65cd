"""
app/api/admin.py

Purpose: User management for administrators

- List, inspect, update and delete any account
- Every route requires an admin session
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_image_service, get_user_repository, require_admin
from app.api.users import user_body
from app.core.config import Settings, get_settings
from app.db.user_repository import UserRepository
from app.models.user import UserPublic
from app.schemas.response import MessageResponse, UserListResponse
from app.schemas.user import UpdateRoleRequest
from app.services import user_service
from app.services.image_service import ImageService
from utils.constants import ROLE_UPDATED_MESSAGE, USER_DELETED_MESSAGE

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/users")
async def get_all_users(users: UserRepository = Depends(get_user_repository)):
    documents = await user_service.list_users(users)
    return UserListResponse(
        users=[UserPublic.from_document(doc) for doc in documents]
    ).model_dump(mode="json", by_alias=True)


@router.get("/user/{user_id}")
async def get_single_user(user_id: str, users: UserRepository = Depends(get_user_repository)):
    user = await user_service.get_user(user_id, users)
    return user_body(user)


@router.put("/user/{user_id}")
async def update_user_role(
    user_id: str,
    payload: UpdateRoleRequest,
    users: UserRepository = Depends(get_user_repository),
):
    await user_service.update_user_role(user_id, payload, users)
    return MessageResponse(message=ROLE_UPDATED_MESSAGE).model_dump()


@router.delete("/user/{user_id}")
async def delete_user(
    user_id: str,
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
    images: ImageService = Depends(get_image_service),
):
    await user_service.delete_user(user_id, users, images, settings)
    return MessageResponse(message=USER_DELETED_MESSAGE).model_dump()
