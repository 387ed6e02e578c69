from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.dependencies import get_admin_user
from app.db.session import get_db
from app.models.users import User
from app.schemas.user import UserResponse, AdminUserUpdate, MessageResponse
from app.services.users import UserService

router = APIRouter()


def get_user_service(
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(db, settings)


@router.get("/{user_sid}", response_model=UserResponse)
async def get_user(
        user_sid: str,
        admin: User = Depends(get_admin_user),
        service: UserService = Depends(get_user_service),
):
    return await service.get_user(user_sid)


@router.put("/{user_sid}", response_model=UserResponse)
async def update_user(
        user_sid: str,
        data: AdminUserUpdate,
        admin: User = Depends(get_admin_user),
        service: UserService = Depends(get_user_service),
):
    return await service.update_user(user_sid, data)


@router.delete("/{user_sid}", response_model=MessageResponse)
async def delete_user(
        user_sid: str,
        admin: User = Depends(get_admin_user),
        service: UserService = Depends(get_user_service),
):
    await service.delete_user(admin, user_sid)
    return {"message": "User deleted successfully"}
