from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.dependencies import get_current_active_user
from app.db.session import get_db
from app.models.users import User
from app.schemas.user import (
    UserCreate, UserLogin, UserResponse, AuthResponse, MessageResponse,
    VerifyEmailRequest, EmailRequest, ResetPasswordRequest, ProfileUpdate,
)
from app.services.auth import AuthService

router = APIRouter()


def get_auth_service(
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_in: UserCreate,
        service: AuthService = Depends(get_auth_service),
):
    user, token = await service.register(user_in)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
        credentials: UserLogin,
        service: AuthService = Depends(get_auth_service),
):
    user, token = await service.login(credentials.email, credentials.password)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
        data: VerifyEmailRequest,
        service: AuthService = Depends(get_auth_service),
):
    await service.verify_email(data.token)
    return {"message": "Email verified successfully"}


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
        data: EmailRequest,
        service: AuthService = Depends(get_auth_service),
):
    await service.resend_verification(data.email)
    return {"message": "Verification email sent successfully"}


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
        data: EmailRequest,
        service: AuthService = Depends(get_auth_service),
):
    await service.forgot_password(data.email)
    return {"message": "Password reset email sent successfully"}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
        data: ResetPasswordRequest,
        service: AuthService = Depends(get_auth_service),
):
    await service.reset_password(data.token, data.new_password)
    return {"message": "Password reset successfully"}


@router.get("/profile", response_model=UserResponse)
async def get_profile(
        current_user: User = Depends(get_current_active_user),
):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
        data: ProfileUpdate,
        current_user: User = Depends(get_current_active_user),
        service: AuthService = Depends(get_auth_service),
):
    return await service.update_profile(current_user, data)
