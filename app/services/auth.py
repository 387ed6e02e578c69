from datetime import datetime, timedelta
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import (
    DuplicateEmail, InvalidCredentials, NotVerified, InvalidToken,
    TokenExpired, UserNotFound, AlreadyVerified, OperationFailed,
)
from app.core.security import (
    get_password_hash, verify_password, pwd_context, create_access_token,
    generate_one_shot_token, tokens_match,
)
from app.models.base import utcnow, as_utc
from app.models.users import User, UserRole
from app.schemas.user import UserCreate, ProfileUpdate
from app.services import email as email_service
from app.services.common import commit_or_fail, execute_or_fail


class AuthService:
    """
    Account lifecycle: unregistered -> pending verification -> verified,
    with the reset sub-flow verified -> reset requested -> verified.
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    def issue_token(self, user: User) -> str:
        role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
        return create_access_token(self.settings, subject=user.sid, email=user.email, role=role)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await execute_or_fail(
            self.db, select(User).where(User.email == email.lower()), "Failed to fetch user"
        )
        return result.scalar_one_or_none()

    async def register(self, user_in: UserCreate) -> Tuple[User, str]:
        email = user_in.email.lower()
        if await self.get_by_email(email):
            raise DuplicateEmail()

        verification_token = generate_one_shot_token()
        user = User(
            sid=User.generate_sid(),
            email=email,
            password_hash=get_password_hash(user_in.password),
            full_name=user_in.full_name,
            phone=user_in.phone,
            address=user_in.address,
            role=UserRole.CUSTOMER,
            is_verified=False,
            verification_token=verification_token,
            verification_token_expires=utcnow() + timedelta(hours=self.settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # lost a race against a concurrent registration for the same email
            await self.db.rollback()
            raise DuplicateEmail()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Registration failed")
            raise OperationFailed("Failed to create user")
        await self.db.refresh(user)
        logger.info(f"Registered user {user.sid}")

        sent = await email_service.send_verification_email(
            self.settings, user.email, verification_token, user.full_name
        )
        if not sent:
            logger.warning(f"Verification email for user {user.sid} was not delivered")

        return user, self.issue_token(user)

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        user = await self.get_by_email(email)
        if user is None:
            # keep response time close to the wrong-password path
            pwd_context.dummy_verify()
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        if not user.is_verified:
            raise NotVerified()

        return user, self.issue_token(user)

    @staticmethod
    def _check_expiry(expires_at: Optional[datetime]) -> None:
        if expires_at is None or utcnow() > as_utc(expires_at):
            raise TokenExpired()

    async def verify_email(self, token: str) -> User:
        result = await execute_or_fail(
            self.db, select(User).where(User.verification_token == token), "Failed to verify email"
        )
        user = result.scalar_one_or_none()
        if user is None or not tokens_match(token, user.verification_token):
            raise InvalidToken("Invalid verification token")

        try:
            self._check_expiry(user.verification_token_expires)
        except TokenExpired:
            raise TokenExpired("Verification token has expired")

        user.is_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        await commit_or_fail(self.db, "Failed to verify email")
        await self.db.refresh(user)
        logger.info(f"User {user.sid} verified their email")
        return user

    async def resend_verification(self, email: str) -> None:
        user = await self.get_by_email(email)
        if user is None:
            raise UserNotFound()
        if user.is_verified:
            raise AlreadyVerified()

        verification_token = generate_one_shot_token()
        user.verification_token = verification_token
        user.verification_token_expires = utcnow() + timedelta(hours=self.settings.VERIFICATION_TOKEN_EXPIRE_HOURS)
        await commit_or_fail(self.db, "Failed to issue verification token")

        sent = await email_service.send_verification_email(
            self.settings, user.email, verification_token, user.full_name
        )
        if not sent:
            logger.warning(f"Verification email for user {user.sid} was not delivered")

    async def forgot_password(self, email: str) -> None:
        user = await self.get_by_email(email)
        if user is None:
            raise UserNotFound()

        reset_token = generate_one_shot_token()
        user.reset_token = reset_token
        user.reset_token_expires = utcnow() + timedelta(hours=self.settings.RESET_TOKEN_EXPIRE_HOURS)
        await commit_or_fail(self.db, "Failed to process password reset")

        sent = await email_service.send_password_reset_email(
            self.settings, user.email, reset_token, user.full_name
        )
        if not sent:
            logger.warning(f"Password reset email for user {user.sid} was not delivered")

    async def reset_password(self, token: str, new_password: str) -> None:
        result = await execute_or_fail(
            self.db, select(User).where(User.reset_token == token), "Failed to reset password"
        )
        user = result.scalar_one_or_none()
        if user is None or not tokens_match(token, user.reset_token):
            raise InvalidToken("Invalid reset token")

        try:
            self._check_expiry(user.reset_token_expires)
        except TokenExpired:
            raise TokenExpired("Reset token has expired")

        user.password_hash = get_password_hash(new_password)
        user.reset_token = None
        user.reset_token_expires = None
        await commit_or_fail(self.db, "Failed to reset password")
        logger.info(f"User {user.sid} reset their password")

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "address":
                continue
            setattr(user, field, value)
        await commit_or_fail(self.db, "Failed to update profile")
        await self.db.refresh(user)
        return user
