from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Iterable, Optional
from loguru import logger

from app.db.session import get_db
from app.db.redis import get_redis
from app.models.users import User, UserRole
from app.core.config import Settings, get_settings, settings as app_settings
from app.core.exceptions import Unauthenticated, Unverified, Forbidden, InvalidToken
from app.core.security import decode_access_token
from app.services.common import execute_or_fail
from app.services.payment_processor import PaymentProcessor, StripePaymentProcessor

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{app_settings.API_V1_STR}/auth/login",
    auto_error=False,
)


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        token: Optional[str] = Depends(oauth2_scheme),
        settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolves the bearer token to the user currently stored for it
    """
    if not token:
        raise Unauthenticated("Access denied. No token provided")

    try:
        claims = decode_access_token(settings, token)
    except InvalidToken:
        raise Unauthenticated()

    result = await execute_or_fail(
        db,
        select(User).where(User.sid == claims["sub"]),
        "Failed to authenticate user",
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise Unauthenticated()

    return user


async def get_current_active_user(
        current_user: User = Depends(get_current_user),
) -> User:
    """
    Verification state is always read from the store, never from the token
    """
    if not current_user.is_verified:
        raise Unverified()
    return current_user


def require_roles(roles: Iterable[UserRole]):
    """
    Builds a dependency that admits only users whose current role is in `roles`
    """
    allowed = frozenset(roles)

    async def role_checker(
            current_user: User = Depends(get_current_active_user),
    ) -> User:
        if current_user.role not in allowed:
            raise Forbidden()
        return current_user

    return role_checker


get_admin_user = require_roles([UserRole.ADMIN])


def get_payment_processor(
        settings: Settings = Depends(get_settings),
) -> PaymentProcessor:
    return StripePaymentProcessor(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )


def rate_limit_dependency(
        requests_limit: int = 100,
        time_window: int = 60
):
    """
    Fixed-window rate limit per client IP, backed by Redis
    """

    async def rate_limit(
            request: Request,
            redis: Optional[Redis] = Depends(get_redis)
    ):
        if redis is None:
            return

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate_limit:{client_ip}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, time_window)
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable: {str(e)}")
            return

        if count > requests_limit:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
            )

    return rate_limit
