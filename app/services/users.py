from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import UserNotFound, UserHasOrders, CannotDeleteSelf
from app.models.orders import Order
from app.models.users import User
from app.schemas.user import AdminUserUpdate
from app.services.common import commit_or_fail, execute_or_fail


class UserService:
    """Administrative account management"""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_user(self, user_sid: str) -> User:
        result = await execute_or_fail(self.db, select(User).where(User.sid == user_sid), "Failed to fetch user")
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFound()
        return user

    async def update_user(self, user_sid: str, data: AdminUserUpdate) -> User:
        user = await self.get_user(user_sid)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "address":
                continue
            setattr(user, field, value)
        await commit_or_fail(self.db, "Failed to update user")
        await self.db.refresh(user)
        logger.info(f"User {user.sid} updated by admin")
        return user

    async def delete_user(self, acting_user: User, user_sid: str) -> None:
        if acting_user.sid == user_sid:
            raise CannotDeleteSelf()

        user = await self.get_user(user_sid)

        result = await execute_or_fail(
            self.db,
            select(Order.id).where(Order.user_sid == user.sid).limit(1),
            "Failed to delete user",
        )
        if result.first() is not None:
            raise UserHasOrders()

        await self.db.delete(user)
        await commit_or_fail(self.db, "Failed to delete user")
        logger.info(f"User {user_sid} deleted by admin {acting_user.sid}")
