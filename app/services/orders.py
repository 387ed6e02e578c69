from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import Settings
from app.core.exceptions import InvalidServiceType, InvalidStatus, NotFound
from app.models.orders import Order, OrderStatus, ServicePrice, ServiceType, ORDER_TRANSITIONS
from app.models.users import User, UserRole
from app.schemas.order import OrderCreate
from app.services.common import commit_or_fail, execute_or_fail


def is_allowed_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new == current or new in ORDER_TRANSITIONS[current]


class OrderService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_active_price(self, service_type: ServiceType) -> Optional[ServicePrice]:
        result = await execute_or_fail(
            self.db,
            select(ServicePrice)
            .where(
                ServicePrice.service_type == service_type,
                ServicePrice.is_active.is_(True),
            )
            .order_by(ServicePrice.created_at.desc())
            .limit(1),
            "Failed to fetch service price",
        )
        return result.scalar_one_or_none()

    async def create_order(self, user: User, order_in: OrderCreate) -> Order:
        price = await self.get_active_price(order_in.service_type)
        if price is None:
            raise InvalidServiceType()

        order = Order(
            sid=Order.generate_sid(),
            user_sid=user.sid,
            service_type=order_in.service_type,
            quantity=order_in.quantity,
            total_amount=order_in.quantity * price.price_per_unit,
            status=OrderStatus.PENDING,
            pickup_address=order_in.pickup_address,
            delivery_address=order_in.delivery_address,
            scheduled_pickup=order_in.scheduled_pickup,
            scheduled_delivery=order_in.scheduled_delivery,
            special_instructions=order_in.special_instructions,
        )
        self.db.add(order)
        await commit_or_fail(self.db, "Failed to create order")
        await self.db.refresh(order)
        logger.info(f"Order {order.sid} created by user {user.sid} for {order.total_amount}")
        return order

    async def list_orders(self, user: User) -> List[Order]:
        query = select(Order).order_by(Order.created_at.desc())
        if user.role != UserRole.ADMIN:
            query = query.where(Order.user_sid == user.sid)
        result = await execute_or_fail(self.db, query, "Failed to fetch orders")
        return list(result.scalars().all())

    async def get_order(self, user: User, order_sid: str) -> Order:
        """
        Customers only see their own orders; a foreign order is reported as missing.
        """
        query = (
            select(Order)
            .options(selectinload(Order.user), selectinload(Order.payments))
            .where(Order.sid == order_sid)
        )
        if user.role != UserRole.ADMIN:
            query = query.where(Order.user_sid == user.sid)

        result = await execute_or_fail(self.db, query, "Failed to fetch order")
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("Order not found")
        return order

    async def update_status(self, order_sid: str, new_status: str) -> Order:
        try:
            status = OrderStatus(new_status)
        except ValueError:
            raise InvalidStatus()

        result = await execute_or_fail(
            self.db, select(Order).where(Order.sid == order_sid), "Failed to update order status"
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("Order not found")

        if self.settings.STRICT_ORDER_TRANSITIONS and not is_allowed_transition(order.status, status):
            raise InvalidStatus(f"Cannot move order from {order.status.value} to {status.value}")

        previous = order.status
        order.status = status
        await commit_or_fail(self.db, "Failed to update order status")
        await self.db.refresh(order)
        logger.info(f"Order {order.sid} status {previous.value} -> {status.value}")
        return order
