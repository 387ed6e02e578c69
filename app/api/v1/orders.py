from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.config import Settings, get_settings
from app.core.dependencies import get_current_active_user, get_admin_user
from app.db.session import get_db
from app.models.users import User
from app.schemas.order import OrderCreate, OrderResponse, OrderDetailResponse, OrderStatusUpdate
from app.services.orders import OrderService

router = APIRouter()


def get_order_service(
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
) -> OrderService:
    return OrderService(db, settings)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
        order_in: OrderCreate,
        current_user: User = Depends(get_current_active_user),
        service: OrderService = Depends(get_order_service),
):
    return await service.create_order(current_user, order_in)


@router.get("/", response_model=List[OrderResponse])
async def list_orders(
        current_user: User = Depends(get_current_active_user),
        service: OrderService = Depends(get_order_service),
):
    return await service.list_orders(current_user)


@router.get("/{order_sid}", response_model=OrderDetailResponse)
async def get_order(
        order_sid: str,
        current_user: User = Depends(get_current_active_user),
        service: OrderService = Depends(get_order_service),
):
    return await service.get_order(current_user, order_sid)


@router.patch("/{order_sid}/status", response_model=OrderResponse)
async def update_order_status(
        order_sid: str,
        data: OrderStatusUpdate,
        admin: User = Depends(get_admin_user),
        service: OrderService = Depends(get_order_service),
):
    return await service.update_status(order_sid, data.status)
