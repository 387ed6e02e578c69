# app/schemas/order.py
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from app.models.orders import ServiceType, OrderStatus, PaymentStatus, PaymentMethod


class OrderCreate(BaseModel):
    service_type: ServiceType
    quantity: int = Field(..., gt=0)
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    scheduled_pickup: datetime
    scheduled_delivery: datetime
    special_instructions: Optional[str] = None

    @field_validator("pickup_address", "delivery_address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Address must not be empty")
        return v

    @model_validator(mode="after")
    def delivery_after_pickup(self):
        if self.scheduled_delivery < self.scheduled_pickup:
            raise ValueError("scheduled_delivery must not be before scheduled_pickup")
        return self


class OrderStatusUpdate(BaseModel):
    # checked against OrderStatus by OrderService, which raises InvalidStatus
    status: str


class OrderCustomer(BaseModel):
    sid: str
    email: str
    full_name: str
    phone: str

    class Config:
        from_attributes = True


class OrderPayment(BaseModel):
    sid: str
    amount: float
    status: PaymentStatus
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    sid: str
    user_sid: str
    service_type: ServiceType
    quantity: int
    total_amount: float
    status: OrderStatus
    pickup_address: str
    delivery_address: str
    scheduled_pickup: datetime
    scheduled_delivery: datetime
    special_instructions: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderDetailResponse(OrderResponse):
    user: OrderCustomer
    payments: List[OrderPayment] = []
