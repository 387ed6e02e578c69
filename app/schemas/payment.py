# app/schemas/payment.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from app.models.orders import PaymentStatus, PaymentMethod
from app.schemas.order import OrderResponse


class PaymentIntentCreate(BaseModel):
    order_sid: str
    payment_method: PaymentMethod = PaymentMethod.CARD


class PaymentIntentResponse(BaseModel):
    client_secret: Optional[str]
    payment_sid: str


class PaymentConfirm(BaseModel):
    payment_intent_id: str


class PaymentConfirmResponse(BaseModel):
    status: str


class PaymentResponse(BaseModel):
    sid: str
    order_sid: str
    amount: float
    status: PaymentStatus
    payment_method: PaymentMethod
    stripe_payment_intent_id: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentWithOrderResponse(PaymentResponse):
    order: OrderResponse
