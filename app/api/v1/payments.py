from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.config import Settings, get_settings
from app.core.dependencies import get_current_active_user, get_payment_processor
from app.db.session import get_db
from app.models.users import User
from app.schemas.payment import (
    PaymentIntentCreate, PaymentIntentResponse, PaymentConfirm,
    PaymentConfirmResponse, PaymentWithOrderResponse,
)
from app.services.payment_processor import PaymentProcessor
from app.services.payments import PaymentService

router = APIRouter()
# mounted without the rate limiter
webhook_router = APIRouter()


def get_payment_service(
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
        processor: PaymentProcessor = Depends(get_payment_processor),
) -> PaymentService:
    return PaymentService(db, settings, processor)


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
        data: PaymentIntentCreate,
        current_user: User = Depends(get_current_active_user),
        service: PaymentService = Depends(get_payment_service),
):
    payment, client_secret = await service.create_intent(current_user, data.order_sid, data.payment_method)
    return PaymentIntentResponse(client_secret=client_secret, payment_sid=payment.sid)


@router.post("/confirm", response_model=PaymentConfirmResponse)
async def confirm_payment(
        data: PaymentConfirm,
        current_user: User = Depends(get_current_active_user),
        service: PaymentService = Depends(get_payment_service),
):
    status = await service.confirm_payment(current_user, data.payment_intent_id)
    return {"status": status}


@webhook_router.post("/webhook")
async def payment_webhook(
        request: Request,
        stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
        service: PaymentService = Depends(get_payment_service),
):
    payload = await request.body()
    event_type = await service.handle_webhook(payload, stripe_signature)
    return {"received": True, "type": event_type}


@router.get("/", response_model=List[PaymentWithOrderResponse])
async def list_payments(
        current_user: User = Depends(get_current_active_user),
        service: PaymentService = Depends(get_payment_service),
):
    return await service.list_payments(current_user)
