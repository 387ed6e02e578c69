from dataclasses import dataclass, field
from typing import Dict, Optional, Any

import stripe
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from app.core.exceptions import OperationFailed, InvalidWebhook

INTENT_SUCCEEDED = "succeeded"


@dataclass
class ProcessorIntent:
    id: str
    status: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProcessorEvent:
    type: str
    intent: ProcessorIntent


class PaymentProcessor:
    """Calls issued to the external payment processor"""

    async def create_intent(
            self,
            amount_minor_units: int,
            currency: str,
            metadata: Dict[str, str],
            idempotency_key: Optional[str] = None,
    ) -> ProcessorIntent:
        raise NotImplementedError

    async def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        raise NotImplementedError

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> ProcessorEvent:
        raise NotImplementedError


def _field(obj: Any, name: str) -> Any:
    try:
        return obj[name]
    except (KeyError, TypeError):
        return getattr(obj, name, None)


def _to_intent(obj: Any) -> ProcessorIntent:
    metadata = _field(obj, "metadata") or {}
    return ProcessorIntent(
        id=_field(obj, "id"),
        status=_field(obj, "status"),
        client_secret=_field(obj, "client_secret"),
        metadata={k: str(v) for k, v in dict(metadata).items()},
    )


class StripePaymentProcessor(PaymentProcessor):
    """
    Stripe PaymentIntents. The SDK is blocking, so calls run in the threadpool.
    The API key is passed per request instead of being set on the module.
    """

    def __init__(self, api_key: Optional[str], webhook_secret: Optional[str] = None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    async def create_intent(
            self,
            amount_minor_units: int,
            currency: str,
            metadata: Dict[str, str],
            idempotency_key: Optional[str] = None,
    ) -> ProcessorIntent:
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.create,
                api_key=self.api_key,
                amount=amount_minor_units,
                currency=currency,
                payment_method_types=["card"],
                metadata=metadata,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe create intent failed: {e.user_message or type(e).__name__}")
            raise OperationFailed("Failed to create payment intent")
        return _to_intent(intent)

    async def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.retrieve,
                intent_id,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe retrieve intent {intent_id} failed: {e.user_message or type(e).__name__}")
            raise OperationFailed("Failed to retrieve payment intent")
        return _to_intent(intent)

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> ProcessorEvent:
        if not self.webhook_secret or not signature:
            raise InvalidWebhook()
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError):
            raise InvalidWebhook()
        return ProcessorEvent(type=_field(event, "type"), intent=_to_intent(_field(_field(event, "data"), "object")))


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))
