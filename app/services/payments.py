from datetime import timedelta
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import Settings
from app.core.exceptions import NotFound, OrderCancelled, OperationFailed
from app.models.base import utcnow, as_utc
from app.models.orders import Order, OrderStatus, Payment, PaymentStatus, PaymentMethod
from app.models.users import User, UserRole
from app.services.common import commit_or_fail, execute_or_fail
from app.services.payment_processor import (
    PaymentProcessor, ProcessorIntent, INTENT_SUCCEEDED, to_minor_units,
)

INTENT_CANCELED = "canceled"
EVENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_INTENT_FAILED = "payment_intent.payment_failed"


class PaymentService:
    def __init__(self, db: AsyncSession, settings: Settings, processor: PaymentProcessor):
        self.db = db
        self.settings = settings
        self.processor = processor

    async def _request_intent(self, payment: Payment, user_sid: str) -> ProcessorIntent:
        return await self.processor.create_intent(
            amount_minor_units=to_minor_units(payment.amount),
            currency=self.settings.PAYMENT_CURRENCY,
            metadata={
                "order_sid": payment.order_sid,
                "user_sid": user_sid,
                "payment_sid": payment.sid,
            },
            idempotency_key=payment.sid,
        )

    async def create_intent(
            self,
            user: User,
            order_sid: str,
            payment_method: PaymentMethod,
    ) -> Tuple[Payment, Optional[str]]:
        """
        The local payment row is committed before the processor is called and its sid is
        the idempotency key. If the request dies before the intent id is stored, reconciliation
        repeats the call with the same key and gets the same intent back. Each new request
        creates a new payment, so it always opens a new intent.
        """
        result = await execute_or_fail(
            self.db,
            select(Order).where(Order.sid == order_sid, Order.user_sid == user.sid),
            "Failed to fetch order",
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("Order not found")

        if order.status == OrderStatus.CANCELLED:
            raise OrderCancelled()

        payment = Payment(
            sid=Payment.generate_sid(),
            order_sid=order.sid,
            amount=order.total_amount,
            status=PaymentStatus.PENDING,
            payment_method=payment_method,
        )
        self.db.add(payment)
        await commit_or_fail(self.db, "Failed to create payment record")

        try:
            intent = await self._request_intent(payment, user.sid)
        except OperationFailed:
            payment.status = PaymentStatus.FAILED
            await commit_or_fail(self.db, "Failed to create payment record")
            raise

        payment.stripe_payment_intent_id = intent.id
        await commit_or_fail(self.db, "Failed to record payment intent")
        await self.db.refresh(payment)
        logger.info(f"Payment {payment.sid} for order {order.sid} awaiting intent {intent.id}")
        return payment, intent.client_secret

    async def _payment_for_intent(self, intent_id: str) -> Optional[Payment]:
        result = await execute_or_fail(
            self.db,
            select(Payment)
            .options(selectinload(Payment.order))
            .where(Payment.stripe_payment_intent_id == intent_id),
            "Failed to fetch payment",
        )
        return result.scalar_one_or_none()

    async def _apply_success(self, intent: ProcessorIntent) -> None:
        payment = await self._payment_for_intent(intent.id)
        if payment is None:
            logger.warning(f"Succeeded intent {intent.id} has no local payment")
            return

        payment.status = PaymentStatus.COMPLETED
        payment.transaction_id = intent.id

        order = payment.order
        if order.status == OrderStatus.PENDING:
            order.status = OrderStatus.CONFIRMED
        elif order.status != OrderStatus.CONFIRMED:
            logger.warning(f"Payment {payment.sid} completed while order {order.sid} is {order.status.value}")

        # payment and order change in one transaction
        await commit_or_fail(self.db, "Failed to confirm payment")
        logger.info(f"Payment {payment.sid} completed, order {order.sid} is {order.status.value}")

    async def _apply_failure(self, intent: ProcessorIntent) -> None:
        payment = await self._payment_for_intent(intent.id)
        if payment is None or payment.status != PaymentStatus.PENDING:
            return
        payment.status = PaymentStatus.FAILED
        await commit_or_fail(self.db, "Failed to update payment")
        logger.info(f"Payment {payment.sid} failed with processor status {intent.status}")

    async def _settle(self, intent: ProcessorIntent) -> bool:
        if intent.status == INTENT_SUCCEEDED:
            await self._apply_success(intent)
            return True
        if intent.status == INTENT_CANCELED:
            await self._apply_failure(intent)
            return True
        return False

    async def reconcile_intent(self, intent_id: str) -> str:
        """
        Pulls the processor's view of the intent and applies it locally. Safe to repeat.
        """
        intent = await self.processor.retrieve_intent(intent_id)
        if intent.status == INTENT_SUCCEEDED:
            await self._apply_success(intent)
        return intent.status

    async def confirm_payment(self, user: User, intent_id: str) -> str:
        payment = await self._payment_for_intent(intent_id)
        if payment is None or (user.role != UserRole.ADMIN and payment.order.user_sid != user.sid):
            raise NotFound("Payment not found")
        return await self.reconcile_intent(intent_id)

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> str:
        event = self.processor.parse_webhook(payload, signature)
        if event.type == EVENT_INTENT_SUCCEEDED:
            await self._apply_success(event.intent)
        elif event.type == EVENT_INTENT_FAILED:
            await self._apply_failure(event.intent)
        else:
            logger.debug(f"Ignoring processor event {event.type}")
        return event.type

    async def list_payments(self, user: User) -> List[Payment]:
        query = (
            select(Payment)
            .options(selectinload(Payment.order))
            .order_by(Payment.created_at.desc())
        )
        if user.role != UserRole.ADMIN:
            query = query.join(Order, Payment.order_sid == Order.sid).where(Order.user_sid == user.sid)
        result = await execute_or_fail(self.db, query, "Failed to fetch payments")
        return list(result.scalars().all())

    async def _recover_intent_id(self, payment: Payment) -> Optional[str]:
        """
        Repeats the create call for a payment whose intent id was never stored. Returns None
        when the payment is too old for the processor to still honour its idempotency key; such
        a payment is marked failed instead.
        """
        window = timedelta(hours=self.settings.PAYMENT_IDEMPOTENCY_WINDOW_HOURS)
        if utcnow() - as_utc(payment.created_at) > window:
            payment.status = PaymentStatus.FAILED
            await commit_or_fail(self.db, "Failed to update payment")
            logger.warning(f"Payment {payment.sid} never received an intent and was marked failed")
            return None

        intent = await self._request_intent(payment, payment.order.user_sid)
        payment.stripe_payment_intent_id = intent.id
        await commit_or_fail(self.db, "Failed to record payment intent")
        logger.info(f"Recovered intent {intent.id} for payment {payment.sid}")
        return intent.id

    async def reconcile_pending(self, limit: int = 100) -> int:
        """
        Re-drives pending payments. Payments with an intent take the processor's current
        status; payments that lost their intent id mid-request get it back first.
        Returns how many were settled locally.
        """
        result = await execute_or_fail(
            self.db,
            select(Payment)
            .options(selectinload(Payment.order))
            .where(Payment.status == PaymentStatus.PENDING)
            .order_by(Payment.created_at)
            .limit(limit),
            "Failed to fetch pending payments",
        )
        payments = list(result.scalars().all())

        # rows younger than this may belong to a request that is still running
        cutoff = utcnow() - timedelta(minutes=self.settings.PAYMENT_RECOVERY_GRACE_MINUTES)

        settled = 0
        for payment in payments:
            try:
                intent_id = payment.stripe_payment_intent_id
                if intent_id is None:
                    if as_utc(payment.created_at) > cutoff:
                        continue
                    intent_id = await self._recover_intent_id(payment)
                    if intent_id is None:
                        settled += 1
                        continue

                intent = await self.processor.retrieve_intent(intent_id)
                if await self._settle(intent):
                    settled += 1
            except OperationFailed as e:
                logger.error(f"Reconciliation of payment {payment.sid} failed: {e.detail}")
        return settled
