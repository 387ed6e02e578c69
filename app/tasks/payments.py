import asyncio

from celery import shared_task
from loguru import logger

from app.core.config import get_settings
from app.db.session import build_engine
from app.services.payment_processor import StripePaymentProcessor
from app.services.payments import PaymentService
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


async def run_reconciliation(session_factory, settings, processor, limit: int = 100) -> int:
    async with session_factory() as db:
        service = PaymentService(db, settings, processor)
        return await service.reconcile_pending(limit=limit)


@shared_task(name="app.tasks.payments.reconcile_pending_payments")
def reconcile_pending_payments(limit: int = 100) -> int:
    """
    Settles pending payments whose processor intent already finished, covering
    crashes between the processor call and the local writes.
    """
    settings = get_settings()
    processor = StripePaymentProcessor(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )

    async def _run() -> int:
        # each run gets its own engine, bound to this run's event loop
        engine = build_engine(settings)
        try:
            session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
            return await run_reconciliation(session_factory, settings, processor, limit)
        finally:
            await engine.dispose()

    settled = asyncio.run(_run())
    logger.info(f"Payment reconciliation settled {settled} payment(s)")
    return settled
