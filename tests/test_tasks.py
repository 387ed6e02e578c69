import pytest

from app.models.orders import OrderStatus, PaymentMethod, PaymentStatus
from app.services.payments import PaymentService
from app.tasks.celery_app import celery_app
from app.tasks.payments import run_reconciliation


def test_reconciliation_is_scheduled():
    schedule = celery_app.conf.beat_schedule
    entry = next(e for e in schedule.values() if e["task"] == "app.tasks.payments.reconcile_pending_payments")
    assert entry["schedule"] == 900.0


@pytest.mark.asyncio
async def test_run_reconciliation(db_session, session_factory, settings, customer, make_order, fake_processor):
    """The task settles a payment whose intent finished after the request died"""
    order = await make_order(customer)
    payment, _ = await PaymentService(db_session, settings, fake_processor).create_intent(
        customer, order.sid, PaymentMethod.CARD
    )
    fake_processor.set_status(payment.stripe_payment_intent_id, "succeeded")

    settled = await run_reconciliation(session_factory, settings, fake_processor)
    assert settled == 1

    await db_session.refresh(payment)
    await db_session.refresh(order)
    assert payment.status == PaymentStatus.COMPLETED
    assert order.status == OrderStatus.CONFIRMED
