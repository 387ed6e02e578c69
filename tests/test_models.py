import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.models.base import Base, as_utc
from app.models.users import User, UserRole
from app.models.orders import Order, OrderStatus, Payment, PaymentStatus, PaymentMethod, ORDER_TRANSITIONS


def test_base_model_generate_sid():
    """Test the generation of short IDs"""
    sid = Base.generate_sid()
    assert isinstance(sid, str)
    assert len(sid) == 22  # NanoID default length
    assert sid != Base.generate_sid()


def test_table_names():
    assert User.__tablename__ == "user"
    assert Order.__tablename__ == "order"
    assert Payment.__tablename__ == "payment"


def test_as_utc_treats_naive_values_as_utc():
    from datetime import datetime, timezone

    naive = datetime(2024, 1, 1, 12, 0)
    assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(aware) is aware


@pytest.mark.asyncio
async def test_user_defaults(db_session):
    """New users are unverified customers"""
    user = User(
        email="defaults@gmail.com",
        password_hash="hashed_password",
        full_name="Default User",
        phone="+919876543210",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    assert user.sid is not None
    assert user.role == UserRole.CUSTOMER
    assert user.is_verified is False
    assert user.created_at is not None
    assert user.verification_token is None


@pytest.mark.asyncio
async def test_user_email_unique(db_session, customer):
    db_session.add(User(
        email=customer.email,
        password_hash="hashed_password",
        full_name="Duplicate",
        phone="+919876543210",
    ))

    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_order_relationships(db_session, customer, make_order):
    """Test Order and Payment relationships"""
    order = await make_order(customer)
    payment = Payment(
        order_sid=order.sid,
        amount=order.total_amount,
        status=PaymentStatus.PENDING,
        payment_method=PaymentMethod.UPI,
    )
    db_session.add(payment)
    await db_session.commit()

    result = await db_session.execute(
        select(Order)
        .options(selectinload(Order.user), selectinload(Order.payments))
        .where(Order.sid == order.sid)
        .execution_options(populate_existing=True)
    )
    loaded = result.scalar_one()

    assert loaded.status == OrderStatus.PENDING
    assert loaded.user.sid == customer.sid
    assert [p.sid for p in loaded.payments] == [payment.sid]


def test_transition_table_covers_every_status():
    assert set(ORDER_TRANSITIONS) == set(OrderStatus)
    assert ORDER_TRANSITIONS[OrderStatus.DELIVERED] == set()
    assert ORDER_TRANSITIONS[OrderStatus.CANCELLED] == set()
    for status, targets in ORDER_TRANSITIONS.items():
        if status not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            assert OrderStatus.CANCELLED in targets
