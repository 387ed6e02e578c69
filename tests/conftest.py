import os

# Settings are read at import time; SECRET_KEY has no default
os.environ.setdefault("SECRET_KEY", "test_secret_key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_dummy")
os.environ.setdefault("EMAILS_FROM_EMAIL", "noreply@example.com")

import json
import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import AsyncMock, patch

from app.core.config import get_settings
from app.core.dependencies import get_payment_processor
from app.core.exceptions import InvalidWebhook, OperationFailed
from app.core.security import get_password_hash, create_access_token
from app.db.session import get_db
from app.db.redis import get_redis
from app.main import app
from app.models.base import Base
from app.models.users import User, UserRole
from app.models.orders import ServicePrice, ServiceType, Order, OrderStatus
from app.services.payment_processor import PaymentProcessor, ProcessorIntent, ProcessorEvent

TEST_PASSWORD = "password123"
# bcrypt is slow on purpose; hash the shared fixture password once
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

API = get_settings().API_V1_STR


class FakePaymentProcessor(PaymentProcessor):
    """In-memory processor that records every call"""

    def __init__(self):
        self.intents = {}
        self.created = []
        self.retrieved = []
        self.fail_create = False
        self.fail_retrieve = False
        self.lose_response = False
        self.by_key = {}

    async def create_intent(self, amount_minor_units, currency, metadata, idempotency_key=None):
        if self.fail_create:
            raise OperationFailed("Failed to create payment intent")
        if idempotency_key in self.by_key:
            return self.intents[self.by_key[idempotency_key]]
        self.created.append({
            "amount": amount_minor_units,
            "currency": currency,
            "metadata": metadata,
            "idempotency_key": idempotency_key,
        })
        intent_id = f"pi_test_{len(self.created)}"
        intent = ProcessorIntent(
            id=intent_id,
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        if idempotency_key is not None:
            self.by_key[idempotency_key] = intent_id
        if self.lose_response:
            # intent exists at the processor but the caller never hears back
            raise ConnectionError("connection reset by peer")
        return intent

    async def retrieve_intent(self, intent_id):
        self.retrieved.append(intent_id)
        if self.fail_retrieve:
            raise OperationFailed("Failed to retrieve payment intent")
        return self.intents[intent_id]

    def set_status(self, intent_id, status):
        self.intents[intent_id].status = status

    def parse_webhook(self, payload, signature):
        if signature != "valid-signature":
            raise InvalidWebhook()
        event = json.loads(payload)
        obj = event["data"]["object"]
        return ProcessorEvent(
            type=event["type"],
            intent=ProcessorIntent(id=obj["id"], status=obj["status"], metadata=obj.get("metadata", {})),
        )


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    async def _make_user(
            email="customer@gmail.com",
            is_verified=True,
            role=UserRole.CUSTOMER,
            full_name="Test Customer",
    ) -> User:
        user = User(
            sid=User.generate_sid(),
            email=email,
            password_hash=TEST_PASSWORD_HASH,
            full_name=full_name,
            phone="+919876543210",
            address="12 Test Street",
            is_verified=is_verified,
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def customer(make_user):
    return await make_user()


@pytest.fixture
async def other_customer(make_user):
    return await make_user(email="other@gmail.com", full_name="Other Customer")


@pytest.fixture
async def admin_user(make_user):
    return await make_user(email="admin@gmail.com", role=UserRole.ADMIN, full_name="Admin User")


@pytest.fixture
async def unverified_user(make_user):
    return await make_user(email="unverified@gmail.com", is_verified=False)


@pytest.fixture
async def service_prices(db_session):
    prices = {
        ServiceType.WASH_AND_FOLD: 50.0,
        ServiceType.DRY_CLEAN: 150.0,
        ServiceType.IRONING: 20.0,
        ServiceType.PREMIUM_CARE: 250.0,
    }
    rows = [
        ServicePrice(sid=ServicePrice.generate_sid(), service_type=service_type, price_per_unit=price, is_active=True)
        for service_type, price in prices.items()
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest.fixture
def make_order(db_session):
    async def _make_order(
            user: User,
            status=OrderStatus.PENDING,
            total_amount=150.0,
            created_at=None,
    ) -> Order:
        pickup = datetime.now(timezone.utc) + timedelta(days=1)
        order = Order(
            sid=Order.generate_sid(),
            user_sid=user.sid,
            service_type=ServiceType.WASH_AND_FOLD,
            quantity=3,
            total_amount=total_amount,
            status=status,
            pickup_address="12 Test Street",
            delivery_address="12 Test Street",
            scheduled_pickup=pickup,
            scheduled_delivery=pickup + timedelta(days=2),
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _make_order


@pytest.fixture
async def mock_redis():
    """Mock Redis client"""
    redis_mock = AsyncMock()
    redis_mock.get.return_value = None
    redis_mock.set.return_value = True
    redis_mock.incr.return_value = 1
    redis_mock.expire.return_value = True
    return redis_mock


@pytest.fixture
def fake_processor():
    return FakePaymentProcessor()


@pytest.fixture
async def client(db_session, mock_redis, fake_processor):
    """Test client with database, Redis and payment processor overridden"""

    async def override_get_db():
        yield db_session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_payment_processor] = lambda: fake_processor

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def auth_headers(settings):
    def _auth_headers(user: User, **overrides) -> dict:
        claims = {
            "subject": user.sid,
            "email": user.email,
            "role": user.role.value,
        }
        claims.update(overrides)
        token = create_access_token(settings, **claims)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def mock_email_service():
    """Mock SMTP delivery"""
    with patch("app.services.email.send_email_smtp", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock
