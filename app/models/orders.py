# app/models/orders.py
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Enum, Text, Boolean
from sqlalchemy.orm import relationship
import enum
from app.models.base import Base, utcnow


class ServiceType(str, enum.Enum):
    WASH_AND_FOLD = "wash_and_fold"
    DRY_CLEAN = "dry_clean"
    IRONING = "ironing"
    PREMIUM_CARE = "premium_care"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    WASHING = "washing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Forward path of an order; cancellation is allowed from every non-terminal state.
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: {OrderStatus.WASHING, OrderStatus.CANCELLED},
    OrderStatus.WASHING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    UPI = "upi"
    CASH = "cash"


class ServicePrice(Base):
    service_type = Column(Enum(ServiceType), nullable=False, index=True)
    price_per_unit = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Order(Base):
    user_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    user = relationship("User", back_populates="orders")
    service_type = Column(Enum(ServiceType), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_amount = Column(Float, nullable=False)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    pickup_address = Column(Text, nullable=False)
    delivery_address = Column(Text, nullable=False)
    scheduled_pickup = Column(DateTime(timezone=True), nullable=False)
    scheduled_delivery = Column(DateTime(timezone=True), nullable=False)
    special_instructions = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    payments = relationship("Payment", back_populates="order")


class Payment(Base):
    order_sid = Column(String(22), ForeignKey("order.sid"), nullable=False, index=True)
    order = relationship("Order", back_populates="payments")
    amount = Column(Float, nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    stripe_payment_intent_id = Column(String, nullable=True, unique=True, index=True)
    transaction_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
