"""initial laundry schema

Revision ID: 3f1c9a7d2b64
Revises:
Create Date: 2025-09-02 10:14:31.208144

"""
from typing import Sequence, Union
import uuid

from alembic import op
import sqlalchemy as sa
import nanoid

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum('CUSTOMER', 'ADMIN', name='userrole')
service_type = sa.Enum('WASH_AND_FOLD', 'DRY_CLEAN', 'IRONING', 'PREMIUM_CARE', name='servicetype')
order_status = sa.Enum(
    'PENDING', 'CONFIRMED', 'PICKED_UP', 'WASHING', 'READY', 'DELIVERED', 'CANCELLED',
    name='orderstatus',
)
payment_status = sa.Enum('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED', name='paymentstatus')
payment_method = sa.Enum('CARD', 'UPI', 'CASH', name='paymentmethod')

# price per unit, in the settlement currency
DEFAULT_PRICES = {
    'WASH_AND_FOLD': 50.0,
    'DRY_CLEAN': 150.0,
    'IRONING': 20.0,
    'PREMIUM_CARE': 250.0,
}


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('role', user_role, nullable=False, server_default='CUSTOMER'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(length=64), nullable=True),
        sa.Column('verification_token_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reset_token', sa.String(length=64), nullable=True),
        sa.Column('reset_token_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_sid'), 'user', ['sid'], unique=True)
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)
    op.create_index(op.f('ix_user_verification_token'), 'user', ['verification_token'], unique=True)
    op.create_index(op.f('ix_user_reset_token'), 'user', ['reset_token'], unique=True)

    serviceprice = op.create_table('serviceprice',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('service_type', service_type, nullable=False),
        sa.Column('price_per_unit', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_serviceprice_sid'), 'serviceprice', ['sid'], unique=True)
    op.create_index(op.f('ix_serviceprice_service_type'), 'serviceprice', ['service_type'], unique=False)

    op.create_table('order',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('service_type', service_type, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='PENDING'),
        sa.Column('pickup_address', sa.Text(), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=False),
        sa.Column('scheduled_pickup', sa.DateTime(timezone=True), nullable=False),
        sa.Column('scheduled_delivery', sa.DateTime(timezone=True), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_sid'], ['user.sid'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_order_sid'), 'order', ['sid'], unique=True)
    op.create_index(op.f('ix_order_user_sid'), 'order', ['user_sid'], unique=False)

    op.create_table('payment',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('order_sid', sa.String(length=22), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('status', payment_status, nullable=False, server_default='PENDING'),
        sa.Column('payment_method', payment_method, nullable=False),
        sa.Column('stripe_payment_intent_id', sa.String(), nullable=True),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['order_sid'], ['order.sid'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payment_sid'), 'payment', ['sid'], unique=True)
    op.create_index(op.f('ix_payment_order_sid'), 'payment', ['order_sid'], unique=False)
    op.create_index(
        op.f('ix_payment_stripe_payment_intent_id'), 'payment', ['stripe_payment_intent_id'], unique=True
    )

    op.bulk_insert(serviceprice, [
        {
            'id': uuid.uuid4(),
            'sid': nanoid.generate(size=22),
            'service_type': name,
            'price_per_unit': price,
            'is_active': True,
        }
        for name, price in DEFAULT_PRICES.items()
    ])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_payment_stripe_payment_intent_id'), table_name='payment')
    op.drop_index(op.f('ix_payment_order_sid'), table_name='payment')
    op.drop_index(op.f('ix_payment_sid'), table_name='payment')
    op.drop_table('payment')
    op.drop_index(op.f('ix_order_user_sid'), table_name='order')
    op.drop_index(op.f('ix_order_sid'), table_name='order')
    op.drop_table('order')
    op.drop_index(op.f('ix_serviceprice_service_type'), table_name='serviceprice')
    op.drop_index(op.f('ix_serviceprice_sid'), table_name='serviceprice')
    op.drop_table('serviceprice')
    op.drop_index(op.f('ix_user_reset_token'), table_name='user')
    op.drop_index(op.f('ix_user_verification_token'), table_name='user')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_index(op.f('ix_user_sid'), table_name='user')
    op.drop_table('user')

    for enum_type in (payment_method, payment_status, order_status, service_type, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
