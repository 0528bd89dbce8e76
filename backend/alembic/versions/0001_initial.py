"""initial checkout schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_table('events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('event_fee', sa.Numeric(5, 4), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='brl'),
    )
    op.create_table('ticket_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False, index=True),
        sa.Column('name', sa.String(length=255), nullable=False),
    )
    op.create_table('ticket_lots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_type_id', sa.Integer(), sa.ForeignKey('ticket_types.id'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('sold_quantity >= 0', name='ck_ticket_lots_sold_non_negative'),
    )
    op.create_index('ix_ticket_lots_window', 'ticket_lots', ['ticket_type_id', 'start_date', 'end_date'])
    op.create_table('categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_type_id', sa.Integer(), sa.ForeignKey('ticket_types.id'), nullable=False, index=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('sold_quantity >= 0', name='ck_categories_sold_non_negative'),
    )
    op.create_table('coupons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False, index=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('percentage', sa.Numeric(5, 4), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('sold_quantity >= 0', name='ck_coupons_sold_non_negative'),
    )
    op.create_table('personalized_fields',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_type_id', sa.Integer(), sa.ForeignKey('ticket_types.id'), nullable=False, index=True),
        sa.Column('label', sa.String(length=255), nullable=False),
    )
    op.create_table('terms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False, index=True),
        sa.Column('title', sa.String(length=255), nullable=False),
    )
    op.create_table('teams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING', index=True),
        sa.Column('total_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('external_payment_id', sa.String(length=64), nullable=True, index=True),
        sa.Column('external_status', sa.String(length=64), nullable=True),
        sa.Column('pix_qr_code', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('response', sa.LargeBinary(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('total_value >= 0', name='ck_transactions_total_non_negative'),
    )
    op.create_table('tickets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('transaction_id', sa.Integer(), sa.ForeignKey('transactions.id'), nullable=False, index=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('ticket_lot_id', sa.Integer(), sa.ForeignKey('ticket_lots.id'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('coupon_id', sa.Integer(), sa.ForeignKey('coupons.id'), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tickets_code', 'tickets', ['code'], unique=True)
    op.create_table('personalized_field_answers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('personalized_field_id', sa.Integer(), sa.ForeignKey('personalized_fields.id'), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
    )
    op.create_table('term_ticket_confirmations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('term_id', sa.Integer(), sa.ForeignKey('terms.id'), nullable=False),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('term_id', 'ticket_id', name='uq_term_ticket'),
    )
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id'), nullable=True),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('message', sa.String(length=1024), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('term_ticket_confirmations')
    op.drop_table('personalized_field_answers')
    op.drop_index('ix_tickets_code', table_name='tickets')
    op.drop_table('tickets')
    op.drop_table('transactions')
    op.drop_table('teams')
    op.drop_table('terms')
    op.drop_table('personalized_fields')
    op.drop_table('coupons')
    op.drop_table('categories')
    op.drop_index('ix_ticket_lots_window', table_name='ticket_lots')
    op.drop_table('ticket_lots')
    op.drop_table('ticket_types')
    op.drop_table('events')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
