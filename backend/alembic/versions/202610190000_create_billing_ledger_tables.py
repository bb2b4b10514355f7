"""create billing ledger tables

Revision ID: 202610190000
Revises:
Create Date: 2026-10-19 00:00:00.000000

Create the billing ledger schema: patients, service_items, invoices,
invoice_line_items, payments and billing_logs.

Money columns are NUMERIC(10, 2). Check constraints enforce non-negative
amounts, quantity >= 1, paid_amount <= net_amount and the allowed
status/discount/method values. invoice_number and receipt_number are unique.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '202610190000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create billing ledger tables."""
    # Check if tables already exist (for idempotency)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    tables = inspector.get_table_names()

    if 'patients' not in tables:
        op.create_table(
            'patients',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(length=255), nullable=False),
            sa.Column('phone_number', sa.String(length=50), nullable=True),
            sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
            sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
            sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_patients_id'), 'patients', ['id'], unique=False)
        op.create_index('idx_patients_full_name', 'patients', ['full_name'])

    op.create_table(
        'service_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('unit', sa.String(length=50), nullable=True),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('unit_price >= 0', name='chk_service_items_price_non_negative'),
    )
    op.create_index(op.f('ix_service_items_id'), 'service_items', ['id'], unique=False)
    op.create_index('idx_service_items_active', 'service_items', ['is_active'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=True),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('visit_id', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_type', sa.String(length=20), nullable=False, server_default='none'),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('net_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('paid_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('payment_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number', name='uq_invoices_invoice_number'),
        sa.CheckConstraint('total_amount >= 0', name='chk_invoices_total_non_negative'),
        sa.CheckConstraint('discount_amount >= 0', name='chk_invoices_discount_non_negative'),
        sa.CheckConstraint('paid_amount >= 0', name='chk_invoices_paid_non_negative'),
        sa.CheckConstraint('paid_amount <= net_amount', name='chk_invoices_paid_le_net'),
        sa.CheckConstraint("discount_type IN ('none', 'senior', 'pwd')", name='chk_invoices_discount_type'),
        sa.CheckConstraint("payment_status IN ('unpaid', 'partial', 'paid')", name='chk_invoices_payment_status'),
    )
    op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'], unique=False)
    op.create_index('idx_invoices_patient', 'invoices', ['patient_id'])
    op.create_index('idx_invoices_payment_status', 'invoices', ['payment_status'])
    op.create_index('idx_invoices_created_at', 'invoices', ['created_at'])

    op.create_table(
        'invoice_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('service_item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_item_id'], ['service_items.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 1', name='chk_invoice_line_items_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='chk_invoice_line_items_price_non_negative'),
    )
    op.create_index(op.f('ix_invoice_line_items_id'), 'invoice_line_items', ['id'], unique=False)
    op.create_index('idx_invoice_line_items_invoice', 'invoice_line_items', ['invoice_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('cash_tendered', sa.Numeric(10, 2), nullable=False),
        sa.Column('change_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('method', sa.String(length=20), nullable=False),
        sa.Column('cashier_user_id', sa.Integer(), nullable=True),
        sa.Column('receipt_number', sa.String(length=50), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('resulting_status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('receipt_number', name='uq_payments_receipt_number'),
        sa.UniqueConstraint('invoice_id', 'sequence', name='uq_payments_invoice_sequence'),
        sa.CheckConstraint('amount > 0', name='chk_payments_amount_positive'),
        sa.CheckConstraint('cash_tendered >= amount', name='chk_payments_tendered_covers_amount'),
        sa.CheckConstraint('change_amount >= 0', name='chk_payments_change_non_negative'),
        sa.CheckConstraint("method IN ('cash', 'card', 'check')", name='chk_payments_method'),
    )
    op.create_index(op.f('ix_payments_id'), 'payments', ['id'], unique=False)
    op.create_index('idx_payments_invoice', 'payments', ['invoice_id'])
    op.create_index('idx_payments_paid_at', 'payments', ['paid_at'])

    op.create_table(
        'billing_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('performed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_billing_logs_id'), 'billing_logs', ['id'], unique=False)
    op.create_index('idx_billing_logs_invoice', 'billing_logs', ['invoice_id'])


def downgrade() -> None:
    """Drop billing ledger tables (patients are left in place)."""
    op.drop_index('idx_billing_logs_invoice', table_name='billing_logs')
    op.drop_index(op.f('ix_billing_logs_id'), table_name='billing_logs')
    op.drop_table('billing_logs')

    op.drop_index('idx_payments_paid_at', table_name='payments')
    op.drop_index('idx_payments_invoice', table_name='payments')
    op.drop_index(op.f('ix_payments_id'), table_name='payments')
    op.drop_table('payments')

    op.drop_index('idx_invoice_line_items_invoice', table_name='invoice_line_items')
    op.drop_index(op.f('ix_invoice_line_items_id'), table_name='invoice_line_items')
    op.drop_table('invoice_line_items')

    op.drop_index('idx_invoices_created_at', table_name='invoices')
    op.drop_index('idx_invoices_payment_status', table_name='invoices')
    op.drop_index('idx_invoices_patient', table_name='invoices')
    op.drop_index(op.f('ix_invoices_id'), table_name='invoices')
    op.drop_table('invoices')

    op.drop_index('idx_service_items_active', table_name='service_items')
    op.drop_index(op.f('ix_service_items_id'), table_name='service_items')
    op.drop_table('service_items')
