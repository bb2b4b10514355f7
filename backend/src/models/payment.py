"""
Payment model representing money applied to an invoice.

Payments are append-only. Each one records the amount applied to the invoice
balance, the cash actually handed over and the change returned, and carries a
unique receipt number.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, ForeignKey, TIMESTAMP, Numeric, Integer, Text, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Payment(Base):
    """
    Payment entity representing one payment event against an invoice.

    amount is what was posted to the invoice (never more than the balance due);
    cash_tendered - amount is returned to the patient as change_amount.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the payment."""

    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id", ondelete="RESTRICT"))
    """Reference to the invoice this payment was applied to."""

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Amount applied to the invoice balance."""

    cash_tendered: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Amount handed over by the patient."""

    change_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    """Amount returned to the patient (cash_tendered - amount)."""

    method: Mapped[str] = mapped_column(String(20))
    """Payment method: 'cash', 'card' or 'check'."""

    cashier_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """User who received the payment."""

    receipt_number: Mapped[str] = mapped_column(String(50))
    """Receipt number (e.g., "RCP-20250101-000042-01"). Unique per payment."""

    sequence: Mapped[int] = mapped_column(Integer)
    """1-based position of this payment among the invoice's payments."""

    resulting_status: Mapped[str] = mapped_column(String(20))
    """Invoice payment_status immediately after this payment."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Free-text notes entered by the cashier."""

    paid_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    """When the payment was received."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the payment row was written."""

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
    """Relationship to the Invoice entity."""

    __table_args__ = (
        UniqueConstraint('receipt_number', name='uq_payments_receipt_number'),
        UniqueConstraint('invoice_id', 'sequence', name='uq_payments_invoice_sequence'),
        Index('idx_payments_invoice', 'invoice_id'),
        Index('idx_payments_paid_at', 'paid_at'),
        CheckConstraint('amount > 0', name='chk_payments_amount_positive'),
        CheckConstraint('cash_tendered >= amount', name='chk_payments_tendered_covers_amount'),
        CheckConstraint('change_amount >= 0', name='chk_payments_change_non_negative'),
        CheckConstraint("method IN ('cash', 'card', 'check')", name='chk_payments_method'),
    )
