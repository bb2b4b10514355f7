"""
Invoice model representing a patient's bill for one encounter.

An invoice holds priced line items, the discount applied to them and the running
payment totals. Monetary fields are only written by the invoice builder (at
creation) and the payment processor (paid_amount, payment_status).
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, ForeignKey, TIMESTAMP, Numeric, Integer, Text, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Invoice(Base):
    """
    Invoice entity representing the billing record for one patient encounter.

    Key invariants (enforced by the services and by check constraints):
    - total_amount = sum of line item subtotals
    - net_amount = total_amount - discount_amount
    - paid_amount never exceeds net_amount
    - payment_status is derived from paid_amount vs net_amount
    - version increases by one on every payment (compare-and-swap guard)
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the invoice."""

    invoice_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Human-readable number (e.g., "INV-20250101-000042"). Assigned once the id is known."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="RESTRICT"))
    """Reference to the patient being billed."""

    visit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Optional reference to the clinical visit this invoice covers."""

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Sum of all line item subtotals before discount."""

    discount_type: Mapped[str] = mapped_column(String(20), default="none")
    """Discount classification: 'none', 'senior' or 'pwd'."""

    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Discount deducted from total_amount."""

    net_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Amount actually owed (total_amount - discount_amount)."""

    paid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    """Total amount applied by payments so far."""

    payment_status: Mapped[str] = mapped_column(String(20), default="unpaid")
    """Derived settlement state: 'unpaid', 'partial' or 'paid'."""

    payment_count: Mapped[int] = mapped_column(Integer, default=0)
    """Number of payments posted against this invoice."""

    version: Mapped[int] = mapped_column(Integer, default=1)
    """Optimistic concurrency counter, bumped on every payment."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Free-text notes entered by the cashier."""

    created_by_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """User who created the invoice."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the invoice was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the invoice was last updated."""

    # Relationships
    patient = relationship("Patient", back_populates="invoices")
    """Relationship to the Patient entity."""

    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        order_by="InvoiceLineItem.display_order",
        cascade="all, delete-orphan",
    )
    """Line items in display order."""

    payments = relationship(
        "Payment",
        back_populates="invoice",
        order_by="Payment.id",
    )
    """Payments posted against this invoice, oldest first."""

    @property
    def remaining_balance(self) -> Decimal:
        """Outstanding balance (net_amount - paid_amount)."""
        return self.net_amount - self.paid_amount

    __table_args__ = (
        UniqueConstraint('invoice_number', name='uq_invoices_invoice_number'),
        Index('idx_invoices_patient', 'patient_id'),
        Index('idx_invoices_payment_status', 'payment_status'),
        Index('idx_invoices_created_at', 'created_at'),
        CheckConstraint('total_amount >= 0', name='chk_invoices_total_non_negative'),
        CheckConstraint('discount_amount >= 0', name='chk_invoices_discount_non_negative'),
        CheckConstraint('paid_amount >= 0', name='chk_invoices_paid_non_negative'),
        CheckConstraint('paid_amount <= net_amount', name='chk_invoices_paid_le_net'),
        CheckConstraint("discount_type IN ('none', 'senior', 'pwd')", name='chk_invoices_discount_type'),
        CheckConstraint("payment_status IN ('unpaid', 'partial', 'paid')", name='chk_invoices_payment_status'),
    )
