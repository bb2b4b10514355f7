"""
Billing log model: append-only audit trail of ledger changes.

A row is written in the same transaction as the change it describes, so the log
never mentions an invoice or payment that was rolled back.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, TIMESTAMP, Integer, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class BillingLog(Base):
    """Audit entry for one ledger action ('invoice_created', 'payment_processed')."""

    __tablename__ = "billing_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"))

    payment_id: Mapped[Optional[int]] = mapped_column(ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)

    action: Mapped[str] = mapped_column(String(50))

    performed_by_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_billing_logs_invoice', 'invoice_id'),
    )
