"""
Invoice line item model.

Line items are price-locked at invoice creation: unit_price and item_name are
copied from the catalog so later catalog edits never change an issued invoice.
"""

from decimal import Decimal

from sqlalchemy import String, ForeignKey, Numeric, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class InvoiceLineItem(Base):
    """One priced (service item, quantity) entry on an invoice. Immutable after creation."""

    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the line item."""

    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"))
    """Reference to the owning invoice."""

    service_item_id: Mapped[int] = mapped_column(ForeignKey("service_items.id", ondelete="RESTRICT"))
    """Reference to the catalog entry this line was priced from."""

    item_name: Mapped[str] = mapped_column(String(255))
    """Catalog name at the time the invoice was created."""

    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Catalog unit price at the time the invoice was created."""

    quantity: Mapped[int] = mapped_column(Integer)
    """Number of units (>= 1)."""

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """unit_price * quantity."""

    display_order: Mapped[int] = mapped_column(Integer, default=0)
    """Display order (0-based), following the order items were requested."""

    # Relationships
    invoice = relationship("Invoice", back_populates="line_items")
    """Relationship to the Invoice entity."""

    service_item = relationship("ServiceItem")
    """Relationship to the ServiceItem entity."""

    __table_args__ = (
        Index('idx_invoice_line_items_invoice', 'invoice_id'),
        CheckConstraint('quantity >= 1', name='chk_invoice_line_items_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='chk_invoice_line_items_price_non_negative'),
    )
