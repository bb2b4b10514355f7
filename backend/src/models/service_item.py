"""
Service item model representing the clinic's billable catalog.

Each service item carries the authoritative unit price used when an invoice is
built. Prices submitted by clients are never used; invoices copy the price from
this table at creation time.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Numeric, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class ServiceItem(Base):
    """
    Service item entity representing one billable service or supply.

    Inactive items stay in the table so existing invoices keep their history,
    but they can no longer be added to new invoices.
    """

    __tablename__ = "service_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the service item."""

    name: Mapped[str] = mapped_column(String(255))
    """Display name (e.g., 'Consultation Fee', 'Complete Blood Count')."""

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Grouping used by the catalog listing (e.g., 'Laboratory', 'Consultation')."""

    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Unit of sale (e.g., 'per test', 'per tablet')."""

    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Current authoritative price for one unit."""

    is_active: Mapped[bool] = mapped_column(default=True)
    """Whether the item may be added to new invoices."""

    display_order: Mapped[int] = mapped_column(Integer, default=0)
    """Display order within the catalog listing."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the service item was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the service item was last updated."""

    __table_args__ = (
        Index('idx_service_items_active', 'is_active'),
        CheckConstraint('unit_price >= 0', name='chk_service_items_price_non_negative'),
    )
