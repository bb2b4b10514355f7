"""
Patient model representing individuals billed by the clinic.

Patients are registered by the front desk outside the billing ledger. The ledger
only reads them: to confirm an invoice's patient exists and to search invoices
by patient name.
"""

from sqlalchemy import String, TIMESTAMP, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from core.database import Base


class Patient(Base):
    """
    Patient entity representing an individual who receives and pays for services.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    full_name: Mapped[str] = mapped_column(String(255))
    """Full name of the patient (first and last name)."""

    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Contact phone number for the patient."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the patient record was created."""

    # Soft delete support
    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag. True if this patient has been deleted."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """Timestamp when the patient was soft deleted (if applicable)."""

    # Relationships
    invoices = relationship("Invoice", back_populates="patient")
    """Relationship to all invoices billed to this patient."""

    __table_args__ = (
        Index('idx_patients_full_name', 'full_name'),
    )
