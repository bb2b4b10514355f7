"""
Service for receipts.

Handles receipt number generation for payments and receipt retrieval for
viewing and printing. Receipt numbers are derived from the invoice, the
clinic-local payment date and the payment's sequence on the invoice.
"""

from typing import Dict, Any, Optional
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from core.constants import DOCUMENT_ID_DIGITS, RECEIPT_NUMBER_PREFIX, RECEIPT_SEQUENCE_DIGITS
from models.invoice import Invoice
from models.payment import Payment
from utils.datetime_utils import compact_date, ensure_clinic_tz


class ReceiptService:
    """Service for receipt operations."""

    @staticmethod
    def issue_receipt(invoice_id: int, issued_at: datetime, sequence: int) -> str:
        """
        Generate the receipt number for a payment.

        Format: RCP-{YYYYMMDD}-{invoice id, 6 digits}-{payment sequence, 2 digits}
        The date is the clinic-local calendar date of issued_at. The sequence is
        the payment's 1-based position on the invoice, which makes the number
        unique even when an invoice receives two payments on the same day.

        Args:
            invoice_id: ID of the invoice being paid
            issued_at: When the payment was received
            sequence: 1-based payment sequence on the invoice

        Returns:
            Receipt number, e.g. "RCP-20250101-000042-01"

        Raises:
            ValueError: If sequence is not positive
        """
        if sequence < 1:
            raise ValueError("Receipt sequence must be >= 1")
        return (
            f"{RECEIPT_NUMBER_PREFIX}-{compact_date(issued_at)}"
            f"-{invoice_id:0{DOCUMENT_ID_DIGITS}d}"
            f"-{sequence:0{RECEIPT_SEQUENCE_DIGITS}d}"
        )

    @staticmethod
    def get_receipt(db: Session, receipt_number: str) -> Optional[Payment]:
        """
        Get the payment behind a receipt number, with its invoice and patient loaded.

        Args:
            db: Database session
            receipt_number: Receipt number to look up

        Returns:
            Payment or None if no receipt has that number
        """
        return db.query(Payment).options(
            joinedload(Payment.invoice).joinedload(Invoice.patient)
        ).filter(Payment.receipt_number == receipt_number.strip()).first()

    @staticmethod
    def build_receipt_data(payment: Payment) -> Dict[str, Any]:
        """
        Build the printable receipt view for a payment.

        Args:
            payment: Payment with its invoice (and patient) loaded

        Returns:
            Dict with receipt, invoice and patient details
        """
        invoice = payment.invoice
        patient = invoice.patient
        paid_at = ensure_clinic_tz(payment.paid_at)
        return {
            "receipt_number": payment.receipt_number,
            "payment_id": payment.id,
            "paid_at": paid_at.isoformat() if paid_at else None,
            "amount_paid": payment.amount,
            "cash_tendered": payment.cash_tendered,
            "change_amount": payment.change_amount,
            "payment_method": payment.method,
            "cashier_user_id": payment.cashier_user_id,
            "notes": payment.notes,
            "payment_status": payment.resulting_status,
            "invoice": {
                "id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "total_amount": invoice.total_amount,
                "discount_type": invoice.discount_type,
                "discount_amount": invoice.discount_amount,
                "net_amount": invoice.net_amount,
            },
            "patient": {
                "id": patient.id,
                "name": patient.full_name,
            } if patient else None,
        }
