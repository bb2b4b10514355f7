"""
Read-only queries over the billing ledger.

Invoice lists, invoice detail, payment history and collection statistics.
Nothing here writes; callers get plain dicts and dataclasses rather than live
ORM objects so results can be serialized directly.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from core.billing_errors import NotFoundError, ValidationError
from core.config import BILLING_DEFAULT_PAGE_SIZE, BILLING_MAX_PAGE_SIZE
from core.constants import PAYMENT_STATUSES
from models.invoice import Invoice
from models.patient import Patient
from models.payment import Payment
from services.billing_calculations import ZERO, to_money
from utils.datetime_utils import day_bounds, ensure_clinic_tz

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceSummary:
    """One row of the invoice list."""
    id: int
    invoice_number: Optional[str]
    patient_id: int
    patient_name: Optional[str]
    visit_id: Optional[int]
    total_amount: Decimal
    discount_type: str
    discount_amount: Decimal
    net_amount: Decimal
    paid_amount: Decimal
    remaining_balance: Decimal
    payment_status: str
    created_at: Optional[str]


@dataclass
class InvoicePage:
    """A page of invoice summaries."""
    items: List[InvoiceSummary] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = BILLING_DEFAULT_PAGE_SIZE
    has_more: bool = False


def _normalize_paging(page: int, page_size: Optional[int]) -> Tuple[int, int]:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if page_size is None:
        page_size = BILLING_DEFAULT_PAGE_SIZE
    if page_size < 1:
        raise ValidationError("page_size must be >= 1")
    return page, min(page_size, BILLING_MAX_PAGE_SIZE)


def _date_range_bounds(date_from: Optional[date], date_to: Optional[date]):
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must be on or before date_to")
    start = day_bounds(date_from)[0] if date_from else None
    end = day_bounds(date_to)[1] if date_to else None
    return start, end


def _isoformat(value) -> Optional[str]:
    value = ensure_clinic_tz(value)
    return value.isoformat() if value else None


def _invoice_header(invoice: Invoice) -> Dict[str, Any]:
    net_amount = to_money(invoice.net_amount)
    paid_amount = to_money(invoice.paid_amount)
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "patient_id": invoice.patient_id,
        "patient_name": invoice.patient.full_name if invoice.patient else None,
        "visit_id": invoice.visit_id,
        "total_amount": to_money(invoice.total_amount),
        "discount_type": invoice.discount_type,
        "discount_amount": to_money(invoice.discount_amount),
        "net_amount": net_amount,
        "paid_amount": paid_amount,
        "remaining_balance": net_amount - paid_amount,
        "payment_status": invoice.payment_status,
        "payment_count": invoice.payment_count,
        "notes": invoice.notes,
        "created_by_user_id": invoice.created_by_user_id,
        "created_at": _isoformat(invoice.created_at),
        "updated_at": _isoformat(invoice.updated_at),
    }


def _payment_row(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "invoice_id": payment.invoice_id,
        "receipt_number": payment.receipt_number,
        "amount": to_money(payment.amount),
        "cash_tendered": to_money(payment.cash_tendered),
        "change_amount": to_money(payment.change_amount),
        "method": payment.method,
        "resulting_status": payment.resulting_status,
        "cashier_user_id": payment.cashier_user_id,
        "notes": payment.notes,
        "paid_at": _isoformat(payment.paid_at),
    }


class BillingQueryService:
    """Read-only ledger queries."""

    @staticmethod
    def list_invoices(
        db: Session,
        search_text: Optional[str] = None,
        status: Optional[str] = None,
        invoice_date: Optional[date] = None,
        patient_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> InvoicePage:
        """
        List invoices, newest first.

        Args:
            db: Database session
            search_text: Case-insensitive substring of the patient name or invoice number
            status: Optional payment status filter ('unpaid', 'partial', 'paid')
            invoice_date: Optional clinic-local creation date
            patient_id: Optional patient whose invoices to list
            page: 1-indexed page number
            page_size: Items per page (capped at BILLING_MAX_PAGE_SIZE)

        Returns:
            InvoicePage

        Raises:
            ValidationError: If status or paging arguments are invalid
        """
        page, page_size = _normalize_paging(page, page_size)

        query = db.query(Invoice).outerjoin(Patient, Invoice.patient_id == Patient.id)

        if search_text and search_text.strip():
            search_pattern = f"%{search_text.strip()}%"
            query = query.filter(
                or_(
                    Patient.full_name.ilike(search_pattern),
                    Invoice.invoice_number.ilike(search_pattern)
                )
            )

        if status:
            if status not in PAYMENT_STATUSES:
                raise ValidationError(f"Invalid status. Must be one of: {', '.join(PAYMENT_STATUSES)}")
            query = query.filter(Invoice.payment_status == status)

        if invoice_date:
            start, end = day_bounds(invoice_date)
            query = query.filter(Invoice.created_at >= start, Invoice.created_at < end)

        if patient_id is not None:
            query = query.filter(Invoice.patient_id == patient_id)

        total = query.count()

        invoices = query.options(
            selectinload(Invoice.patient)
        ).order_by(
            Invoice.created_at.desc(), Invoice.id.desc()
        ).offset((page - 1) * page_size).limit(page_size).all()

        items = [
            InvoiceSummary(
                id=invoice.id,
                invoice_number=invoice.invoice_number,
                patient_id=invoice.patient_id,
                patient_name=invoice.patient.full_name if invoice.patient else None,
                visit_id=invoice.visit_id,
                total_amount=to_money(invoice.total_amount),
                discount_type=invoice.discount_type,
                discount_amount=to_money(invoice.discount_amount),
                net_amount=to_money(invoice.net_amount),
                paid_amount=to_money(invoice.paid_amount),
                remaining_balance=to_money(invoice.net_amount) - to_money(invoice.paid_amount),
                payment_status=invoice.payment_status,
                created_at=_isoformat(invoice.created_at),
            )
            for invoice in invoices
        ]

        return InvoicePage(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            has_more=page * page_size < total,
        )

    @staticmethod
    def get_invoice_detail(db: Session, invoice_id: int) -> Dict[str, Any]:
        """
        Get an invoice with its line items and payments.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = db.query(Invoice).options(
            selectinload(Invoice.patient),
            selectinload(Invoice.line_items),
            selectinload(Invoice.payments),
        ).filter(Invoice.id == invoice_id).first()

        if not invoice:
            raise NotFoundError("Invoice not found")

        return {
            "header": _invoice_header(invoice),
            "line_items": [
                {
                    "id": item.id,
                    "service_item_id": item.service_item_id,
                    "item_name": item.item_name,
                    "unit_price": to_money(item.unit_price),
                    "quantity": item.quantity,
                    "subtotal": to_money(item.subtotal),
                    "display_order": item.display_order,
                }
                for item in invoice.line_items
            ],
            "payments": [_payment_row(payment) for payment in invoice.payments],
        }

    @staticmethod
    def list_payments(
        db: Session,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        List payments received in a clinic-local date range, newest first.

        Args:
            db: Database session
            date_from: First day included (inclusive)
            date_to: Last day included (inclusive)
            page: 1-indexed page number
            page_size: Items per page (capped at BILLING_MAX_PAGE_SIZE)

        Returns:
            Dict with payments, paging info and a summary of the whole range:
            {total_payments, total_collected, average_payment}
        """
        page, page_size = _normalize_paging(page, page_size)
        start, end = _date_range_bounds(date_from, date_to)

        filters = []
        if start is not None:
            filters.append(Payment.paid_at >= start)
        if end is not None:
            filters.append(Payment.paid_at < end)

        total_payments, total_collected = db.query(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
        ).filter(*filters).one()
        total_payments = total_payments or 0
        total_collected = to_money(total_collected or 0)

        payments = db.query(Payment).options(
            selectinload(Payment.invoice).selectinload(Invoice.patient)
        ).filter(*filters).order_by(
            Payment.paid_at.desc(), Payment.id.desc()
        ).offset((page - 1) * page_size).limit(page_size).all()

        rows = []
        for payment in payments:
            row = _payment_row(payment)
            row["invoice_number"] = payment.invoice.invoice_number
            row["patient_name"] = payment.invoice.patient.full_name if payment.invoice.patient else None
            rows.append(row)

        return {
            "payments": rows,
            "total": total_payments,
            "page": page,
            "page_size": page_size,
            "has_more": page * page_size < total_payments,
            "summary": {
                "total_payments": total_payments,
                "total_collected": total_collected,
                "average_payment": to_money(total_collected / total_payments) if total_payments else ZERO,
            },
        }

    @staticmethod
    def get_billing_statistics(
        db: Session,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Invoice counts per status and money totals for invoices created in a date range.

        Returns:
            Dict with invoice_count, status_counts and total_billed, total_discount,
            total_net, total_collected, total_outstanding
        """
        start, end = _date_range_bounds(date_from, date_to)

        filters = []
        if start is not None:
            filters.append(Invoice.created_at >= start)
        if end is not None:
            filters.append(Invoice.created_at < end)

        status_rows = db.query(
            Invoice.payment_status, func.count(Invoice.id)
        ).filter(*filters).group_by(Invoice.payment_status).all()
        status_counts = {status: 0 for status in PAYMENT_STATUSES}
        for status, count in status_rows:
            status_counts[status] = count

        total_billed, total_discount, total_net, total_collected = db.query(
            func.coalesce(func.sum(Invoice.total_amount), 0),
            func.coalesce(func.sum(Invoice.discount_amount), 0),
            func.coalesce(func.sum(Invoice.net_amount), 0),
            func.coalesce(func.sum(Invoice.paid_amount), 0),
        ).filter(*filters).one()

        total_net = to_money(total_net or 0)
        total_collected = to_money(total_collected or 0)

        return {
            "invoice_count": sum(status_counts.values()),
            "status_counts": status_counts,
            "total_billed": to_money(total_billed or 0),
            "total_discount": to_money(total_discount or 0),
            "total_net": total_net,
            "total_collected": total_collected,
            "total_outstanding": total_net - total_collected,
        }
