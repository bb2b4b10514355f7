"""
Service for building invoices.

Creates an invoice and its line items in one transaction. Every line is priced
from the catalog at creation time; prices supplied by clients are never read.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from auth.capabilities import Actor, CREATE_INVOICE, ensure_capability
from core.billing_errors import NotFoundError, ValidationError
from core.config import BILLING_REQUIRE_VISIT
from core.constants import (
    BILLING_LOG_INVOICE_CREATED,
    DISCOUNT_NONE,
    DISCOUNT_TYPES,
    DOCUMENT_ID_DIGITS,
    INVOICE_NUMBER_PREFIX,
    PAYMENT_STATUS_UNPAID,
)
from core.database import transaction_scope
from models.billing_log import BillingLog
from models.invoice import Invoice
from models.invoice_line_item import InvoiceLineItem
from models.patient import Patient
from services.billing_calculations import ZERO, compute_invoice_totals, line_subtotal
from services.catalog_service import CatalogService
from utils.datetime_utils import compact_date

logger = logging.getLogger(__name__)

RequestedItem = Tuple[int, int]
"""(service_item_id, quantity)"""


class InvoiceService:
    """Service for invoice creation."""

    @staticmethod
    def generate_invoice_number(invoice: Invoice) -> str:
        """
        Invoice number for a flushed invoice.

        Format: INV-{YYYYMMDD of created_at}-{invoice id, 6 digits}
        """
        return f"{INVOICE_NUMBER_PREFIX}-{compact_date(invoice.created_at)}-{invoice.id:0{DOCUMENT_ID_DIGITS}d}"

    @staticmethod
    def price_items(db: Session, requested_items: Sequence[RequestedItem]) -> List[InvoiceLineItem]:
        """
        Build priced line items from (service_item_id, quantity) requests.

        Requests with a non-positive quantity, or whose service item is missing
        or inactive, are skipped. Requesting the same item twice yields two lines.

        Args:
            db: Database session
            requested_items: Sequence of (service_item_id, quantity)

        Returns:
            Unsaved line items in request order
        """
        line_items: List[InvoiceLineItem] = []
        for service_item_id, quantity in requested_items:
            if not service_item_id or quantity is None or quantity < 1:
                logger.info(f"Skipping invoice request for item {service_item_id}: invalid quantity {quantity}")
                continue

            catalog_item = CatalogService.get_active_item(db, service_item_id)
            if catalog_item is None:
                logger.info(f"Skipping invoice request for item {service_item_id}: missing or inactive")
                continue

            line_items.append(InvoiceLineItem(
                service_item_id=catalog_item.id,
                item_name=catalog_item.name,
                unit_price=catalog_item.unit_price,
                quantity=quantity,
                subtotal=line_subtotal(catalog_item.unit_price, quantity),
                display_order=len(line_items),
            ))
        return line_items

    @staticmethod
    def create_invoice(
        db: Session,
        actor: Actor,
        patient_id: Optional[int],
        visit_id: Optional[int],
        requested_items: Sequence[RequestedItem],
        discount_type: Optional[str] = DISCOUNT_NONE,
        notes: Optional[str] = None,
    ) -> Invoice:
        """
        Create a new invoice with catalog-priced line items.

        The header, every line item and the audit log entry are committed
        together; on any failure nothing is written.

        Args:
            db: Database session
            actor: Caller (must hold the create_invoice capability)
            patient_id: ID of the patient being billed
            visit_id: Optional visit reference (required when BILLING_REQUIRE_VISIT is on)
            requested_items: Sequence of (service_item_id, quantity)
            discount_type: 'none', 'senior' or 'pwd' (None means 'none')
            notes: Optional cashier notes

        Returns:
            Created invoice with line items, status 'unpaid'

        Raises:
            PermissionDeniedError: If the actor may not create invoices
            ValidationError: If patient, visit or items are missing, or discount type is unknown
            NotFoundError: If the patient does not exist
            StorageError: If the transaction fails
        """
        ensure_capability(actor, CREATE_INVOICE)

        if not patient_id:
            raise ValidationError("missing patient")
        if BILLING_REQUIRE_VISIT and not visit_id:
            raise ValidationError("missing visit")

        discount_type = (discount_type or DISCOUNT_NONE).strip().lower()
        if discount_type not in DISCOUNT_TYPES:
            raise ValidationError(f"Invalid discount type. Must be one of: {', '.join(DISCOUNT_TYPES)}")

        with transaction_scope(db):
            patient = db.query(Patient).filter(
                Patient.id == patient_id,
                Patient.is_deleted == False
            ).first()
            if not patient:
                raise NotFoundError("Patient not found")

            line_items = InvoiceService.price_items(db, requested_items)
            if not line_items:
                raise ValidationError("no items")

            totals = compute_invoice_totals((item.subtotal for item in line_items), discount_type)

            invoice = Invoice(
                patient_id=patient.id,
                visit_id=visit_id or None,
                total_amount=totals.total_amount,
                discount_type=discount_type,
                discount_amount=totals.discount_amount,
                net_amount=totals.net_amount,
                paid_amount=ZERO,
                payment_status=PAYMENT_STATUS_UNPAID,
                payment_count=0,
                version=1,
                notes=notes or None,
                created_by_user_id=actor.user_id,
            )
            invoice.line_items = line_items
            db.add(invoice)
            db.flush()  # Assigns invoice.id and created_at

            invoice.invoice_number = InvoiceService.generate_invoice_number(invoice)

            db.add(BillingLog(
                invoice_id=invoice.id,
                action=BILLING_LOG_INVOICE_CREATED,
                performed_by_user_id=actor.user_id,
                notes=(
                    f"Invoice created for {patient.full_name} (ID: {patient.id}) "
                    f"with {len(line_items)} item(s), net {totals.net_amount}"
                ),
            ))
            db.flush()

        logger.info(
            f"Invoice {invoice.invoice_number} created for patient {patient.id}: "
            f"total={totals.total_amount} discount={totals.discount_amount} net={totals.net_amount}"
        )
        return invoice
