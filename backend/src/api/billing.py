"""
Billing API endpoints.

Handles invoice creation, payment posting, receipt lookup and the read-only
billing views (invoice list, payment history, statistics, service catalog).
"""

import logging
from typing import List, Optional, Dict, Any
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.capabilities import Actor, APPLY_PAYMENT, CREATE_INVOICE, VIEW_BILLING
from auth.permissions import require_capability
from core.billing_errors import (
    BillingError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.constants import DISCOUNT_NONE, MAX_NOTES_LENGTH
from core.database import get_db
from services import BillingQueryService, CatalogService, InvoiceService, PaymentService, ReceiptService
from utils.datetime_utils import ensure_clinic_tz, parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http_exception(error: BillingError) -> HTTPException:
    """Map a ledger error onto the HTTP status the client sees."""
    if isinstance(error, InvalidStateError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, PermissionDeniedError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, ConflictError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=error.message)


# Request/Response Models
class InvoiceItemRequest(BaseModel):
    """Request model for one requested invoice line. Prices always come from the catalog."""
    service_item_id: int
    quantity: int = Field(1, description="Lines with quantity < 1 are skipped")


class CreateInvoiceRequest(BaseModel):
    """Request model for invoice creation."""
    patient_id: Optional[int] = None
    visit_id: Optional[int] = None
    items: List[InvoiceItemRequest] = Field(default_factory=list)
    discount_type: str = Field(DISCOUNT_NONE, description="'none', 'senior' or 'pwd'")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class InvoiceLineItemResponse(BaseModel):
    """Response model for an invoice line item."""
    id: int
    service_item_id: int
    item_name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    display_order: int


class InvoiceResponse(BaseModel):
    """Response model for a created invoice."""
    invoice_id: int
    invoice_number: str
    patient_id: int
    visit_id: Optional[int] = None
    total_amount: Decimal
    discount_type: str
    discount_amount: Decimal
    net_amount: Decimal
    paid_amount: Decimal
    payment_status: str
    line_items: List[InvoiceLineItemResponse]
    created_at: str


class InvoiceSummaryResponse(BaseModel):
    """Response model for an invoice list row."""
    id: int
    invoice_number: Optional[str] = None
    patient_id: int
    patient_name: Optional[str] = None
    visit_id: Optional[int] = None
    total_amount: Decimal
    discount_type: str
    discount_amount: Decimal
    net_amount: Decimal
    paid_amount: Decimal
    remaining_balance: Decimal
    payment_status: str
    created_at: Optional[str] = None


class InvoiceListResponse(BaseModel):
    """Response model for the invoice list."""
    invoices: List[InvoiceSummaryResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


class PaymentRequest(BaseModel):
    """Request model for posting a payment."""
    amount: Decimal = Field(..., description="Cash tendered; any excess over the balance is returned as change")
    payment_method: str = Field("cash", description="'cash', 'card' or 'check'")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class PaymentResponse(BaseModel):
    """Response model for a posted payment."""
    payment_id: int
    invoice_id: int
    receipt_number: str
    cash_tendered: Decimal
    amount_applied: Decimal
    change_amount: Decimal
    payment_status: str
    paid_amount: Decimal
    remaining_balance: Decimal
    paid_at: str


def _parse_optional_date(value: Optional[str], name: str):
    if not value:
        return None
    try:
        return parse_date_string(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} (expected YYYY-MM-DD)")


# Endpoints
@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: CreateInvoiceRequest,
    actor: Actor = Depends(require_capability(CREATE_INVOICE)),
    db: Session = Depends(get_db)
):
    """
    Create an invoice for a patient.

    Every line is priced from the service catalog; inactive or unknown items
    and lines with quantity < 1 are skipped.
    """
    try:
        invoice = InvoiceService.create_invoice(
            db=db,
            actor=actor,
            patient_id=request.patient_id,
            visit_id=request.visit_id,
            requested_items=[(item.service_item_id, item.quantity) for item in request.items],
            discount_type=request.discount_type,
            notes=request.notes,
        )

        return InvoiceResponse(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            patient_id=invoice.patient_id,
            visit_id=invoice.visit_id,
            total_amount=invoice.total_amount,
            discount_type=invoice.discount_type,
            discount_amount=invoice.discount_amount,
            net_amount=invoice.net_amount,
            paid_amount=invoice.paid_amount,
            payment_status=invoice.payment_status,
            line_items=[
                InvoiceLineItemResponse(
                    id=item.id,
                    service_item_id=item.service_item_id,
                    item_name=item.item_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    subtotal=item.subtotal,
                    display_order=item.display_order,
                )
                for item in invoice.line_items
            ],
            created_at=ensure_clinic_tz(invoice.created_at).isoformat(),
        )

    except BillingError as e:
        db.rollback()
        logger.warning(f"Invoice creation rejected for patient {request.patient_id}: {e.message}")
        raise _to_http_exception(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Error creating invoice for patient {request.patient_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create invoice"
        )


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    search: Optional[str] = Query(None, description="Patient name or invoice number"),
    payment_status: Optional[str] = Query(None, alias="status"),
    invoice_date: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD"),
    patient_id: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
):
    """List invoices, newest first."""
    try:
        result = BillingQueryService.list_invoices(
            db,
            search_text=search,
            status=payment_status,
            invoice_date=_parse_optional_date(invoice_date, "date"),
            patient_id=patient_id,
            page=page,
            page_size=page_size,
        )
        return InvoiceListResponse(
            invoices=[InvoiceSummaryResponse(**vars(item)) for item in result.items],
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            has_more=result.has_more,
        )
    except BillingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Error listing invoices: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list invoices"
        )


@router.get("/invoices/{invoice_id}")
async def get_invoice(
    invoice_id: int,
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Get an invoice with its line items and payments."""
    try:
        return BillingQueryService.get_invoice_detail(db, invoice_id)
    except BillingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Error getting invoice {invoice_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get invoice"
        )


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def post_payment(
    invoice_id: int,
    request: PaymentRequest,
    actor: Actor = Depends(require_capability(APPLY_PAYMENT)),
    db: Session = Depends(get_db)
):
    """
    Post a payment against an invoice.

    The amount applied is capped at the outstanding balance; the response
    carries the change due and the receipt number.
    """
    try:
        result = PaymentService.apply_payment(
            db=db,
            actor=actor,
            invoice_id=invoice_id,
            cash_tendered=request.amount,
            method=request.payment_method,
            notes=request.notes,
        )

        return PaymentResponse(
            payment_id=result.payment_id,
            invoice_id=result.invoice_id,
            receipt_number=result.receipt_number,
            cash_tendered=result.cash_tendered,
            amount_applied=result.amount_applied,
            change_amount=result.change_amount,
            payment_status=result.new_status,
            paid_amount=result.paid_amount,
            remaining_balance=result.remaining_balance,
            paid_at=result.paid_at.isoformat(),
        )

    except BillingError as e:
        db.rollback()
        logger.warning(f"Payment rejected for invoice {invoice_id}: {e.message}")
        raise _to_http_exception(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Error posting payment for invoice {invoice_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process payment"
        )


@router.get("/payments")
async def list_payments(
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """List payments in a date range with a collection summary."""
    try:
        return BillingQueryService.list_payments(
            db,
            date_from=_parse_optional_date(date_from, "date_from"),
            date_to=_parse_optional_date(date_to, "date_to"),
            page=page,
            page_size=page_size,
        )
    except BillingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Error listing payments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list payments"
        )


@router.get("/receipts/{receipt_number}")
async def get_receipt(
    receipt_number: str,
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Get a receipt by its number."""
    try:
        payment = ReceiptService.get_receipt(db, receipt_number)
        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Receipt not found"
            )
        return ReceiptService.build_receipt_data(payment)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error getting receipt {receipt_number}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get receipt"
        )


@router.get("/service-items")
async def list_service_items(
    search: Optional[str] = Query(None),
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """List active service items grouped by category."""
    try:
        return {"categories": CatalogService.list_service_items(db, search=search)}
    except Exception as e:
        logger.exception(f"Error listing service items: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list service items"
        )


@router.get("/statistics")
async def get_statistics(
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    actor: Actor = Depends(require_capability(VIEW_BILLING)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Invoice counts per status and billed/collected/outstanding totals."""
    try:
        return BillingQueryService.get_billing_statistics(
            db,
            date_from=_parse_optional_date(date_from, "date_from"),
            date_to=_parse_optional_date(date_to, "date_to"),
        )
    except BillingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Error getting billing statistics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get billing statistics"
        )
