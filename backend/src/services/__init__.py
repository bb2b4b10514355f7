"""
Services package for billing ledger business logic.

This package contains service classes shared by the billing API endpoints
and by scripts that post invoices or payments directly.
"""

from .catalog_service import CatalogService
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .receipt_service import ReceiptService
from .billing_query_service import BillingQueryService

__all__ = [
    "CatalogService",
    "InvoiceService",
    "PaymentService",
    "ReceiptService",
    "BillingQueryService",
]
