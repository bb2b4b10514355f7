# Package initialization
# Import all models to ensure relationships are properly established
from .patient import Patient
from .service_item import ServiceItem
from .invoice import Invoice
from .invoice_line_item import InvoiceLineItem
from .payment import Payment
from .billing_log import BillingLog

__all__ = [
    "Patient",
    "ServiceItem",
    "Invoice",
    "InvoiceLineItem",
    "Payment",
    "BillingLog",
]
