"""Application constants and configuration values."""

from decimal import Decimal

from core.config import FRONTEND_URL

# Database field lengths
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
# Note: production URLs should be added via FRONTEND_URL environment variable
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Money
CURRENCY_QUANTUM = Decimal("0.01")
PAYMENT_EPSILON = Decimal("0.01")  # Absorbs rounding when comparing paid vs net
MAX_MONEY_AMOUNT = Decimal("99999999.99")  # Largest value a Numeric(10, 2) column holds

# Discount classifications
DISCOUNT_NONE = "none"
DISCOUNT_SENIOR = "senior"
DISCOUNT_PWD = "pwd"
DISCOUNT_TYPES = (DISCOUNT_NONE, DISCOUNT_SENIOR, DISCOUNT_PWD)
DISCOUNTED_TYPES = (DISCOUNT_SENIOR, DISCOUNT_PWD)

# Payment status
PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_PAID)
PAYABLE_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL)

# Payment methods
PAYMENT_METHODS = ("cash", "card", "check")

# Document numbers
INVOICE_NUMBER_PREFIX = "INV"
RECEIPT_NUMBER_PREFIX = "RCP"
DOCUMENT_ID_DIGITS = 6
RECEIPT_SEQUENCE_DIGITS = 2

# Billing audit log actions
BILLING_LOG_INVOICE_CREATED = "invoice_created"
BILLING_LOG_PAYMENT_PROCESSED = "payment_processed"
