"""
Service for applying payments to invoices.

Each payment reads the invoice's current balance, splits the cash tendered into
the amount applied and change, and writes the payment, the invoice update and a
receipt number in one transaction.

Payments against the same invoice are serialized two ways: the invoice row is
read with SELECT ... FOR UPDATE (a row lock on PostgreSQL) and the update is a
compare-and-swap on invoices.version. If another payment got there first the
update matches no row and ConflictError is raised; nothing is written.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.capabilities import Actor, APPLY_PAYMENT, ensure_capability
from core.billing_errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from core.config import PAYMENT_CONFLICT_MAX_ATTEMPTS
from core.constants import BILLING_LOG_PAYMENT_PROCESSED, MAX_MONEY_AMOUNT, PAYABLE_STATUSES, PAYMENT_METHODS
from core.database import transaction_scope
from models.billing_log import BillingLog
from models.invoice import Invoice
from models.payment import Payment
from services.billing_calculations import MoneyLike, ZERO, allocate_payment, to_money
from services.receipt_service import ReceiptService
from utils.datetime_utils import clinic_now, ensure_clinic_tz

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a successful payment."""
    payment_id: int
    invoice_id: int
    receipt_number: str
    cash_tendered: Decimal
    amount_applied: Decimal
    change_amount: Decimal
    new_status: str
    paid_amount: Decimal
    remaining_balance: Decimal
    paid_at: datetime


class PaymentService:
    """Service for payment operations."""

    @staticmethod
    def _parse_tendered(cash_tendered: MoneyLike) -> Decimal:
        try:
            tendered = to_money(cash_tendered)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Invalid payment amount")
        if tendered <= ZERO:
            raise ValidationError("non-positive amount")
        if tendered > MAX_MONEY_AMOUNT:
            raise ValidationError(f"Payment amount exceeds the maximum of {MAX_MONEY_AMOUNT}")
        return tendered

    @staticmethod
    def apply_payment(
        db: Session,
        actor: Actor,
        invoice_id: int,
        cash_tendered: MoneyLike,
        method: str,
        notes: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> PaymentResult:
        """
        Apply a payment to an invoice.

        The applied amount is min(cash_tendered, outstanding balance); the rest
        is returned as change. paid_amount therefore never exceeds net_amount.

        Args:
            db: Database session
            actor: Caller (must hold the apply_payment capability)
            invoice_id: ID of the invoice to pay
            cash_tendered: Amount handed over by the patient
            method: 'cash', 'card' or 'check'
            notes: Optional cashier notes
            paid_at: When the payment was received (defaults to now, clinic time)

        Returns:
            PaymentResult with receipt number, change and the invoice's new status

        Raises:
            PermissionDeniedError: If the actor may not take payments
            ValidationError: If the amount is out of range or the method is unknown
            NotFoundError: If the invoice does not exist
            InvalidStateError: If the invoice is already paid
            ConflictError: If a concurrent payment updated the invoice first
            StorageError: If the transaction fails
        """
        ensure_capability(actor, APPLY_PAYMENT)

        tendered = PaymentService._parse_tendered(cash_tendered)
        method = (method or "").strip().lower()
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}")

        paid_at = ensure_clinic_tz(paid_at) or clinic_now()

        with transaction_scope(db):
            invoice = db.query(Invoice).filter(
                Invoice.id == invoice_id
            ).with_for_update().first()

            if not invoice:
                raise NotFoundError("Invoice not found")
            if invoice.payment_status not in PAYABLE_STATUSES:
                raise InvalidStateError("Invoice not found or already paid")

            net_amount = to_money(invoice.net_amount)
            paid_amount = to_money(invoice.paid_amount)
            if net_amount - paid_amount <= ZERO:
                raise InvalidStateError("Invoice has no outstanding balance")

            allocation = allocate_payment(tendered, paid_amount, net_amount)
            sequence = invoice.payment_count + 1
            expected_version = invoice.version
            receipt_number = ReceiptService.issue_receipt(invoice.id, paid_at, sequence)

            result = db.execute(
                update(Invoice)
                .where(Invoice.id == invoice.id, Invoice.version == expected_version)
                .values(
                    paid_amount=allocation.new_paid_amount,
                    payment_status=allocation.new_status,
                    payment_count=sequence,
                    version=expected_version + 1,
                    updated_at=clinic_now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.warning(f"Payment conflict on invoice {invoice.id} (expected version {expected_version})")
                raise ConflictError("Invoice was updated by another payment; please retry")

            payment = Payment(
                invoice_id=invoice.id,
                amount=allocation.amount_applied,
                cash_tendered=tendered,
                change_amount=allocation.change_amount,
                method=method,
                cashier_user_id=actor.user_id,
                receipt_number=receipt_number,
                sequence=sequence,
                resulting_status=allocation.new_status,
                notes=notes or None,
                paid_at=paid_at,
            )
            db.add(payment)
            try:
                db.flush()
            except IntegrityError as e:
                # Duplicate receipt number / sequence: another payment won the race
                logger.warning(f"Receipt collision on invoice {invoice.id}: {e}")
                raise ConflictError("Invoice was updated by another payment; please retry") from e

            db.add(BillingLog(
                invoice_id=invoice.id,
                payment_id=payment.id,
                action=BILLING_LOG_PAYMENT_PROCESSED,
                performed_by_user_id=actor.user_id,
                notes=(
                    f"Payment processed - Method: {method}, Tendered: {tendered}, "
                    f"Applied: {allocation.amount_applied}, Change: {allocation.change_amount}"
                ),
            ))
            db.flush()

        # The bulk UPDATE bypassed the identity map; reload on next access
        db.expire(invoice)

        logger.info(
            f"Payment {receipt_number} posted to invoice {invoice_id}: applied={allocation.amount_applied} "
            f"change={allocation.change_amount} status={allocation.new_status}"
        )
        return PaymentResult(
            payment_id=payment.id,
            invoice_id=invoice_id,
            receipt_number=receipt_number,
            cash_tendered=tendered,
            amount_applied=allocation.amount_applied,
            change_amount=allocation.change_amount,
            new_status=allocation.new_status,
            paid_amount=allocation.new_paid_amount,
            remaining_balance=allocation.remaining_after,
            paid_at=paid_at,
        )

    @staticmethod
    def apply_payment_with_retry(
        session_factory: Callable[[], Session],
        actor: Actor,
        invoice_id: int,
        cash_tendered: MoneyLike,
        method: str,
        notes: Optional[str] = None,
        paid_at: Optional[datetime] = None,
        max_attempts: int = PAYMENT_CONFLICT_MAX_ATTEMPTS,
    ) -> PaymentResult:
        """
        Apply a payment, retrying in a fresh session when it loses a concurrent race.

        Only ConflictError is retried. Every other error (including the invoice
        becoming paid in the meantime) is raised on the first occurrence.

        Args:
            session_factory: Callable returning a new Session (e.g. SessionLocal)
            max_attempts: Maximum number of attempts (>= 1)

        Returns:
            PaymentResult of the attempt that succeeded

        Raises:
            ConflictError: If every attempt conflicted
        """
        attempts = max(max_attempts, 1)
        for attempt in range(1, attempts + 1):
            db = session_factory()
            try:
                return PaymentService.apply_payment(
                    db, actor, invoice_id, cash_tendered, method, notes=notes, paid_at=paid_at
                )
            except ConflictError:
                if attempt == attempts:
                    logger.warning(f"Payment on invoice {invoice_id} still conflicting after {attempts} attempts")
                    raise
                logger.info(f"Retrying payment on invoice {invoice_id} (attempt {attempt}/{attempts})")
            finally:
                db.close()

        raise ConflictError("Invoice was updated by another payment; please retry")
