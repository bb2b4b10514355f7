"""
Concurrency tests for payments against one invoice.

Several threads post payments to the same invoice at once, each through its own
session and connection. Whatever the interleaving, no update may be lost and the
invoice may only become paid once.
"""

import threading
from decimal import Decimal

import pytest

from core.billing_errors import ConflictError, InvalidStateError
from models import Invoice, Payment
from services.invoice_service import InvoiceService
from services.payment_service import PaymentService
from tests.conftest import create_service_item


@pytest.fixture
def invoice_id(db_session, cashier, patient) -> int:
    item = create_service_item(db_session, "Therapy Package", "400.00")
    invoice = InvoiceService.create_invoice(db_session, cashier, patient.id, None, [(item.id, 1)])
    return invoice.id


def _run_concurrently(target, count: int):
    barrier = threading.Barrier(count)
    results = []
    errors = []
    lock = threading.Lock()

    def worker(index):
        barrier.wait()
        try:
            outcome = target(index)
            with lock:
                results.append(outcome)
        except Exception as e:  # collected and asserted on by the test
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


class TestConcurrentPayments:
    """Test per-invoice serialization of payments."""

    def test_payments_summing_to_net_settle_exactly_once(self, session_factory, cashier, invoice_id):
        count = 4

        def pay(index):
            return PaymentService.apply_payment_with_retry(
                session_factory, cashier, invoice_id, Decimal("100.00"), "cash", max_attempts=20
            )

        results, errors = _run_concurrently(pay, count)

        assert errors == []
        assert len(results) == count
        assert sum(r.amount_applied for r in results) == Decimal("400.00")
        assert [r.new_status for r in results].count("paid") == 1

        with session_factory() as db:
            invoice = db.query(Invoice).filter(Invoice.id == invoice_id).one()
            assert invoice.paid_amount == Decimal("400.00")
            assert invoice.payment_status == "paid"
            assert invoice.payment_count == count
            assert invoice.version == count + 1

            payments = db.query(Payment).filter(Payment.invoice_id == invoice_id).all()
            assert len(payments) == count
            assert sorted(p.sequence for p in payments) == [1, 2, 3, 4]
            assert len({p.receipt_number for p in payments}) == count
            assert [p.resulting_status for p in payments].count("paid") == 1

    def test_racing_full_payments_only_one_wins(self, session_factory, cashier, invoice_id):
        count = 3

        def pay(index):
            db = session_factory()
            try:
                return PaymentService.apply_payment(db, cashier, invoice_id, Decimal("400.00"), "cash")
            finally:
                db.close()

        results, errors = _run_concurrently(pay, count)

        # Losers either lost the version race or saw the invoice already paid
        assert len(results) == 1
        assert len(errors) == count - 1
        assert all(isinstance(e, (ConflictError, InvalidStateError)) for e in errors)

        with session_factory() as db:
            invoice = db.query(Invoice).filter(Invoice.id == invoice_id).one()
            assert invoice.paid_amount == Decimal("400.00")
            assert invoice.payment_status == "paid"
            assert db.query(Payment).filter(Payment.invoice_id == invoice_id).count() == 1


class TestRetryWrapper:
    """Test apply_payment_with_retry."""

    def test_retries_conflicts_only(self, session_factory, cashier, invoice_id, monkeypatch):
        calls = []
        real_apply = PaymentService.apply_payment

        def flaky_apply(db, *args, **kwargs):
            calls.append(db)
            if len(calls) < 3:
                raise ConflictError("Invoice was updated by another payment; please retry")
            return real_apply(db, *args, **kwargs)

        monkeypatch.setattr(PaymentService, "apply_payment", staticmethod(flaky_apply))

        result = PaymentService.apply_payment_with_retry(session_factory, cashier, invoice_id, "150.00", "cash")

        assert len(calls) == 3
        assert len({id(db) for db in calls}) == 3  # fresh session per attempt
        assert result.new_status == "partial"

    def test_gives_up_after_max_attempts(self, session_factory, cashier, invoice_id, monkeypatch):
        calls = []

        def always_conflict(db, *args, **kwargs):
            calls.append(db)
            raise ConflictError("Invoice was updated by another payment; please retry")

        monkeypatch.setattr(PaymentService, "apply_payment", staticmethod(always_conflict))

        with pytest.raises(ConflictError):
            PaymentService.apply_payment_with_retry(
                session_factory, cashier, invoice_id, "150.00", "cash", max_attempts=2
            )

        assert len(calls) == 2

    def test_non_positive_max_attempts_still_tries_once(self, session_factory, cashier, invoice_id, monkeypatch):
        calls = []

        def always_conflict(db, *args, **kwargs):
            calls.append(db)
            raise ConflictError("Invoice was updated by another payment; please retry")

        monkeypatch.setattr(PaymentService, "apply_payment", staticmethod(always_conflict))

        with pytest.raises(ConflictError):
            PaymentService.apply_payment_with_retry(
                session_factory, cashier, invoice_id, "150.00", "cash", max_attempts=0
            )

        assert len(calls) == 1

    def test_does_not_retry_other_errors(self, session_factory, cashier, invoice_id, monkeypatch):
        calls = []

        def already_paid(db, *args, **kwargs):
            calls.append(db)
            raise InvalidStateError("Invoice not found or already paid")

        monkeypatch.setattr(PaymentService, "apply_payment", staticmethod(already_paid))

        with pytest.raises(InvalidStateError):
            PaymentService.apply_payment_with_retry(session_factory, cashier, invoice_id, "150.00", "cash")

        assert len(calls) == 1
