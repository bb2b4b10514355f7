"""
Unit tests for receipt numbering and receipt views.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from services.receipt_service import ReceiptService
from utils.datetime_utils import CLINIC_TZ


class TestIssueReceipt:
    """Test receipt number format."""

    def test_format(self):
        issued_at = datetime(2025, 1, 1, 10, 30, tzinfo=CLINIC_TZ)

        assert ReceiptService.issue_receipt(42, issued_at, 1) == "RCP-20250101-000042-01"

    def test_date_is_clinic_local(self):
        # 20:00 UTC on Dec 31 is already Jan 1 in the clinic (UTC+8)
        issued_at = datetime(2024, 12, 31, 20, 0, tzinfo=timezone.utc)

        assert ReceiptService.issue_receipt(7, issued_at, 3) == "RCP-20250101-000007-03"

    def test_same_invoice_same_day_payments_get_distinct_numbers(self):
        issued_at = datetime(2025, 3, 15, 9, 0, tzinfo=CLINIC_TZ)

        first = ReceiptService.issue_receipt(42, issued_at, 1)
        second = ReceiptService.issue_receipt(42, issued_at, 2)

        assert first != second
        assert second.endswith("-02")

    def test_rejects_non_positive_sequence(self):
        with pytest.raises(ValueError):
            ReceiptService.issue_receipt(42, datetime(2025, 1, 1, tzinfo=CLINIC_TZ), 0)


class TestBuildReceiptData:
    """Test the printable receipt view."""

    def test_includes_invoice_and_patient(self):
        patient = Mock(id=5, full_name="Maria Santos")
        invoice = Mock(
            id=42,
            invoice_number="INV-20250101-000042",
            total_amount=Decimal("500.00"),
            discount_type="senior",
            discount_amount=Decimal("100.00"),
            net_amount=Decimal("400.00"),
            patient=patient,
        )
        payment = Mock(
            id=9,
            receipt_number="RCP-20250101-000042-01",
            paid_at=datetime(2025, 1, 1, 10, 0),
            amount=Decimal("400.00"),
            cash_tendered=Decimal("500.00"),
            change_amount=Decimal("100.00"),
            method="cash",
            cashier_user_id=101,
            notes=None,
            resulting_status="paid",
            invoice=invoice,
        )

        data = ReceiptService.build_receipt_data(payment)

        assert data["receipt_number"] == "RCP-20250101-000042-01"
        assert data["amount_paid"] == Decimal("400.00")
        assert data["change_amount"] == Decimal("100.00")
        assert data["paid_at"] == "2025-01-01T10:00:00+08:00"
        assert data["invoice"]["net_amount"] == Decimal("400.00")
        assert data["patient"] == {"id": 5, "name": "Maria Santos"}
