"""
Integration tests for billing read queries.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from core.billing_errors import NotFoundError, ValidationError
from services.billing_query_service import BillingQueryService
from services.catalog_service import CatalogService
from services.invoice_service import InvoiceService
from services.payment_service import PaymentService
from tests.conftest import create_patient, create_service_item
from utils.datetime_utils import CLINIC_TZ, ensure_clinic_tz


@pytest.fixture
def ledger(db_session, cashier, consultation):
    """Three invoices for two patients: one unpaid, one partial, one paid."""
    ana = create_patient(db_session, "Ana Cruz")
    ben = create_patient(db_session, "Ben Dela Rosa")

    unpaid = InvoiceService.create_invoice(db_session, cashier, ana.id, None, [(consultation.id, 1)])
    partial = InvoiceService.create_invoice(
        db_session, cashier, ben.id, None, [(consultation.id, 1)], discount_type="senior"
    )
    paid = InvoiceService.create_invoice(db_session, cashier, ana.id, None, [(consultation.id, 2)])

    PaymentService.apply_payment(db_session, cashier, partial.id, "150.00", "cash")
    PaymentService.apply_payment(db_session, cashier, paid.id, "1000.00", "card")

    return {"unpaid": unpaid, "partial": partial, "paid": paid, "ana": ana, "ben": ben}


class TestListInvoices:
    """Test invoice list filters and pagination."""

    def test_lists_newest_first(self, db_session, ledger):
        page = BillingQueryService.list_invoices(db_session)

        assert page.total == 3
        assert [item.id for item in page.items] == [ledger["paid"].id, ledger["partial"].id, ledger["unpaid"].id]
        assert page.has_more is False

    def test_search_by_patient_name(self, db_session, ledger):
        page = BillingQueryService.list_invoices(db_session, search_text="ana")

        assert page.total == 2
        assert {item.patient_name for item in page.items} == {"Ana Cruz"}

    def test_search_by_invoice_number(self, db_session, ledger):
        number = ledger["partial"].invoice_number
        page = BillingQueryService.list_invoices(db_session, search_text=number)

        assert [item.invoice_number for item in page.items] == [number]

    def test_status_filter(self, db_session, ledger):
        page = BillingQueryService.list_invoices(db_session, status="partial")

        assert [item.id for item in page.items] == [ledger["partial"].id]
        assert page.items[0].remaining_balance == Decimal("250.00")

    def test_patient_filter(self, db_session, ledger):
        page = BillingQueryService.list_invoices(db_session, patient_id=ledger["ana"].id)

        assert page.total == 2
        assert {item.id for item in page.items} == {ledger["unpaid"].id, ledger["paid"].id}

        paid_only = BillingQueryService.list_invoices(db_session, patient_id=ledger["ana"].id, status="paid")
        assert [item.id for item in paid_only.items] == [ledger["paid"].id]

        assert BillingQueryService.list_invoices(db_session, patient_id=999999).total == 0

    def test_invalid_status(self, db_session, ledger):
        with pytest.raises(ValidationError):
            BillingQueryService.list_invoices(db_session, status="void")

    def test_date_filter(self, db_session, ledger):
        today = ensure_clinic_tz(ledger["unpaid"].created_at).date()

        assert BillingQueryService.list_invoices(db_session, invoice_date=today).total == 3
        assert BillingQueryService.list_invoices(db_session, invoice_date=today - timedelta(days=1)).total == 0

    def test_pagination(self, db_session, ledger):
        first = BillingQueryService.list_invoices(db_session, page=1, page_size=2)
        second = BillingQueryService.list_invoices(db_session, page=2, page_size=2)

        assert len(first.items) == 2 and first.has_more is True
        assert len(second.items) == 1 and second.has_more is False
        assert {i.id for i in first.items}.isdisjoint({i.id for i in second.items})

    def test_page_size_is_capped(self, db_session, ledger):
        with patch('services.billing_query_service.BILLING_MAX_PAGE_SIZE', 2):
            page = BillingQueryService.list_invoices(db_session, page_size=500)

        assert page.page_size == 2

    def test_invalid_page(self, db_session):
        with pytest.raises(ValidationError):
            BillingQueryService.list_invoices(db_session, page=0)


class TestInvoiceDetail:
    """Test invoice detail view."""

    def test_detail(self, db_session, ledger):
        detail = BillingQueryService.get_invoice_detail(db_session, ledger["partial"].id)

        header = detail["header"]
        assert header["patient_name"] == "Ben Dela Rosa"
        assert header["net_amount"] == Decimal("400.00")
        assert header["paid_amount"] == Decimal("150.00")
        assert header["remaining_balance"] == Decimal("250.00")
        assert header["payment_status"] == "partial"

        assert [line["item_name"] for line in detail["line_items"]] == ["General Consultation"]
        assert len(detail["payments"]) == 1
        assert detail["payments"][0]["amount"] == Decimal("150.00")

    def test_missing_invoice(self, db_session):
        with pytest.raises(NotFoundError):
            BillingQueryService.get_invoice_detail(db_session, 123456)


class TestListPayments:
    """Test payment history and summary."""

    def test_summary(self, db_session, ledger):
        result = BillingQueryService.list_payments(db_session)

        assert result["total"] == 2
        assert result["summary"]["total_payments"] == 2
        # 150.00 partial + 1000.00 applied to the paid invoice (no change due)
        assert result["summary"]["total_collected"] == Decimal("1150.00")
        assert result["summary"]["average_payment"] == Decimal("575.00")
        assert {p["patient_name"] for p in result["payments"]} == {"Ana Cruz", "Ben Dela Rosa"}

    def test_date_range(self, db_session, cashier, patient, consultation):
        invoice = InvoiceService.create_invoice(db_session, cashier, patient.id, None, [(consultation.id, 1)])
        PaymentService.apply_payment(
            db_session, cashier, invoice.id, "100.00", "cash", paid_at=datetime(2025, 1, 10, 23, 30, tzinfo=CLINIC_TZ)
        )
        PaymentService.apply_payment(
            db_session, cashier, invoice.id, "100.00", "cash", paid_at=datetime(2025, 1, 11, 0, 15, tzinfo=CLINIC_TZ)
        )

        result = BillingQueryService.list_payments(db_session, date_from=date(2025, 1, 10), date_to=date(2025, 1, 10))
        assert result["total"] == 1
        assert result["payments"][0]["receipt_number"].startswith("RCP-20250110-")

        result = BillingQueryService.list_payments(db_session, date_from=date(2025, 1, 10), date_to=date(2025, 1, 11))
        assert result["total"] == 2

    def test_empty_range(self, db_session):
        result = BillingQueryService.list_payments(db_session, date_from=date(2030, 1, 1), date_to=date(2030, 1, 31))

        assert result["payments"] == []
        assert result["summary"] == {
            "total_payments": 0,
            "total_collected": Decimal("0.00"),
            "average_payment": Decimal("0.00"),
        }

    def test_reversed_range(self, db_session):
        with pytest.raises(ValidationError):
            BillingQueryService.list_payments(db_session, date_from=date(2025, 2, 1), date_to=date(2025, 1, 1))


class TestBillingStatistics:
    """Test collection statistics."""

    def test_statistics(self, db_session, ledger):
        stats = BillingQueryService.get_billing_statistics(db_session)

        assert stats["invoice_count"] == 3
        assert stats["status_counts"] == {"unpaid": 1, "partial": 1, "paid": 1}
        assert stats["total_billed"] == Decimal("2000.00")
        assert stats["total_discount"] == Decimal("100.00")
        assert stats["total_net"] == Decimal("1900.00")
        assert stats["total_collected"] == Decimal("1150.00")
        assert stats["total_outstanding"] == Decimal("750.00")

    def test_statistics_empty(self, db_session):
        stats = BillingQueryService.get_billing_statistics(db_session)

        assert stats["invoice_count"] == 0
        assert stats["total_outstanding"] == Decimal("0.00")


class TestCatalog:
    """Test catalog lookups."""

    def test_get_active_item(self, db_session, consultation):
        item = CatalogService.get_active_item(db_session, consultation.id)

        assert item.name == "General Consultation"
        assert item.unit_price == Decimal("500.00")
        assert CatalogService.get_active_item(db_session, 999999) is None

    def test_inactive_item_resolves_to_none(self, db_session):
        retired = create_service_item(db_session, "Retired Test", "80.00", is_active=False)

        assert CatalogService.get_active_item(db_session, retired.id) is None

    def test_list_service_items_grouped(self, db_session, consultation):
        create_service_item(db_session, "Urinalysis", "150.00", category="Laboratory")
        create_service_item(db_session, "CBC", "275.50", category="Laboratory")
        create_service_item(db_session, "Gauze", "20.00")
        create_service_item(db_session, "Old X-Ray", "900.00", category="Imaging", is_active=False)

        groups = CatalogService.list_service_items(db_session)

        assert [g["category"] for g in groups] == ["Consultation", "Laboratory", "Other Services"]
        assert [i["name"] for i in groups[1]["items"]] == ["CBC", "Urinalysis"]

        searched = CatalogService.list_service_items(db_session, search="uri")
        assert [i["name"] for g in searched for i in g["items"]] == ["Urinalysis"]
