"""
Unit tests for configuration constants.
"""

from decimal import Decimal

from core.config import (
    _get_bool,
    BILLING_DEFAULT_PAGE_SIZE,
    BILLING_DISCOUNT_RATE,
    BILLING_MAX_PAGE_SIZE,
    DATABASE_URL,
    PAYMENT_CONFLICT_MAX_ATTEMPTS,
)


class TestConfigConstants:
    """Test cases for configuration constants."""

    def test_types_and_values(self):
        """Test that constants have correct types and sensible values."""
        assert isinstance(DATABASE_URL, str)
        assert isinstance(BILLING_DISCOUNT_RATE, Decimal)
        assert Decimal("0") <= BILLING_DISCOUNT_RATE < Decimal("1")
        assert 1 <= BILLING_DEFAULT_PAGE_SIZE <= BILLING_MAX_PAGE_SIZE
        assert PAYMENT_CONFLICT_MAX_ATTEMPTS >= 1

    def test_get_bool(self, monkeypatch):
        """Test boolean flags read from the environment."""
        monkeypatch.delenv("BILLING_TEST_FLAG", raising=False)
        assert _get_bool("BILLING_TEST_FLAG", False) is False
        assert _get_bool("BILLING_TEST_FLAG", True) is True

        for truthy in ("1", "true", "YES", " on "):
            monkeypatch.setenv("BILLING_TEST_FLAG", truthy)
            assert _get_bool("BILLING_TEST_FLAG", False) is True

        monkeypatch.setenv("BILLING_TEST_FLAG", "off")
        assert _get_bool("BILLING_TEST_FLAG", True) is False
