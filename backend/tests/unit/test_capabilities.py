"""
Unit tests for billing capabilities and actors.
"""

import dataclasses

import pytest

from auth.capabilities import (
    ALL_CAPABILITIES,
    APPLY_PAYMENT,
    CREATE_INVOICE,
    VIEW_BILLING,
    Actor,
    ensure_capability,
    resolve_capabilities,
)
from core.billing_errors import PermissionDeniedError


class TestResolveCapabilities:
    """Test role to capability mapping."""

    @pytest.mark.parametrize("role", ["admin", "cashier"])
    def test_billing_staff_get_everything(self, role):
        assert resolve_capabilities([role]) == ALL_CAPABILITIES

    def test_practitioner_can_only_view(self):
        assert resolve_capabilities(["practitioner"]) == frozenset({VIEW_BILLING})

    def test_unknown_roles_grant_nothing(self):
        assert resolve_capabilities(["receptionist"]) == frozenset()
        assert resolve_capabilities([]) == frozenset()

    def test_roles_are_combined(self):
        assert resolve_capabilities(["practitioner", "Cashier"]) == ALL_CAPABILITIES


class TestActor:
    """Test the actor passed into ledger operations."""

    def test_from_roles(self):
        actor = Actor.from_roles(7, ["practitioner"])

        assert actor.user_id == 7
        assert actor.roles == ("practitioner",)
        assert actor.can(VIEW_BILLING)
        assert not actor.can(APPLY_PAYMENT)

    def test_is_immutable(self):
        actor = Actor.from_roles(7, ["practitioner"])

        with pytest.raises(dataclasses.FrozenInstanceError):
            actor.capabilities = ALL_CAPABILITIES  # type: ignore[misc]

    def test_ensure_capability(self):
        ensure_capability(Actor.from_roles(1, ["cashier"]), CREATE_INVOICE)

        with pytest.raises(PermissionDeniedError):
            ensure_capability(Actor.from_roles(2, ["practitioner"]), CREATE_INVOICE)
