"""
Billing capabilities and the actor passed into every ledger operation.

Roles are translated into a capability set once, when the request is
authenticated. Ledger services never look at roles or ambient session state;
they only check the capabilities carried by the Actor they are handed.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from core.billing_errors import PermissionDeniedError

# Capabilities
CREATE_INVOICE = "create_invoice"
APPLY_PAYMENT = "apply_payment"
VIEW_BILLING = "view_billing"

ALL_CAPABILITIES: FrozenSet[str] = frozenset({CREATE_INVOICE, APPLY_PAYMENT, VIEW_BILLING})

# Role -> capability mapping (the only place roles are interpreted)
ROLE_CAPABILITIES = {
    "admin": ALL_CAPABILITIES,
    "cashier": ALL_CAPABILITIES,
    "practitioner": frozenset({VIEW_BILLING}),
}


def resolve_capabilities(roles: Iterable[str]) -> FrozenSet[str]:
    """Union of the capabilities granted by each role. Unknown roles grant nothing."""
    capabilities: FrozenSet[str] = frozenset()
    for role in roles:
        capabilities = capabilities | ROLE_CAPABILITIES.get(role.strip().lower(), frozenset())
    return capabilities


@dataclass(frozen=True)
class Actor:
    """The caller of a ledger operation: who they are and what they may do."""
    user_id: Optional[int]
    roles: Tuple[str, ...] = ()
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_roles(cls, user_id: Optional[int], roles: Iterable[str]) -> "Actor":
        """Build an actor, resolving its capability set from its roles."""
        role_tuple = tuple(roles)
        return cls(user_id=user_id, roles=role_tuple, capabilities=resolve_capabilities(role_tuple))

    def can(self, capability: str) -> bool:
        """Check whether the actor holds a capability."""
        return capability in self.capabilities


def ensure_capability(actor: Actor, capability: str) -> None:
    """
    Raise PermissionDeniedError unless the actor holds the capability.

    Raises:
        PermissionDeniedError: If the capability is missing
    """
    if not actor.can(capability):
        raise PermissionDeniedError(f"Access denied: '{capability}' privilege required")
