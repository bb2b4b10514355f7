# pyright: reportMissingTypeStubs=false
from fastapi import Depends, HTTPException, status

from auth.capabilities import Actor
from auth.dependencies import get_current_actor


def require_capability(capability: str):
    """
    Dependency that ensures the caller holds a billing capability.

    Args:
        capability: Capability name (e.g. CREATE_INVOICE)

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.can(capability):
            return actor

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied: '{capability}' privilege required"
        )

    return dependency
