"""Capability checks at the HTTP boundary."""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException

from staybook.api.auth import get_current_user
from staybook.domain.users import Capability, User


def require_capability(capability: Capability) -> Callable[..., User]:
    """Create a dependency that admits only users granted capability.

    Usage:
        @router.get("/something")
        def endpoint(user: User = Depends(require_capability(Capability.VIEW_RESERVATIONS))):
            ...
    """

    def dependency(user: User = Depends(get_current_user)) -> User:
        if not user.can(capability):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return user

    return dependency
