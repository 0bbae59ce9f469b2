"""Users, roles and capabilities.

A role grants a fixed set of capabilities; code asks User.can(capability)
rather than comparing role names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    GUEST = "guest"
    STAFF = "staff"
    ADMIN = "admin"


class Capability(str, Enum):
    VIEW_RESERVATIONS = "view_reservations"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.GUEST: frozenset(),
    Role.STAFF: frozenset({Capability.VIEW_RESERVATIONS}),
    Role.ADMIN: frozenset(Capability),
}


def parse_role(value: str | None) -> Role:
    """Map a stored role to Role; unknown or missing values get the least privilege."""
    try:
        return Role((value or "").strip().lower())
    except ValueError:
        return Role.GUEST


@dataclass(frozen=True)
class User:
    id: str
    external_subject: str
    email: str | None = None
    name: str | None = None
    role: Role = Role.GUEST

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES[self.role]
