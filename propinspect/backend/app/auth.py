# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass

from .domain.inspection.errors import AuthorizationDenied

ROLE_ADMIN = "ADMIN"
ROLE_INSPECTOR = "INSPECTOR"

ROLES = (ROLE_ADMIN, ROLE_INSPECTOR)


@dataclass(frozen=True)
class Principal:
    """
    Already-authenticated caller. Credential checks happen upstream of the engine;
    this value is trusted as given.
    """

    id: str
    role: str  # ADMIN | INSPECTOR

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def require_role(p: Principal, *roles: str) -> Principal:
    if p.role not in roles:
        raise AuthorizationDenied(f"Requires role in {sorted(roles)}")
    return p


def require_admin(p: Principal) -> Principal:
    return require_role(p, ROLE_ADMIN)


def require_owner(p: Principal, *, owner_id: str) -> Principal:
    """The owning inspector only (admins are not owners for editing purposes)."""
    require_role(p, ROLE_INSPECTOR)
    if str(p.id) != str(owner_id):
        raise AuthorizationDenied("Only the assigned inspector can modify this inspection")
    return p
