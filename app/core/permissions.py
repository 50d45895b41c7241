"""Role-based access control.

Every service entry point receives the authenticated principal explicitly and
calls :func:`authorize` once with the capability it needs.
"""

import uuid
from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import ForbiddenError, UnauthorizedError


class Role(str, Enum):
    """User roles in the system."""

    PARTICIPANT = "participant"
    VALIDATOR = "validator"
    ADMIN = "admin"


class Capability(str, Enum):
    """System capabilities."""

    # Participant self-service
    MANAGE_OWN_PAYMENT = "manage_own_payment"
    VIEW_OWN_PROFILE = "view_own_profile"

    # Validator
    RECORD_SCAN = "record_scan"
    VIEW_OWN_SCANS = "view_own_scans"
    VIEW_OWN_ASSIGNMENTS = "view_own_assignments"
    UPDATE_OWN_ASSIGNMENT = "update_own_assignment"

    # Admin
    VERIFY_PAYMENT = "verify_payment"
    REJECT_PAYMENT = "reject_payment"
    VIEW_ALL_PAYMENTS = "view_all_payments"
    VIEW_ALL_SCANS = "view_all_scans"
    MANAGE_ASSIGNMENTS = "manage_assignments"
    MANAGE_CONFIG = "manage_config"
    VIEW_ANALYTICS = "view_analytics"


# Role to capabilities mapping
ROLE_CAPABILITIES: dict[Role, set[Capability]] = {
    Role.PARTICIPANT: {
        Capability.MANAGE_OWN_PAYMENT,
        Capability.VIEW_OWN_PROFILE,
    },
    Role.VALIDATOR: {
        Capability.VIEW_OWN_PROFILE,
        Capability.RECORD_SCAN,
        Capability.VIEW_OWN_SCANS,
        Capability.VIEW_OWN_ASSIGNMENTS,
        Capability.UPDATE_OWN_ASSIGNMENT,
    },
    Role.ADMIN: {
        # Admins manage everything but do not scan at the gate
        cap for cap in Capability if cap is not Capability.RECORD_SCAN
    },
}


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the auth provider."""

    id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def has_capability(role: Role, capability: Capability) -> bool:
    """Check if a role has a specific capability."""
    return capability in ROLE_CAPABILITIES.get(role, set())


def authorize(principal: Principal | None, capability: Capability) -> Principal:
    """Require an authenticated principal holding ``capability``.

    Raises:
        UnauthorizedError: No principal supplied
        ForbiddenError: Principal's role lacks the capability
    """
    if principal is None:
        raise UnauthorizedError()
    if not has_capability(principal.role, capability):
        raise ForbiddenError(
            f"Role '{principal.role.value}' is not authorized for '{capability.value}'"
        )
    return principal


def authorize_self_or_admin(
    principal: Principal | None,
    owner_id: uuid.UUID | None,
    own_capability: Capability,
    admin_capability: Capability,
) -> uuid.UUID:
    """Resolve the subject of a self-service action.

    Callers act on their own record unless they are admins acting on ``owner_id``.
    """
    if principal is None:
        raise UnauthorizedError()
    if owner_id is None or owner_id == principal.id:
        authorize(principal, own_capability)
        return principal.id
    authorize(principal, admin_capability)
    return owner_id
