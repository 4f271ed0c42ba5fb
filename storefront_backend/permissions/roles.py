# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import SAFE_METHODS, BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"
ROLE_CUSTOMER = "customer"

ROLE_CHOICES = [
    (ROLE_ADMIN, "Admin"),
    (ROLE_MANAGER, "Manager"),
    (ROLE_STAFF, "Staff"),
    (ROLE_CUSTOMER, "Customer"),
]

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_STAFF,
}


# =========================================================
# CAPABILITIES
# =========================================================
# Views protect capabilities, not raw roles.
CAP_CATALOG_EDIT = "catalog.edit"
CAP_ORDERS_MANAGE = "orders.manage"
CAP_BOOKINGS_MANAGE = "bookings.manage"
CAP_PROMOTIONS_EDIT = "promotions.edit"
CAP_REVIEWS_MODERATE = "reviews.moderate"
CAP_LEDGER_VIEW = "ledger.view"
CAP_LEDGER_POST = "ledger.post"
CAP_ANALYTICS_VIEW = "analytics.view"

ALL_CAPABILITIES = {
    CAP_CATALOG_EDIT,
    CAP_ORDERS_MANAGE,
    CAP_BOOKINGS_MANAGE,
    CAP_PROMOTIONS_EDIT,
    CAP_REVIEWS_MODERATE,
    CAP_LEDGER_VIEW,
    CAP_LEDGER_POST,
    CAP_ANALYTICS_VIEW,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        CAP_CATALOG_EDIT,
        CAP_ORDERS_MANAGE,
        CAP_BOOKINGS_MANAGE,
        CAP_PROMOTIONS_EDIT,
        CAP_REVIEWS_MODERATE,
        CAP_LEDGER_VIEW,
        CAP_ANALYTICS_VIEW,
        # ledger.post stays admin-only
    },
    ROLE_STAFF: {
        CAP_ORDERS_MANAGE,
        CAP_BOOKINGS_MANAGE,
    },
    ROLE_CUSTOMER: set(),
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    if not user or not getattr(user, "is_authenticated", False):
        return set()
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    return capability in effective_capabilities_for(user)


def is_staff_member(user) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_superuser", False)) or get_user_role(user) in STAFF_ROLES


# =========================================================
# Base Role Permission
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Subclasses must define:
    - allowed_roles (set)
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        required_capability = CAP_ORDERS_MANAGE
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default when the view forgot to declare one
            return False

        return required in effective_capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Usage:
        required_any_capabilities = {CAP_LEDGER_VIEW, CAP_ANALYTICS_VIEW}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))


class CapabilityOrReadOnly(HasCapability):
    """Safe methods for everyone, writes need `required_capability`."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)


# =========================================================
# Role Permissions
# =========================================================
class IsAdmin(BaseRolePermission):
    allowed_roles = {ROLE_ADMIN}


class IsStaffMember(BaseRolePermission):
    allowed_roles = STAFF_ROLES
