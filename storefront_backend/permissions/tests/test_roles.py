from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from permissions.roles import (
    CAP_ANALYTICS_VIEW,
    CAP_LEDGER_POST,
    CAP_ORDERS_MANAGE,
    CapabilityOrReadOnly,
    HasAnyCapability,
    HasCapability,
    IsAdmin,
    IsStaffMember,
    effective_capabilities_for,
)

User = get_user_model()


class _View:
    def __init__(self, **attrs):
        for key, value in attrs.items():
            setattr(self, key, value)


class CapabilityPermissionTests(TestCase):
    """
    GUARANTEES:
    - Capabilities follow the role map
    - Views without a declared capability deny by default
    - Anonymous users denied everywhere
    - Customers hold no staff capabilities
    """

    def setUp(self):
        self.factory = APIRequestFactory()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass", role="admin")
        self.manager = User.objects.create_user(email="manager@example.com", password="pass", role="manager")
        self.staff = User.objects.create_user(email="staff@example.com", password="pass", role="staff")
        self.customer = User.objects.create_user(email="cust@example.com", password="pass", role="customer")

    def _request_for(self, user, method="get"):
        request = getattr(self.factory, method)("/")
        request.user = user
        return request

    def test_admin_has_every_capability(self):
        caps = effective_capabilities_for(self.admin)
        self.assertIn(CAP_LEDGER_POST, caps)
        self.assertIn(CAP_ANALYTICS_VIEW, caps)

    def test_manager_cannot_post_ledger(self):
        caps = effective_capabilities_for(self.manager)
        self.assertIn(CAP_ANALYTICS_VIEW, caps)
        self.assertNotIn(CAP_LEDGER_POST, caps)

    def test_staff_manages_orders_only(self):
        view = _View(required_capability=CAP_ORDERS_MANAGE)
        self.assertTrue(HasCapability().has_permission(self._request_for(self.staff), view))

        view = _View(required_capability=CAP_ANALYTICS_VIEW)
        self.assertFalse(HasCapability().has_permission(self._request_for(self.staff), view))

    def test_missing_required_capability_denies(self):
        self.assertFalse(HasCapability().has_permission(self._request_for(self.admin), _View()))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.admin), _View()))

    def test_any_capability(self):
        view = _View(required_any_capabilities={CAP_ANALYTICS_VIEW, CAP_ORDERS_MANAGE})
        self.assertTrue(HasAnyCapability().has_permission(self._request_for(self.staff), view))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.customer), view))

    def test_read_only_for_everyone_writes_need_capability(self):
        view = _View(required_capability=CAP_ORDERS_MANAGE)
        perm = CapabilityOrReadOnly()
        self.assertTrue(perm.has_permission(self._request_for(AnonymousUser()), view))
        self.assertFalse(perm.has_permission(self._request_for(self.customer, "post"), view))
        self.assertTrue(perm.has_permission(self._request_for(self.staff, "post"), view))

    def test_role_permissions(self):
        self.assertTrue(IsAdmin().has_permission(self._request_for(self.admin), None))
        self.assertFalse(IsAdmin().has_permission(self._request_for(self.manager), None))
        self.assertTrue(IsStaffMember().has_permission(self._request_for(self.staff), None))
        self.assertFalse(IsStaffMember().has_permission(self._request_for(self.customer), None))
        self.assertFalse(IsStaffMember().has_permission(self._request_for(AnonymousUser()), None))
