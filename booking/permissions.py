"""
Role based permission classes for the booking API.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

ADMIN_ROLES = {"admin"}
CATALOG_ROLES = {"admin", "operations-manager", "it"}
OPERATIONS_ROLES = {"admin", "operations", "operations-manager"}
CASE_WRITER_ROLES = {"admin", "sales", "sales-manager", "operations", "operations-manager", "it"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Only administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class CanManageCatalog(BasePermission):
    """Anyone signed in may read; catalog roles may write."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        if role is None:
            return False
        return request.method in SAFE_METHODS or role in CATALOG_ROLES


class CanProcessOrders(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in OPERATIONS_ROLES


class CanWriteCases(BasePermission):
    """Drivers can move cases along but cannot book or amend them."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        if role is None:
            return False
        return request.method in SAFE_METHODS or role in CASE_WRITER_ROLES


# Who may move a case into each status.  Admins may set any status.
STATUS_ROLES = {
    "Case Booked": set(),
    "Preparing Order": {"operations", "operations-manager", "it"},
    "Order Prepared": {"operations", "operations-manager", "it"},
    "Sales Approved": {"sales", "sales-manager"},
    "Pending Delivery (Hospital)": {"operations", "operations-manager", "driver", "it"},
    "Delivered (Hospital)": {"driver", "it"},
    "Case Completed": {"sales", "sales-manager", "it"},
    "Pending Delivery (Office)": {"sales", "sales-manager", "driver", "it"},
    "Delivered (Office)": {"sales", "sales-manager", "driver", "it"},
    "To be billed": {"sales", "sales-manager", "driver", "it"},
    "Case Closed": {"sales", "sales-manager", "driver", "it"},
    "Case Cancelled": {"operations-manager"},
}


def can_set_status(user, status: str) -> bool:
    """Unknown statuses pass here and are rejected by the status service."""
    role = getattr(user, "role", None)
    if role in ADMIN_ROLES:
        return True
    if status not in STATUS_ROLES:
        return True
    return role in STATUS_ROLES[status]
