# repairs/permissions.py
from rest_framework.permissions import BasePermission

from accounts.models import User
from services.matching import get_provider, get_provider_owner_id


def is_operations_staff(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or getattr(user, "role", None) == User.ROLE_STAFF


def operates_provider(user, provider_type: str, provider_id: int) -> bool:
    """
    True if the user runs the given provider, or is operations staff.

    Raises ProviderNotFoundError for unknown provider references.
    """
    provider = get_provider(provider_type, provider_id)
    if is_operations_staff(user):
        return True
    return get_provider_owner_id(provider) == user.id


class IsOperationsStaff(BasePermission):
    """
    Allows access only to Django staff or users with role == 'staff'.
    Keeps role check logic centralized.
    """
    def has_permission(self, request, view):
        return is_operations_staff(getattr(request, "user", None))
