from rest_framework.permissions import BasePermission


class IsChatAdmin(BasePermission):
    """Allow access only to staff or users with the `admin` role."""

    def has_permission(self, request, view):
        u = getattr(request, "user", None)
        if not (u and getattr(u, "is_authenticated", False)):
            return False
        return bool(getattr(u, "is_chat_admin", False))
