# salon_booking/deps.py

from .errors import UnauthorizedError
from .models import Staff, User
from .notifications import LoggingNotifier, Notifier

_notifier = LoggingNotifier()


def require_role(user: User, *roles: str):
    if user.role not in roles:
        raise UnauthorizedError("Forbidden")


def require_staff_access(user: User, staff: Staff, action: str = "access this staff member"):
    """Admins may act on any staff member; staff users only on themselves."""
    if user.role == "admin":
        return
    if user.role == "staff" and staff.user_id == user.id:
        return
    raise UnauthorizedError(f"Not authorized to {action}")


# Dependency: overridden in tests to capture or break delivery
def get_notifier() -> Notifier:
    return _notifier
