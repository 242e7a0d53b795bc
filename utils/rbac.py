import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied


ROLE_ADMIN = "admin"

logger = logging.getLogger(__name__)


def _fetch_user_from_db(user):
    """Fetch a fresh copy of the user from the DB with only the fields we need.

    Falls back to None if user is not authenticated or lookup fails.
    """
    try:
        if not getattr(user, "is_authenticated", False):
            return None
        User = get_user_model()
        # Only load minimal fields required for RBAC checks
        return User.objects.only("id", "role", "is_superuser").filter(pk=getattr(user, "pk", None)).first()
    except Exception:
        return None


def is_admin(user) -> bool:
    """Consistent admin check across the codebase, verified against the database."""
    try:
        db_user = _fetch_user_from_db(user)
        if not db_user:
            return False
        return bool(getattr(db_user, "is_superuser", False) or getattr(db_user, "role", None) == ROLE_ADMIN)
    except Exception:
        # Conservative fallback
        return bool(getattr(user, "is_superuser", False))


def is_owner(user, owner_id) -> bool:
    """True when the authenticated user is the owner identified by owner_id."""
    if not getattr(user, "is_authenticated", False):
        return False
    return str(getattr(user, "pk", None)) == str(owner_id)


def is_owner_or_admin(user, owner_id) -> bool:
    return is_owner(user, owner_id) or is_admin(user)


def require_owner_or_admin(user, owner_id, message: str = "Only the owner or an admin can do this."):
    """Raise PermissionDenied unless the user owns the resource or is an admin."""
    if not is_owner_or_admin(user, owner_id):
        logger.warning(
            "RBAC denial: user_id=%s owner_id=%s",
            getattr(user, "id", None),
            owner_id,
        )
        raise PermissionDenied(message)
