# accounts/permissions.py

"""
Principal resolution for the payment ledger.

The authenticated user comes from Django's session middleware
(request.user); the privileged capability is derived from the user's
profile role.
"""

from functools import wraps
from django.http import JsonResponse
import logging

logger = logging.getLogger(__name__)


def is_privileged(user):
    """
    True when the user may review manual payment proofs, administer
    payment records and see other students' ledgers.
    """
    if user is None or not user.is_authenticated or not user.is_active:
        return False
    if user.is_superuser:
        return True
    profile = getattr(user, 'profile', None)
    return bool(profile and profile.can_manage_finances())


def privileged_required(view_func):
    """Reject non-privileged callers with a JSON 403"""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not is_privileged(request.user):
            logger.warning(
                f"Privileged endpoint {request.path} refused for user {request.user.pk}"
            )
            return JsonResponse(
                {"success": False, "error": "FORBIDDEN", "message": "Forbidden: insufficient privileges"},
                status=403
            )
        return view_func(request, *args, **kwargs)

    return wrapper
