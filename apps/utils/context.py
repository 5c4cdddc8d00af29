# utils/context.py

"""
Thread-local request context for audit logging.

Middleware sets the context at the start of each request so that
BaseModel.save() can stamp created_by/updated_by and client IPs without the
ledger services having to thread the request object through every call.
"""

from threading import local
import logging

logger = logging.getLogger(__name__)

_thread_locals = local()


def set_request_context(user=None, ip_address=None, user_agent=None, request_path=None):
    """
    Set the current request context for this thread.

    Args:
        user: The authenticated user (or None)
        ip_address: Client IP address
        user_agent: Browser user agent string
        request_path: The request path/URL
    """
    _thread_locals.request_context = {
        'user': user if user is not None and user.is_authenticated else None,
        'ip_address': ip_address,
        'user_agent': user_agent or '',
        'request_path': request_path or '',
    }
    logger.debug(f"Set request context: user={user}, ip={ip_address}")


def get_request_context():
    """Return the context dict for this thread, or None if unset."""
    return getattr(_thread_locals, 'request_context', None)


def clear_request_context():
    if hasattr(_thread_locals, 'request_context'):
        delattr(_thread_locals, 'request_context')


def get_client_ip(request):
    """
    Extract the client's real IP address from the request.

    Handles X-Forwarded-For header for proxied requests (gateway callbacks
    usually arrive through a reverse proxy).
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')

