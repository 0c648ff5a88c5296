# middleware/security.py
"""
Security Middleware for Request Processing
"""

from functools import wraps
import logging

from flask import current_app, g, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

# Initialised against the app in create_app; limits are declared on the views
limiter = Limiter(key_func=get_remote_address)


def security_headers(response):
    """Add the configured security headers to every response"""
    for header, value in current_app.config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)
    return response


def bearer_token():
    """Credential from an "Authorization: Bearer <token>" header, if any"""
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return header.strip() or None


def require_admin(f):
    """
    Decorator to require a valid admin credential.

    The verified claims are available to the view as g.admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # AuthenticationError / AuthorizationError propagate to the app error handler
        g.admin = current_app.admin_sessions.verify(bearer_token())
        return f(*args, **kwargs)
    return decorated_function
