# core/errors.py
"""
Exception hierarchy shared by the stores, services and HTTP handlers.

Each error carries the HTTP status it maps to; the application factory renders
any SiteError as a JSON body of the form {"success": false, "message": ...}.
"""


class SiteError(Exception):
    """Base exception for request-level failures"""
    status_code = 500
    default_message = 'Internal server error.'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'message': self.message}


class ValidationError(SiteError):
    """Missing or invalid input, including unknown session tokens"""
    status_code = 400
    default_message = 'Invalid request.'


class AuthenticationError(SiteError):
    """Missing, malformed or expired credential"""
    status_code = 401
    default_message = 'Authentication failed.'


class AuthorizationError(SiteError):
    """Valid credential for the wrong identity"""
    status_code = 403
    default_message = 'Forbidden.'


class NotFoundError(SiteError):
    status_code = 404
    default_message = 'Not found.'


class ConflictError(SiteError):
    status_code = 409
    default_message = 'Conflict.'


class UpstreamError(SiteError):
    """A collaborator (mail transport, completion API) failed"""
    status_code = 500
    default_message = 'Upstream service failure.'


class StoreError(SiteError):
    """A JSON store could not be read or written"""
    status_code = 500
    default_message = 'Internal server error.'


class MailDeliveryError(Exception):
    """Raised by the mailer when a message could not be handed to SMTP"""
    pass


class CompletionError(Exception):
    """Raised by completion clients on transport failure"""
    pass


class InvalidCompletionResponse(CompletionError):
    """The completion API answered with an unexpected payload shape"""
    pass
