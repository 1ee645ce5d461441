"""
Error types raised by the certificate pipeline and the HTTP layer.

Every error carries the HTTP status it maps to so the app-level error
handler can render it without a lookup table.
"""


class CertStampError(Exception):
    status_code = 500
    public_message = "Something went wrong."

    def __init__(self, message=None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(CertStampError):
    """Missing or invalid request input. The user can fix it."""
    status_code = 400
    public_message = "Invalid request."


class AuthError(CertStampError):
    """Caller identity could not be resolved."""
    status_code = 401
    public_message = "Authentication required."


class PermissionDenied(CertStampError):
    status_code = 403
    public_message = "Access denied."


class NotFoundError(CertStampError):
    status_code = 404
    public_message = "Certificate not found."


class PipelineError(CertStampError):
    """
    Base for failures inside certificate generation.

    The message is kept for the logs; clients only ever see public_message.
    """
    status_code = 500
    public_message = "Failed to generate certificate."


class UnsupportedFormatError(PipelineError):
    pass


class CompositionError(PipelineError):
    pass


class OverlayError(PipelineError):
    pass


class EncodingError(PipelineError):
    pass
