"""
Application errors. Each maps to an HTTP status and is rendered as the
standard JSON envelope by the handlers registered in main.py.
"""
from typing import Optional


class APIError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)


class ValidationFailed(APIError):
    status_code = 422
    default_message = "Validation error"


class Unauthorized(APIError):
    status_code = 401
    default_message = "Unauthorized"


class TokenExpired(Unauthorized):
    default_message = "Token Expired"


class Forbidden(APIError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_message = "Not found"


class ExternalServiceError(APIError):
    """An upstream provider (Instagram, SendGrid, S3) failed"""
    status_code = 500


class ImageValidationError(ValidationFailed):
    """Base class for image validation errors"""
    pass


class ImageTooLargeError(ImageValidationError):
    """Raised when uploaded image exceeds size limit"""

    def __init__(self, max_size_mb: int):
        self.max_size_mb = max_size_mb
        super().__init__(
            f"Image file is too large. Maximum size allowed is {max_size_mb}MB.")


class UnsupportedImageFormatError(ImageValidationError):
    """Raised when uploaded file is not a valid image format"""

    def __init__(self):
        super().__init__(
            "The uploaded file is not a valid image. Please upload a JPG, PNG or WebP image.")


class EmailDeliveryError(Exception):
    """SendGrid rejected or failed to accept a message"""
    pass
