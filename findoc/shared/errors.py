"""Error taxonomy shared by the orchestrators and the HTTP boundary.

Every orchestrator-level failure is raised as one of these classes. The API
layer maps them to responses using ``status_code`` without inspecting the
message.
"""

from typing import Any


class DocumentServiceError(Exception):
    """Base class for classified service errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, detail: Any = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(DocumentServiceError):
    status_code = 400
    default_message = "Invalid request"


class EncryptedPdfError(ValidationError):
    """Upload is an encrypted PDF and could not be decrypted."""

    default_message = "PDF is encrypted. Provide a password to process it."


class AuthError(DocumentServiceError):
    status_code = 401
    default_message = "Unauthorized: Missing credentials"


class ForbiddenError(DocumentServiceError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(DocumentServiceError):
    status_code = 404
    default_message = "Document not found"


class ConflictError(DocumentServiceError):
    status_code = 409
    default_message = "Document is not in a valid state for this operation"


class PayloadTooLargeError(DocumentServiceError):
    status_code = 413
    default_message = "File exceeds maximum allowed size"


class UnsupportedMediaTypeError(DocumentServiceError):
    status_code = 415
    default_message = "Unsupported media type"


class GatewayTimeoutError(DocumentServiceError):
    status_code = 504
    default_message = "Request timed out. The outcome is unknown, poll the document status."


class InternalError(DocumentServiceError):
    status_code = 500


class AnalysisProviderError(Exception):
    """Raised by analysis providers. Never crosses the analysis worker boundary.

    Attributes:
        transient: True for timeouts and 5xx/429 responses, where resubmitting
            the document may succeed.
        status_code: Provider HTTP status if one was returned
    """

    def __init__(self, message: str, transient: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code
