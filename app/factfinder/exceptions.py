"""
Error taxonomy for the intake and submission pipeline.

Every failure that can reach an HTTP caller is one of these categories.
Infrastructure exceptions are translated into them at the service boundary.
"""


class FactFinderError(Exception):
    """Base class for categorized service errors."""

    category = "InternalError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(FactFinderError):
    """Raised when no valid authenticated identity is available."""

    category = "Unauthorized"
    status_code = 401


class ForbiddenError(FactFinderError):
    """Raised when the caller does not own the requested resource."""

    category = "Forbidden"
    status_code = 403


class NotFoundError(FactFinderError):
    """Raised when a requested record does not exist."""

    category = "NotFound"
    status_code = 404


class InvalidInputError(FactFinderError):
    """Raised for a missing file, wrong content type or oversize upload."""

    category = "InvalidInput"
    status_code = 400


class StorageError(FactFinderError):
    """Raised when a blob write or remove fails."""

    category = "StorageFailure"
    status_code = 500


class RecordError(FactFinderError):
    """Raised when the record store rejects an insert or update."""

    category = "RecordFailure"
    status_code = 500


class InvalidPayloadError(FactFinderError):
    """Raised when a webhook payload fails structural validation."""

    category = "InvalidPayload"
    status_code = 400

    def __init__(self, errors: list[str], message: str = "Webhook payload is invalid"):
        super().__init__(message)
        self.errors = list(errors)


class DeliveryError(FactFinderError):
    """Raised on transport failure or a non-2xx reply from the RPA endpoint."""

    category = "DeliveryFailure"
    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class RejectedByReceiverError(FactFinderError):
    """Raised when the RPA endpoint answers with ``success: false``."""

    category = "RejectedByReceiver"
    status_code = 422

    def __init__(self, errors: list[str], message: str | None = None):
        super().__init__(message or "Payload rejected by receiver")
        self.errors = list(errors)
