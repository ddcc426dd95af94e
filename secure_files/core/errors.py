"""Error taxonomy shared by the services and mapped to HTTP by the app."""


class AppError(Exception):
    """Base class for errors that are reported to the client."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Request input has the wrong shape or length."""

    status_code = 400
    default_message = "Invalid request"


class BadRequestError(AppError):
    """Request is well-formed but used on the wrong route."""

    status_code = 400
    default_message = "Bad request"


class ConflictError(AppError):
    """A unique field is already taken."""

    status_code = 409
    default_message = "Already exists"


class AuthError(AppError):
    """Bad credentials, or a missing, invalid or expired token."""

    status_code = 401
    default_message = "Invalid or expired token"


class ForbiddenError(AppError):
    """Caller is known but not allowed to touch the resource."""

    status_code = 403
    default_message = "Forbidden"


class PayloadError(AppError):
    """Uploaded content was rejected."""

    status_code = 400
    default_message = "Upload rejected"


class PayloadTooLargeError(PayloadError):
    status_code = 400

    def __init__(self, max_mb: int) -> None:
        self.max_mb = max_mb
        super().__init__(f"File too large. Max {max_mb}MB.")


class UnsupportedMediaTypeError(PayloadError):
    status_code = 415

    def __init__(self, content_type: str, allowed) -> None:
        self.content_type = content_type
        self.allowed = list(allowed)
        super().__init__(
            f"Unsupported file type '{content_type}'. Allowed: {', '.join(self.allowed)}"
        )


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class GoneError(AppError):
    """Metadata exists but the stored content does not."""

    status_code = 410
    default_message = "File missing from server"
