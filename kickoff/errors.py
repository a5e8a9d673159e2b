"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    code = "app_error"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    code = "validation_error"

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    code = "duplicate_resource"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    code = "not_found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class InvalidStateError(AppError):
    """Raised when an operation is not valid for the match's current status."""

    code = "invalid_state"

    def __init__(self, message="Operation not allowed in the current match state."):
        """Initialize the error."""
        super().__init__(message, 409)


class AlreadyMemberError(AppError):
    """Raised when a user is already on the match roster."""

    code = "already_member"

    def __init__(self, message="User is already a player in this match."):
        """Initialize the error."""
        super().__init__(message, 409)


class AlreadyQueuedError(AppError):
    """Raised when a user is already waiting in the match queue."""

    code = "already_queued"

    def __init__(self, message="User is already in the queue."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotAMemberError(AppError):
    """Raised when a user is expected on the roster but is not."""

    code = "not_a_member"

    def __init__(self, message="User is not a player in this match."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotQueuedError(AppError):
    """Raised when a user is expected in the queue but is not."""

    code = "not_queued"

    def __init__(self, message="User is not in the queue."):
        """Initialize the error."""
        super().__init__(message, 409)


class CreatorCannotLeaveError(AppError):
    """Raised when the match creator tries to leave instead of cancelling."""

    code = "creator_cannot_leave"

    def __init__(
        self,
        message="Match creator cannot leave the match. Please cancel the match instead.",
    ):
        """Initialize the error."""
        super().__init__(message, 403)


class StoreFailureError(AppError):
    """Raised when a call to the document store fails."""

    code = "store_failure"

    def __init__(self, message="The document store is unavailable."):
        """Initialize the error."""
        super().__init__(message, 503)
