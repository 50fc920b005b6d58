class AppError(Exception):
    """Base exception for application errors."""

    code = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    code = "not_found"

    def __init__(self, resource: str = "Resource", id: str = ""):
        super().__init__(f"{resource} not found: {id}" if id else f"{resource} not found")


class ConflictError(AppError):
    """Raised when a unique resource already exists."""

    code = "conflict"

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message)


class AuthenticationError(AppError):
    """Raised when credentials are invalid."""

    code = "unauthenticated"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class AuthorizationError(AppError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class AlreadySharedError(AppError):
    """Raised when granting a share that already exists for the grantee."""

    code = "already_shared"

    def __init__(self, message: str = "Diagram already shared with this user"):
        super().__init__(message)


class UnknownGranteeError(AppError):
    """Raised when the grantee identity does not resolve to a user."""

    code = "unknown_grantee"

    def __init__(self, grantee_id: str = ""):
        super().__init__(f"User not found: {grantee_id}" if grantee_id else "User not found")


class LockTimeoutError(AppError):
    """Raised when the per-diagram write lock could not be acquired in time.

    Transient: the caller may retry with the same expected version.
    """

    code = "lock_timeout"

    def __init__(self, document_id: str = "", timeout: float | None = None):
        self.timeout = timeout
        message = "Diagram is being modified by another request"
        if document_id:
            message = f"{message}: {document_id}"
        super().__init__(message)


class InvalidShareLevelError(AppError):
    """Raised when a share would carry a level other than viewer, editor or owner."""

    code = "invalid_share_level"

    def __init__(self, level: str = ""):
        super().__init__(f"Cannot share with level: {level}" if level else "Invalid share level")
