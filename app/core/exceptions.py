"""Errors the API turns into JSON responses.

Every error carries an HTTP status and, where the client shows a specific
message, a stable ``code`` (``dni_taken``, ``username_taken``...).
"""


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 500, code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundException(AppException):
    def __init__(self, message: str = "Resource not found", code: str | None = None):
        super().__init__(message, status_code=404, code=code)


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Unauthorized", code: str | None = None):
        super().__init__(message, status_code=401, code=code)


class ForbiddenException(AppException):
    def __init__(self, message: str = "Forbidden", code: str | None = None):
        super().__init__(message, status_code=403, code=code)


class ConflictException(AppException):
    """A unique value (email, username, DNI) already belongs to someone else."""

    def __init__(self, message: str = "Conflict", code: str | None = None):
        super().__init__(message, status_code=409, code=code)


class RateLimitException(AppException):
    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429, code="rate_limited")


class SessionUserNotFoundException(UnauthorizedException):
    """A valid session token points at a user that no longer exists.

    Happens after an account is deleted or the database is reset; the client
    has to sign in again.
    """

    def __init__(self, user_id: object):
        super().__init__(
            f"Signed in as {user_id} but cannot be found in db",
            code="session_user_not_found",
        )
        self.user_id = user_id
