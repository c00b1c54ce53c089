"""Application error taxonomy. Each error knows its HTTP status."""


class AppError(Exception):
    """Operational error whose message is safe to return to the client."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.is_operational = True


class BadRequest(AppError):
    status_code = 400


class Unauthenticated(AppError):
    status_code = 401


class InvalidToken(Unauthenticated):
    """Signature, format or token-type failure."""


class TokenExpired(Unauthenticated):
    """Valid signature, elapsed expiry."""


class InvalidRefreshToken(Unauthenticated):
    """Refresh token failed verification, or no longer matches the stored one."""


class Forbidden(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class UserNotFound(Unauthenticated):
    """Token subject no longer exists in the credential store."""


class AccountRestricted(Forbidden):
    """Banned or suspended account. ``reason`` is "banned" or "suspended"."""

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason
