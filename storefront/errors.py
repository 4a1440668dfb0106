"""
Record service errors.

Message constants are shared by the HTTP client and the auth session so the
same failure reads the same everywhere.
"""

# Transport errors
ERROR_NETWORK = "Network error"
ERROR_INVALID_RESPONSE = "Invalid response from record service"

# Auth errors
ERROR_UNAUTHORIZED = "Unauthorized"
ERROR_NOT_AUTHENTICATED = "Not authenticated"
ERROR_PASSWORDS_MISMATCH = "Passwords do not match"

# Record errors
ERROR_NOT_FOUND = "Not found"


class StoreError(Exception):
    """Base error for any failed call to the record service."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class StoreUnavailableError(StoreError):
    """The request never produced an HTTP response (timeout, refused, DNS)."""

    def __init__(self, message: str = ERROR_NETWORK) -> None:
        super().__init__(message, code="UNAVAILABLE")


class StoreResponseError(StoreError):
    """The service answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None, code: str = "BAD_RESPONSE") -> None:
        super().__init__(message, status_code=status_code, code=code)


class RecordNotFoundError(StoreResponseError):
    """The addressed record does not exist (HTTP 404)."""

    def __init__(self, message: str = ERROR_NOT_FOUND) -> None:
        super().__init__(message, status_code=404, code="NOT_FOUND")


class AuthenticationError(StoreResponseError):
    """Credentials or token rejected (HTTP 401)."""

    def __init__(self, message: str = ERROR_UNAUTHORIZED) -> None:
        super().__init__(message, status_code=401, code="UNAUTHORIZED")
