"""Error taxonomy for the session lifecycle"""

from typing import Any, Optional


class SessionError(Exception):
    """Base class for every failure raised by the session layer"""


class InvalidCredentials(SessionError):
    """The Authentication Service rejected the submitted credentials (400/401-class)"""

    def __init__(self, message: str = "Invalid email or password", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ServiceUnavailable(SessionError):
    """Network failure, timeout, 5xx or an unusable response body"""

    def __init__(self, message: str = "Authentication service unavailable", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionExpired(SessionError):
    """The session could not be refreshed and has been destroyed"""

    def __init__(self, message: str = "Session expired, please log in again"):
        super().__init__(message)


class MalformedToken(SessionError):
    """An access token whose payload or exp claim cannot be decoded

    Internal only: callers treat it as an already-expired token.
    """


class ApiError(SessionError):
    """A gated API call returned a non-2xx status other than 401"""

    def __init__(self, status_code: int, payload: Any = None, message: Optional[str] = None):
        if message is None:
            message = extract_message(payload) or f"Request failed with status {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def extract_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None
