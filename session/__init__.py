"""Authentication session package for the taskboard API

Provides login, proactive and on-demand token refresh, bearer-authenticated
requests with a single retry, and logout.
"""

from .errors import (
    SessionError,
    InvalidCredentials,
    ServiceUnavailable,
    SessionExpired,
    MalformedToken,
    ApiError,
)
from .models import (
    TokenPair,
    UserProfile,
    AuthResult,
    SessionState,
    SessionStatus,
)
from .jwt_utils import parse_jwt_claims, get_token_expiry, get_token_subject
from .store import SessionStore
from .auth_client import AuthServiceClient
from .token_clock import TokenClock
from .token_refresh import SilentRefresher
from .credential_exchange import CredentialExchanger
from .request_gate import AuthenticatedRequestGate
from .session_manager import SessionManager

__all__ = [
    "SessionError",
    "InvalidCredentials",
    "ServiceUnavailable",
    "SessionExpired",
    "MalformedToken",
    "ApiError",
    "TokenPair",
    "UserProfile",
    "AuthResult",
    "SessionState",
    "SessionStatus",
    "parse_jwt_claims",
    "get_token_expiry",
    "get_token_subject",
    "SessionStore",
    "AuthServiceClient",
    "TokenClock",
    "SilentRefresher",
    "CredentialExchanger",
    "AuthenticatedRequestGate",
    "SessionManager",
]
