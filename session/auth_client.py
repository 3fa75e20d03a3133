"""HTTP client for the Authentication Service endpoints"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError

from settings import (
    API_BASE_URL,
    CONNECT_TIMEOUT,
    LOGIN_PATH,
    REFRESH_PATH,
    REGISTER_PATH,
    REQUEST_TIMEOUT,
)
from .errors import InvalidCredentials, MalformedToken, ServiceUnavailable, extract_message
from .jwt_utils import get_token_expiry
from .models import AuthResponse, AuthResult

logger = logging.getLogger(__name__)

# Statuses meaning "the credentials you sent are not acceptable"
CREDENTIAL_REJECTION_STATUSES = (400, 401, 403, 422)


def default_timeout() -> httpx.Timeout:
    return httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)


class AuthServiceClient:
    """Performs the credential and refresh-token exchanges

    Every call is a single attempt with an explicit timeout. Transport
    errors and timeouts surface as ServiceUnavailable.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
    ):
        """Initialize the client

        Args:
            base_url: Root of the taskboard API (the /auth paths hang off it)
            http_client: Shared AsyncClient; one is created (and owned) if None
            timeout: Per-request timeout (default from settings)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or default_timeout()
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=self.timeout)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def post_json(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        """POST a JSON body without authentication"""
        url = self.url_for(path)
        try:
            return await self.http.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Request to {path} timed out: {e}")
            raise ServiceUnavailable(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Request to {path} failed: {e}")
            raise ServiceUnavailable(f"Could not reach the authentication service: {e}") from e

    async def login(self, email: str, password: str) -> AuthResult:
        """Exchange email/password for a token pair

        Raises:
            InvalidCredentials: the service rejected the credentials
            ServiceUnavailable: network error, timeout, 5xx or bad body
        """
        logger.info(f"Logging in as {email}")
        response = await self.post_json(LOGIN_PATH, {"email": email, "password": password})
        return self._parse_auth_response(response, "Login")

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        organization_name: Optional[str] = None,
    ) -> AuthResult:
        """Create an account and obtain its first token pair

        The full name is sent as-is and also split into first/last name,
        the last name falling back to the first when only one word is given.
        """
        first_name, last_name = split_full_name(full_name)
        payload: Dict[str, Any] = {
            "email": email,
            "password": password,
            "fullName": full_name.strip(),
            "firstName": first_name,
            "lastName": last_name,
        }
        if organization_name:
            payload["organizationName"] = organization_name

        logger.info(f"Registering {email}")
        response = await self.post_json(REGISTER_PATH, payload)
        return self._parse_auth_response(response, "Registration")

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new pair

        Raises:
            InvalidCredentials: refresh token rejected or expired
            ServiceUnavailable: network error, timeout, 5xx or bad body
        """
        logger.info("Attempting to refresh session tokens...")
        response = await self.post_json(REFRESH_PATH, {"refreshToken": refresh_token})
        return self._parse_auth_response(response, "Token refresh")

    def _parse_auth_response(self, response: httpx.Response, operation: str) -> AuthResult:
        status = response.status_code

        if status in CREDENTIAL_REJECTION_STATUSES:
            message = extract_message(_safe_json(response)) or f"{operation} rejected"
            logger.warning(f"{operation} failed with status {status}: {message}")
            raise InvalidCredentials(message, status_code=status)

        if status < 200 or status >= 300:
            logger.error(f"{operation} failed with status {status}: {response.text}")
            raise ServiceUnavailable(f"{operation} failed (HTTP {status})", status_code=status)

        try:
            body = AuthResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"{operation} returned an unusable body: {e}")
            raise ServiceUnavailable(f"{operation} returned an unexpected response", status_code=status) from e

        # An access token without a decodable exp is discarded
        try:
            get_token_expiry(body.access_token)
        except MalformedToken as e:
            logger.error(f"{operation} returned an access token without a readable exp claim")
            raise ServiceUnavailable(f"{operation} returned an unusable access token", status_code=status) from e

        logger.info(f"{operation} succeeded")
        return AuthResult(tokens=body.token_pair(), user=body.user)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def split_full_name(full_name: str) -> Tuple[str, str]:
    parts = full_name.split()
    first_name = parts[0] if parts else ""
    last_name = " ".join(parts[1:]) or first_name
    return first_name, last_name
