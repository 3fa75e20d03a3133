"""Session lifecycle management for the taskboard API"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from settings import (
    API_BASE_URL,
    FORGOT_PASSWORD_PATH,
    ME_PATH,
    REFRESH_SKEW_SECONDS,
    RESEND_OTP_PATH,
    RESET_PASSWORD_PATH,
    VERIFY_OTP_PATH,
)
from utils.storage import TokenStorage
from .auth_client import AuthServiceClient
from .credential_exchange import CredentialExchanger
from .errors import MalformedToken, ServiceUnavailable, SessionError
from .jwt_utils import get_token_expiry
from .models import AuthResult, SessionStatus, TokenPair, UserProfile, profile_from_payload
from .request_gate import AuthenticatedRequestGate
from .store import SessionStore, StatusListener
from .token_clock import TokenClock
from .token_refresh import SilentRefresher

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns one client session: login, silent refresh, gated requests, logout

    This class wires the session components together:
    - CredentialExchanger for login and registration
    - TokenClock for the proactive refresh timer
    - SilentRefresher for single-flight refresh
    - AuthenticatedRequestGate for bearer requests with one retry
    - SessionStore as the only holder of the token pair
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        storage: Optional[TokenStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        skew_seconds: float = REFRESH_SKEW_SECONDS,
        now: Callable[[], float] = time.time,
    ):
        """Initialize the session manager

        Args:
            base_url: Root of the taskboard API
            storage: Durable token storage; the session lives in memory only if None
            http_client: Shared AsyncClient (created and owned if None)
            timeout: Per-request timeout (default from settings)
            skew_seconds: Refresh lead time before the access token's exp
            now: Wall-clock source in epoch seconds
        """
        self.store = SessionStore(storage)
        self.client = AuthServiceClient(base_url, http_client=http_client, timeout=timeout)
        self.clock = TokenClock(self.store, skew_seconds=skew_seconds, now=now)
        self.refresher = SilentRefresher(self.store, self.client, self.clock)
        self.clock.on_fire = self.refresher.refresh
        self.exchanger = CredentialExchanger(self.store, self.client, self.clock)
        self.gate = AuthenticatedRequestGate(self.store, self.refresher, self.client)

        self.user: Optional[UserProfile] = None
        self.store.add_listener(self._on_status_change)

    # State

    @property
    def status(self) -> SessionStatus:
        return self.store.status

    @property
    def token_pair(self) -> Optional[TokenPair]:
        return self.store.get_token_pair()

    @property
    def is_authenticated(self) -> bool:
        return self.store.get_token_pair() is not None

    def add_listener(self, listener: StatusListener) -> None:
        """Be told about every status transition (e.g. to redirect to login)"""
        self.store.add_listener(listener)

    def _on_status_change(self, status: SessionStatus) -> None:
        if status == SessionStatus.LOGGED_OUT:
            self.user = None

    # Credential exchange

    async def login(self, email: str, password: str) -> AuthResult:
        """Log in with email and password

        Raises:
            InvalidCredentials: wrong email or password
            ServiceUnavailable: the service could not be reached
        """
        result = await self.exchanger.login(email, password)
        self.user = result.user
        return result

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        organization_name: Optional[str] = None,
    ) -> AuthResult:
        """Register a new account and log straight into it"""
        result = await self.exchanger.register(
            email,
            password,
            full_name,
            organization_name=organization_name,
        )
        self.user = result.user
        return result

    def logout(self) -> None:
        """End the session; safe to call any number of times"""
        self.store.clear()
        self.user = None

    # Refresh

    async def refresh(self) -> TokenPair:
        """Force a silent refresh now (joins one already in flight)"""
        pair = await self.refresher.refresh()
        if self.refresher.last_result is not None and self.refresher.last_result.user is not None:
            self.user = self.refresher.last_result.user
        return pair

    async def restore(self) -> Optional[UserProfile]:
        """Resume a persisted session at start-up

        An expired or unreadable access token is refreshed immediately,
        otherwise the refresh timer is armed. The profile is then fetched.
        Any failure leaves the manager logged out.

        Returns:
            The user's profile, or None when there is no usable session
        """
        pair = self.store.restore()
        if pair is None:
            logger.debug("No persisted session to restore")
            return None

        try:
            if self._is_expired(pair):
                logger.info("Persisted access token expired, refreshing")
                await self.refresh()
            else:
                self.clock.schedule(pair)
            return await self.refresh_user()
        except SessionError as e:
            logger.warning(f"Could not restore session: {e}")
            self.logout()
            return None

    def _is_expired(self, pair: TokenPair) -> bool:
        try:
            return get_token_expiry(pair.access_token) <= self.clock.now()
        except MalformedToken:
            return True

    # Collaborator calls

    async def refresh_user(self) -> UserProfile:
        """Fetch the current user's profile through the request gate"""
        payload = await self.gate.get(ME_PATH)
        if not isinstance(payload, dict):
            raise ServiceUnavailable("Profile endpoint returned an unexpected response")
        try:
            self.user = profile_from_payload(payload)
        except ValidationError as e:
            raise ServiceUnavailable("Profile endpoint returned an unexpected response") from e
        return self.user

    async def verify_otp(self, email: str, otp_code: str) -> Any:
        return await self.gate.post(VERIFY_OTP_PATH, {"email": email, "otpCode": otp_code})

    async def resend_otp(self, email: str) -> Any:
        return await self.gate.post(RESEND_OTP_PATH, {"email": email})

    async def forgot_password(self, email: str) -> Any:
        return await self.gate.post(FORGOT_PASSWORD_PATH, {"email": email})

    async def reset_password(self, token: str, password: str) -> Any:
        return await self.gate.post(RESET_PASSWORD_PATH, {"token": token, "password": password})

    # Display

    def get_status(self) -> Dict[str, Any]:
        """Session status without exposing secrets"""
        pair = self.store.get_token_pair()
        status: Dict[str, Any] = {
            "status": self.status.value,
            "has_tokens": pair is not None,
            "user": self.user.email if self.user else None,
            "expires_at": None,
            "refresh_due_at": self.store.refresh_due_at,
        }
        if pair is not None:
            try:
                status["expires_at"] = get_token_expiry(pair.access_token)
            except MalformedToken:
                pass
        return status

    # Resource management

    async def aclose(self) -> None:
        """Stop the refresh timer and close the HTTP client; tokens are kept

        A refresh already under way is awaited first so that the rotated
        pair reaches storage before the client goes away.
        """
        task = self.clock.task
        if task is not None and not task.done():
            logger.debug("Waiting for scheduled token refresh before closing")
            await task

        in_flight = self.store.refresh_in_flight
        if in_flight is not None:
            logger.debug("Waiting for in-flight token refresh before closing")
            try:
                await asyncio.shield(in_flight)
            except SessionError as e:
                logger.warning(f"Token refresh failed while closing: {e}")

        self.clock.cancel()
        await self.client.aclose()

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
