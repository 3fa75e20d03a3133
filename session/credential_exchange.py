"""Credential Exchanger: email/password in, active session out"""

import logging
from typing import Optional

from .auth_client import AuthServiceClient
from .models import AuthResult
from .store import SessionStore
from .token_clock import TokenClock

logger = logging.getLogger(__name__)


class CredentialExchanger:
    """Turns credentials into a stored token pair and an armed Token Clock

    One network exchange per call and no automatic retry: a failed login
    is reported straight back to the caller.
    """

    def __init__(self, store: SessionStore, client: AuthServiceClient, clock: TokenClock):
        self.store = store
        self.client = client
        self.clock = clock

    async def login(self, email: str, password: str) -> AuthResult:
        """Log in and start a session

        Raises:
            InvalidCredentials: the service rejected the credentials
            ServiceUnavailable: network error, timeout or 5xx
        """
        result = await self.client.login(email, password)
        self._start_session(result)
        return result

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        organization_name: Optional[str] = None,
    ) -> AuthResult:
        """Register a new account and start a session with its tokens"""
        result = await self.client.register(
            email,
            password,
            full_name,
            organization_name=organization_name,
        )
        self._start_session(result)
        return result

    def _start_session(self, result: AuthResult) -> None:
        # Drop whatever the previous session left behind, including a
        # refresh that may still be in flight for it
        if self.store.get_token_pair() is not None:
            self.store.clear()
        self.store.set_token_pair(result.tokens)
        self.clock.schedule(result.tokens)
        logger.info("Session started")
