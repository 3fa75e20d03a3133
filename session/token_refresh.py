"""Silent Refresher: single-flight refresh-token exchange"""

import asyncio
import logging
from typing import Optional

from .auth_client import AuthServiceClient
from .errors import SessionExpired
from .models import AuthResult, TokenPair
from .store import SessionStore
from .token_clock import TokenClock

logger = logging.getLogger(__name__)


class SilentRefresher:
    """Exchanges the refresh token for a new pair, at most once at a time

    Concurrent callers share one in-flight task. Any failure is fatal to
    the session: the store is cleared and every waiter gets SessionExpired.
    """

    def __init__(self, store: SessionStore, client: AuthServiceClient, clock: TokenClock):
        self.store = store
        self.client = client
        self.clock = clock
        self.last_result: Optional[AuthResult] = None

    async def refresh(self) -> TokenPair:
        """Return the new token pair, joining a refresh already in flight

        Raises:
            SessionExpired: the refresh failed or the session ended meanwhile
        """
        # No await between the check and the assignment: this is the
        # single-flight critical section.
        in_flight = self.store.refresh_in_flight
        if in_flight is None:
            in_flight = asyncio.ensure_future(self._exchange())
            self.store.refresh_in_flight = in_flight
            in_flight.add_done_callback(self._release)
        else:
            logger.debug("Joining refresh already in flight")

        # shield: a cancelled waiter must not cancel the shared exchange
        return await asyncio.shield(in_flight)

    def _release(self, future: "asyncio.Future[TokenPair]") -> None:
        # Mark the exception retrieved even if every waiter was cancelled
        if not future.cancelled():
            future.exception()
        if self.store.refresh_in_flight is future:
            self.store.refresh_in_flight = None

    async def _exchange(self) -> TokenPair:
        epoch = self.store.epoch
        pair = self.store.get_token_pair()
        if pair is None:
            logger.warning("No refresh token available for refresh")
            raise SessionExpired("No active session to refresh")

        try:
            result = await self.client.refresh(pair.refresh_token)
        except Exception as e:
            # Any failure short of cancellation ends the session
            logger.error(f"Token refresh failed: {e}")
            if self.store.epoch == epoch:
                self.store.clear(expired=True)
            raise SessionExpired() from e

        if self.store.epoch != epoch:
            logger.info("Discarding refresh result: session ended while refresh was in flight")
            raise SessionExpired("Session ended during refresh")

        self.store.set_token_pair(result.tokens)
        self.clock.schedule(result.tokens)
        self.last_result = result
        logger.info("Successfully refreshed session tokens")
        return result.tokens
