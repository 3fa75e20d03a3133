"""Token Clock: arms the single pending refresh timer"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from settings import REFRESH_SKEW_SECONDS
from .errors import MalformedToken, SessionError
from .jwt_utils import get_token_expiry
from .models import TokenPair
from .store import SessionStore

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]


class TokenClock:
    """Schedules the silent refresh SKEW seconds before the access token expires

    A token that is already inside the skew window, already expired, or
    whose exp cannot be read fires on the next loop tick instead of being
    skipped.
    """

    def __init__(
        self,
        store: SessionStore,
        on_fire: Optional[RefreshCallback] = None,
        skew_seconds: float = REFRESH_SKEW_SECONDS,
        now: Callable[[], float] = time.time,
    ):
        """Initialize the clock

        Args:
            store: Session store that owns the timer handle
            on_fire: Coroutine function run when the timer fires
            skew_seconds: Lead time before exp
            now: Wall-clock source in epoch seconds
        """
        self.store = store
        self.on_fire = on_fire
        self.skew_seconds = skew_seconds
        self.now = now
        self._task: Optional[asyncio.Task] = None

    def compute_delay(self, token_pair: TokenPair) -> float:
        """Seconds until the refresh is due; <= 0 means due now"""
        try:
            exp = get_token_expiry(token_pair.access_token)
        except MalformedToken as e:
            logger.warning(f"Treating unreadable access token as expired: {e}")
            return 0.0
        return exp - self.now() - self.skew_seconds

    def schedule(self, token_pair: TokenPair) -> float:
        """Cancel any pending timer and arm a new one for token_pair

        Must be called from inside the running event loop.

        Returns:
            The delay in seconds (0.0 when firing on the next tick)
        """
        loop = asyncio.get_running_loop()
        delay = self.compute_delay(token_pair)

        self.store.cancel_timer()
        if delay <= 0:
            handle: asyncio.Handle = loop.call_soon(self._fire)
            delay = 0.0
            logger.info("Access token expired or expiring soon, refreshing on next tick")
        else:
            handle = loop.call_later(delay, self._fire)
            logger.debug(f"Token refresh scheduled in {int(delay)}s")

        self.store.set_timer(handle, due_at=self.now() + delay)
        return delay

    def cancel(self) -> None:
        """Drop the pending timer; a refresh already running is left alone"""
        self.store.cancel_timer()

    @property
    def task(self) -> Optional[asyncio.Task]:
        """Task spawned by the most recent firing"""
        return self._task

    def _fire(self) -> None:
        self.store.timer_fired()
        if self.on_fire is None:
            logger.warning("Refresh timer fired with no refresh callback bound")
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self.on_fire()
        except SessionError as e:
            # The refresher already destroyed the session
            logger.warning(f"Scheduled token refresh failed: {e}")
