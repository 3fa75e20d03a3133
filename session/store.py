"""Session Store: the single mutable owner of the session's token state"""

import asyncio
import logging
from typing import Callable, List, Optional

from utils.storage import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, TokenStorage
from .models import SessionState, SessionStatus, TokenPair

logger = logging.getLogger(__name__)

StatusListener = Callable[[SessionStatus], None]


class SessionStore:
    """Synchronous get/set/clear of the current token pair and refresh timer

    Every other component reads and writes session state through this
    object only, and re-reads the pair after each suspension point instead
    of holding a private copy.
    """

    def __init__(self, storage: Optional[TokenStorage] = None):
        """Initialize the session store

        Args:
            storage: Optional durable backend; when given, the pair is
                persisted on every write and removed on clear
        """
        self.storage = storage
        self._state = SessionState()
        self._listeners: List[StatusListener] = []
        self._last_status = SessionStatus.LOGGED_OUT

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def epoch(self) -> int:
        """Counter bumped on every clear()"""
        return self._state.epoch

    @property
    def status(self) -> SessionStatus:
        state = self._state
        if state.token_pair is None:
            return SessionStatus.LOGGED_OUT
        if state.refresh_in_flight is not None and not state.refresh_in_flight.done():
            return SessionStatus.REFRESHING
        return SessionStatus.ACTIVE

    # Status notifications

    def add_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked on every status transition"""
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, status: SessionStatus) -> None:
        self._last_status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception(f"Session status listener failed on {status.value}")

    def _emit(self) -> None:
        status = self.status
        if status != self._last_status:
            logger.debug(f"Session status: {self._last_status.value} -> {status.value}")
            self._notify(status)

    # Token pair

    def get_token_pair(self) -> Optional[TokenPair]:
        return self._state.token_pair

    def get_access_token(self) -> Optional[str]:
        pair = self._state.token_pair
        return pair.access_token if pair else None

    def set_token_pair(self, token_pair: TokenPair) -> None:
        """Store a new pair; the caller is expected to reschedule the clock"""
        self._state.token_pair = token_pair
        if self.storage is not None:
            self.storage.save_tokens(
                access_token=token_pair.access_token,
                refresh_token=token_pair.refresh_token,
            )
        self._emit()

    def restore(self) -> Optional[TokenPair]:
        """Load a previously persisted pair from the durable backend"""
        if self.storage is None:
            return None

        data = self.storage.load_tokens()
        if not data:
            return None

        pair = TokenPair(access_token=data[ACCESS_TOKEN_KEY], refresh_token=data[REFRESH_TOKEN_KEY])
        self._state.token_pair = pair
        logger.debug("Restored session tokens from durable storage")
        self._emit()
        return pair

    # Refresh timer

    @property
    def pending_timer(self) -> Optional[asyncio.Handle]:
        return self._state.pending_timer

    @property
    def refresh_due_at(self) -> Optional[float]:
        return self._state.refresh_due_at

    def set_timer(self, handle: asyncio.Handle, due_at: Optional[float] = None) -> None:
        """Install a new refresh timer, cancelling the one it replaces"""
        self.cancel_timer()
        self._state.pending_timer = handle
        self._state.refresh_due_at = due_at
        if self.storage is not None:
            self.storage.save_refresh_due_at(due_at)

    def cancel_timer(self) -> None:
        handle = self._state.pending_timer
        if handle is not None:
            handle.cancel()
        had_due_at = self._state.refresh_due_at is not None
        self._state.pending_timer = None
        self._state.refresh_due_at = None
        if had_due_at and self.storage is not None:
            self.storage.save_refresh_due_at(None)

    def timer_fired(self) -> None:
        """Forget the timer that just ran; cancelled handles never get here"""
        self._state.pending_timer = None
        self._state.refresh_due_at = None

    # Single-flight refresh slot

    @property
    def refresh_in_flight(self) -> Optional["asyncio.Future[TokenPair]"]:
        return self._state.refresh_in_flight

    @refresh_in_flight.setter
    def refresh_in_flight(self, future: Optional["asyncio.Future[TokenPair]"]) -> None:
        self._state.refresh_in_flight = future
        self._emit()

    # Lifecycle

    def clear(self, expired: bool = False) -> None:
        """Destroy the session; idempotent

        Cancels the pending timer and abandons (without cancelling) any
        refresh in flight. Its result is discarded when it arrives because
        the epoch has moved on.

        Args:
            expired: The session ends because a refresh failed; listeners
                see EXPIRED before LOGGED_OUT
        """
        had_session = self._state.token_pair is not None
        self.cancel_timer()
        self._state = SessionState(epoch=self._state.epoch + 1)
        if self.storage is not None:
            self.storage.clear_tokens()

        if not had_session:
            return
        if expired:
            logger.info("Session expired, clearing tokens")
            self._notify(SessionStatus.EXPIRED)
        else:
            logger.info("Session cleared")
        self._notify(SessionStatus.LOGGED_OUT)
