import json
import logging
import os
import platform
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

from settings import TOKEN_FILE

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
REFRESH_DUE_AT_KEY = "refreshDueAt"


class TokenStorage:
    """Durable token storage with owner-only file permissions

    Holds the session's token pair under fixed keys so that a later process
    can restore the session.
    """

    def __init__(self, token_file: Optional[str] = None):
        self.token_path = Path(token_file if token_file else TOKEN_FILE)
        self._ensure_secure_directory()

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.token_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def _write(self, data: Dict[str, Any]):
        self.token_path.write_text(json.dumps(data, indent=2))

        if platform.system() != "Windows":
            os.chmod(self.token_path, 0o600)

    def save_tokens(self, access_token: str, refresh_token: str, refresh_due_at: Optional[float] = None):
        """Persist the token pair, replacing whatever was stored before"""
        data: Dict[str, Any] = {
            ACCESS_TOKEN_KEY: access_token,
            REFRESH_TOKEN_KEY: refresh_token,
        }
        if refresh_due_at is not None:
            data[REFRESH_DUE_AT_KEY] = int(refresh_due_at)

        self._write(data)
        logger.debug(f"Saved session tokens to {self.token_path}")

    def save_refresh_due_at(self, refresh_due_at: Optional[float]):
        """Record when the pending refresh timer is due

        No-op when there is no stored pair to annotate.
        """
        data = self.load_tokens()
        if not data:
            return

        if refresh_due_at is None:
            data.pop(REFRESH_DUE_AT_KEY, None)
        else:
            data[REFRESH_DUE_AT_KEY] = int(refresh_due_at)
        self._write(data)

    def load_tokens(self) -> Optional[Dict[str, Any]]:
        """Load tokens from storage"""
        if not self.token_path.exists():
            return None

        try:
            data = json.loads(self.token_path.read_text())
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        if not data.get(ACCESS_TOKEN_KEY) or not data.get(REFRESH_TOKEN_KEY):
            return None
        return data

    def clear_tokens(self):
        """Remove stored tokens"""
        if self.token_path.exists():
            self.token_path.unlink()
            logger.debug(f"Removed token file {self.token_path}")

    def get_access_token(self) -> Optional[str]:
        tokens = self.load_tokens()
        if not tokens:
            return None
        return tokens.get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        tokens = self.load_tokens()
        if not tokens:
            return None
        return tokens.get(REFRESH_TOKEN_KEY)

    def get_status(self) -> Dict[str, Any]:
        """Get token status without exposing secrets"""
        from session.jwt_utils import get_token_expiry
        from session.errors import MalformedToken

        tokens = self.load_tokens()
        if not tokens:
            return {
                "has_tokens": False,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "refresh_due_at": None,
            }

        refresh_due_at = tokens.get(REFRESH_DUE_AT_KEY)
        refresh_due_str = None
        if isinstance(refresh_due_at, (int, float)):
            refresh_due_str = datetime.fromtimestamp(refresh_due_at).isoformat()

        try:
            expires_at = get_token_expiry(tokens[ACCESS_TOKEN_KEY])
        except MalformedToken:
            return {
                "has_tokens": True,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "Unreadable token",
                "refresh_due_at": refresh_due_str,
            }

        expires_str = datetime.fromtimestamp(expires_at).isoformat()
        current_time = int(time.time())

        if current_time >= expires_at:
            time_since = int(current_time - expires_at)
            hours_since = time_since // 3600
            mins_since = (time_since % 3600) // 60

            if hours_since > 0:
                time_str = f"{hours_since}h {mins_since}m ago"
            else:
                time_str = f"{mins_since}m ago"

            return {
                "has_tokens": True,
                "is_expired": True,
                "expires_at": expires_str,
                "time_until_expiry": time_str,
                "refresh_due_at": refresh_due_str,
            }

        time_remaining = int(expires_at - current_time)
        hours = time_remaining // 3600
        minutes = (time_remaining % 3600) // 60
        days = hours // 24

        if days > 0:
            time_str = f"{days}d {hours % 24}h"
        elif hours > 0:
            time_str = f"{hours}h {minutes}m"
        else:
            time_str = f"{minutes}m"

        return {
            "has_tokens": True,
            "is_expired": False,
            "expires_at": expires_str,
            "time_until_expiry": time_str,
            "expires_in_seconds": time_remaining,
            "refresh_due_at": refresh_due_str,
        }

    @property
    def token_file(self) -> Path:
        """Get the token file path"""
        return self.token_path
