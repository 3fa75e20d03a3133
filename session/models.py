"""Data models for the authentication session"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh token pair issued by the Authentication Service

    Attributes:
        access_token: Short-lived JWT authorizing individual API calls
        refresh_token: Longer-lived token used only to obtain a new pair
    """
    access_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return "TokenPair(access_token=<redacted>, refresh_token=<redacted>)"


class SessionStatus(str, enum.Enum):
    """Session-level lifecycle states"""
    LOGGED_OUT = "logged_out"
    ACTIVE = "active"
    REFRESHING = "refreshing"
    EXPIRED = "expired"


class OrganizationMembership(BaseModel):
    """Organization the user belongs to, with their role in it"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    role: Optional[str] = None


class UserProfile(BaseModel):
    """Read-only snapshot returned by the "who am I" call"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    full_name: Optional[str] = Field(default=None, alias="fullName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    timezone: Optional[str] = None
    organizations: Optional[List[OrganizationMembership]] = None

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email


class AuthResponse(BaseModel):
    """Token-bearing response of login, register and refresh-token

    Login answers with ``token`` while refresh answers with ``accessToken``;
    register nests the pair under ``tokens``.
    """
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(validation_alias=AliasChoices("accessToken", "token", "access_token"))
    refresh_token: str = Field(validation_alias=AliasChoices("refreshToken", "refresh_token"))
    user: Optional[UserProfile] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_tokens(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("tokens"), dict):
            merged = dict(data["tokens"])
            merged.update({k: v for k, v in data.items() if k != "tokens"})
            return merged
        return data

    def token_pair(self) -> TokenPair:
        return TokenPair(access_token=self.access_token, refresh_token=self.refresh_token)


@dataclass
class AuthResult:
    """Outcome of a successful credential or refresh exchange"""
    tokens: TokenPair
    user: Optional[UserProfile] = None


@dataclass
class SessionState:
    """Mutable session state, owned by the SessionStore

    Attributes:
        token_pair: Current pair, or None when logged out
        pending_timer: Handle of the armed refresh timer
        refresh_due_at: Epoch seconds at which the timer is due
        refresh_in_flight: Shared task of the running refresh exchange
        epoch: Bumped on every destroy; lets late results detect a logout
    """
    token_pair: Optional[TokenPair] = None
    pending_timer: Optional[asyncio.Handle] = None
    refresh_due_at: Optional[float] = None
    refresh_in_flight: Optional["asyncio.Future[TokenPair]"] = None
    epoch: int = 0


def profile_from_payload(payload: Dict[str, Any]) -> UserProfile:
    """Build a UserProfile from /auth/me, which may wrap it under ``user``"""
    if isinstance(payload.get("user"), dict):
        payload = payload["user"]
    return UserProfile.model_validate(payload)
