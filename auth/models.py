from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field

from authsession.constants import (
    DEFAULT_SCOPES,
    PENDING_STATE_MAX_ENTRIES,
    PENDING_STATE_TTL_SECONDS,
    PROVIDER_TIMEOUT_SECONDS,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE_SECONDS,
)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


@dataclass(frozen=True)
class ProviderEndpoints:
    authorize_url: str = GOOGLE_AUTHORIZE_URL
    token_url: str = GOOGLE_TOKEN_URL
    userinfo_url: str = GOOGLE_USERINFO_URL


@dataclass(frozen=True)
class AuthConfig:
    client_id: str
    client_secret: str
    redirect_url: str
    cookie_secret: str
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    endpoints: ProviderEndpoints = field(default_factory=ProviderEndpoints)
    cookie_name: str = SESSION_COOKIE_NAME
    # Set when the public URL is https, even if TLS ends at a proxy in front of us.
    cookie_secure: bool = False
    session_max_age_seconds: int = SESSION_MAX_AGE_SECONDS
    pending_state_ttl_seconds: int = PENDING_STATE_TTL_SECONDS
    pending_state_max_entries: int = PENDING_STATE_MAX_ENTRIES
    provider_timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS


@dataclass
class PendingState:
    value: str
    created_at: float


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    verified_email: bool = False
    picture: str = ""
    name: str = ""
    given_name: str = ""
    family_name: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "UserProfile":
        user_id = payload.get("id")
        email = payload.get("email")

        if not isinstance(user_id, str) or not user_id:
            raise ValueError("Profile response missing id.")
        if not isinstance(email, str) or not email:
            raise ValueError("Profile response missing email.")

        def _text(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            id=user_id,
            email=email,
            verified_email=payload.get("verified_email") is True,
            picture=_text("picture"),
            name=_text("name"),
            given_name=_text("given_name"),
            family_name=_text("family_name"),
        )


@dataclass
class Session:
    authenticated: bool = False
    id: str = ""
    email: str = ""
    fullname: str = ""
    state: str = ""
    max_age: int | None = None
    expires_at: float | None = None

    def authenticate(self, profile: UserProfile, state: str) -> None:
        self.authenticated = True
        self.id = profile.id
        self.email = profile.email
        self.fullname = profile.name
        self.state = state

    def is_expired(self, *, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= self.expires_at

    def to_payload(self) -> dict:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict) -> "Session":
        # Anything but a real boolean True reads as unauthenticated.
        def _text(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ""

        max_age = payload.get("max_age")
        expires_at = payload.get("expires_at")
        return cls(
            authenticated=payload.get("authenticated") is True,
            id=_text("id"),
            email=_text("email"),
            fullname=_text("fullname"),
            state=_text("state"),
            max_age=max_age if isinstance(max_age, int) and not isinstance(max_age, bool) else None,
            expires_at=float(expires_at)
            if isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool)
            else None,
        )
