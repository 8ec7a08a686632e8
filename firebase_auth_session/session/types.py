"""
Session types and data classes.

Defines the session value handed back to callers, the closed set of
provider types, and the read-only snapshots returned by lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from ..exceptions import ValidationError


class AuthType(Enum):
    """Credential providers that can be attached to an account.

    Values are the backend's provider ids.
    """

    EMAIL_AND_PASSWORD = "password"
    FACEBOOK = "facebook.com"
    GOOGLE = "google.com"
    GITHUB = "github.com"
    TWITTER = "twitter.com"
    PHONE = "phone"

    @property
    def is_oauth(self) -> bool:
        return self in _OAUTH_TYPES

    @classmethod
    def coerce(cls, value: AuthType | str) -> AuthType:
        """Return ``value`` as an ``AuthType`` or raise ``ValidationError``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError("auth_type", f"unsupported provider {value!r}") from None


_OAUTH_TYPES = frozenset({AuthType.FACEBOOK, AuthType.GOOGLE, AuthType.GITHUB, AuthType.TWITTER})


class ProviderType(Enum):
    """The credential flow that produced a session."""

    EMAIL = "email"
    ANONYMOUS = "anonymous"
    FACEBOOK = "facebook.com"
    GOOGLE = "google.com"
    GITHUB = "github.com"
    TWITTER = "twitter.com"
    PHONE = "phone"
    CUSTOM_TOKEN = "custom_token"
    ID_TOKEN = "id_token"  # Re-issued from a bare ID token

    @classmethod
    def for_oauth(cls, auth_type: AuthType) -> ProviderType:
        return cls(auth_type.value)


@dataclass(frozen=True)
class SessionState:
    """One authenticated session.

    Instances are never mutated. Refresh, link, unlink and profile updates
    all return a new value. ``expires_at`` is derived from the backend's
    ``expires_in`` and the moment the response was received, so it cannot be
    passed in.
    """

    id_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    local_id: str
    provider_type: ProviderType
    expires_in: int
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Profile
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    phone_number: str | None = None

    expires_at: datetime = field(init=False)

    def __post_init__(self) -> None:
        if not self.id_token:
            raise ValidationError("id_token", "must not be empty")
        if not self.local_id:
            raise ValidationError("local_id", "must not be empty")
        object.__setattr__(self, "expires_at", self.issued_at + timedelta(seconds=self.expires_in))

    def is_expired(self, skew_seconds: float = 0, now: datetime | None = None) -> bool:
        """Check whether the ID token is expired, or will be within ``skew_seconds``."""
        current = now or datetime.now(UTC)
        return current + timedelta(seconds=skew_seconds) >= self.expires_at


@dataclass(frozen=True)
class UserRecord:
    """Read-only snapshot of an account's profile."""

    local_id: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    photo_url: str | None = None
    phone_number: str | None = None
    disabled: bool = False
    provider_ids: tuple[str, ...] = ()
    created_at: datetime | None = None
    last_login_at: datetime | None = None


@dataclass(frozen=True)
class LinkedProviderSet:
    """Providers attached to an email, as reported at query time.

    Not a cache: query again after any link or unlink.
    """

    email: str
    registered: bool
    provider_ids: tuple[str, ...] = ()

    @property
    def providers(self) -> frozenset[AuthType]:
        """Known provider types; unrecognized ids stay in ``provider_ids``."""
        known = {member.value: member for member in AuthType}
        return frozenset(known[pid] for pid in self.provider_ids if pid in known)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, AuthType):
            return item.value in self.provider_ids
        return item in self.provider_ids
