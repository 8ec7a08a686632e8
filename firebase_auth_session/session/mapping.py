"""
Mapping from raw backend results to session values.

The gateway returns the backend's JSON objects untouched; this module is the
only place that knows their field names.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..exceptions import MalformedResponseError
from .types import LinkedProviderSet, ProviderType, SessionState, UserRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_EXPIRES_IN = 3600


def utc_now() -> datetime:
    return datetime.now(UTC)


def _token_lifetime(id_token: str) -> tuple[datetime, int] | None:
    """Read ``iat``/``exp`` claims from a JWT without verifying it.

    Returns None when the token is not a decodable JWT.
    """
    parts = id_token.split(".")
    if len(parts) != 3:
        return None

    payload_b64 = parts[1]
    padding = 4 - len(payload_b64) % 4
    if padding != 4:
        payload_b64 += "=" * padding

    try:
        claims = json.loads(base64.urlsafe_b64decode(payload_b64))
        issued = int(claims["iat"])
        expires = int(claims["exp"])
    except (ValueError, KeyError, TypeError):
        return None
    return datetime.fromtimestamp(issued, UTC), expires - issued


def _lifetime_seconds(operation: str, value: Any) -> int:
    """Parse an ``expiresIn`` value, defaulting when the backend omits it."""
    if value in (None, ""):
        return DEFAULT_EXPIRES_IN
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedResponseError(operation, f"invalid token lifetime: {value!r}") from None


def _optional(data: dict[str, Any], key: str, fallback: str | None) -> str | None:
    """Take ``key`` from the response if present, else keep ``fallback``."""
    if key in data:
        return data[key] or None
    return fallback


def session_from_response(
    operation: str,
    data: dict[str, Any],
    provider_type: ProviderType,
    clock: Clock = utc_now,
    prior: SessionState | None = None,
    fallback_id_token: str | None = None,
) -> SessionState:
    """Build a ``SessionState`` from an Identity Toolkit account response.

    Args:
        operation: Operation name, for error reporting
        data: Raw response body
        provider_type: Flow that produced the session
        clock: Source of the receive timestamp
        prior: Session being replaced; its fields fill whatever the response omits
        fallback_id_token: ID token the call was made with, used when the
            backend did not issue a new one

    Raises:
        MalformedResponseError: If no ID token or local id can be determined
    """
    received_at = clock()
    new_token = data.get("idToken")

    if new_token:
        id_token = new_token
        expires_in = _lifetime_seconds(operation, data.get("expiresIn"))
        issued_at = received_at
    elif prior is not None:
        # Backend kept the caller's token; keep its expiry too
        id_token = prior.id_token
        expires_in = prior.expires_in
        issued_at = prior.issued_at
    elif fallback_id_token:
        id_token = fallback_id_token
        lifetime = _token_lifetime(fallback_id_token)
        if lifetime is None:
            issued_at, expires_in = received_at, DEFAULT_EXPIRES_IN
        else:
            issued_at, expires_in = lifetime
    else:
        raise MalformedResponseError(operation, "response carries no idToken")

    refresh_token = data.get("refreshToken") or (prior.refresh_token if prior else "")
    local_id = data.get("localId") or (prior.local_id if prior else None)
    if not local_id:
        raise MalformedResponseError(operation, "response carries no localId")

    return SessionState(
        id_token=id_token,
        refresh_token=refresh_token,
        local_id=local_id,
        provider_type=provider_type,
        expires_in=expires_in,
        issued_at=issued_at,
        email=_optional(data, "email", prior.email if prior else None),
        display_name=_optional(data, "displayName", prior.display_name if prior else None),
        photo_url=_optional(data, "photoUrl", prior.photo_url if prior else None),
        phone_number=_optional(data, "phoneNumber", prior.phone_number if prior else None),
    )


def session_from_refresh(
    data: dict[str, Any],
    prior: SessionState,
    clock: Clock = utc_now,
) -> SessionState:
    """Build a refreshed session from a Secure Token response.

    Only tokens and expiry come from the response. Local id, provider type
    and profile fields are carried over from ``prior``.
    """
    id_token = data.get("id_token")
    if not id_token:
        raise MalformedResponseError("refresh", "response carries no id_token")

    user_id = data.get("user_id")
    if user_id and user_id != prior.local_id:
        logger.warning(
            "Refresh returned user_id %s for session of %s; keeping the original",
            user_id,
            prior.local_id,
        )

    return SessionState(
        id_token=id_token,
        refresh_token=data.get("refresh_token") or prior.refresh_token,
        local_id=prior.local_id,
        provider_type=prior.provider_type,
        expires_in=_lifetime_seconds("refresh", data.get("expires_in")),
        issued_at=clock(),
        email=prior.email,
        display_name=prior.display_name,
        photo_url=prior.photo_url,
        phone_number=prior.phone_number,
    )


def _millis_to_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, UTC)
    except (TypeError, ValueError):
        return None


def user_from_lookup(data: dict[str, Any]) -> UserRecord:
    """Build a ``UserRecord`` from an ``accounts:lookup`` response."""
    users = data.get("users") or []
    if not users:
        raise MalformedResponseError("get_user", "response carries no users")
    if not isinstance(users, list) or not isinstance(users[0], dict):
        raise MalformedResponseError("get_user", "users is not a list of objects")
    user = users[0]
    if not user.get("localId"):
        raise MalformedResponseError("get_user", "user carries no localId")

    return UserRecord(
        local_id=user["localId"],
        email=user.get("email") or None,
        email_verified=bool(user.get("emailVerified", False)),
        display_name=user.get("displayName") or None,
        photo_url=user.get("photoUrl") or None,
        phone_number=user.get("phoneNumber") or None,
        disabled=bool(user.get("disabled", False)),
        provider_ids=tuple(
            info["providerId"]
            for info in user.get("providerUserInfo", [])
            if isinstance(info, dict) and info.get("providerId")
        ),
        created_at=_millis_to_datetime(user.get("createdAt")),
        last_login_at=_millis_to_datetime(user.get("lastLoginAt")),
    )


def linked_providers_from_query(email: str, data: dict[str, Any]) -> LinkedProviderSet:
    """Build a ``LinkedProviderSet`` from an ``accounts:createAuthUri`` response."""
    provider_ids = data.get("allProviders") or data.get("signinMethods") or []
    return LinkedProviderSet(
        email=email,
        registered=bool(data.get("registered", False)),
        provider_ids=tuple(provider_ids),
    )
