"""
Session lifecycle: sign-in, sign-up, refresh and account operations.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ..cancellation import CancellationSignal
from ..config import AuthConfig
from ..exceptions import AuthSessionError, ValidationError
from ..gateway.base import BackendGateway, Operation
from . import mapping
from .base import GatewayComponent, SessionOrToken, require, resolve_session
from .mapping import Clock
from .types import AuthType, ProviderType, SessionState, UserRecord

DEFAULT_EXPIRY_SKEW_SECONDS = 10.0


class SessionLifecycleManager(GatewayComponent):
    """Produces and keeps valid ``SessionState`` values.

    The manager holds no per-session state and runs no timers. Callers refresh
    proactively (see ``is_expired`` / ``get_fresh_session``) or after a
    ``BackendRejection`` with an expired-token code.

    Example:
        >>> manager = SessionLifecycleManager(gateway)
        >>> session = await manager.sign_in_with_email_and_password("a@b.c", "secret")
        >>> session = await manager.get_fresh_session(session)
    """

    component = "lifecycle"

    def __init__(
        self,
        gateway: BackendGateway,
        *,
        config: AuthConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(gateway, clock=clock)
        self.expiry_skew_seconds = (
            config.expiry_skew_seconds if config is not None else DEFAULT_EXPIRY_SKEW_SECONDS
        )

    # -- Sign-in and sign-up ------------------------------------------------

    async def create_user_with_email_and_password(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
        send_verification_email: bool = False,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Create an account and sign it in.

        The verification email is a best-effort follow-up: if sending it
        fails, the failure is logged and the new session is still returned.
        ``cancel`` covers the sign-up call only; once the account exists the
        follow-up runs to completion.
        """
        parameters = {
            "email": require("email", email),
            "password": require("password", password),
        }
        if display_name:
            parameters["display_name"] = display_name

        data = await self._invoke(Operation.SIGN_UP, parameters, cancel)
        session = mapping.session_from_response(
            Operation.SIGN_UP.value, data, ProviderType.EMAIL, self.clock
        )
        if display_name and not session.display_name:
            session = replace(session, display_name=display_name)
        self.logger.info("Created account %s", session.local_id)

        if send_verification_email:
            try:
                await self.send_email_verification(session)
            except AuthSessionError as e:
                self.logger.warning(
                    "Account %s created but verification email failed: %s",
                    session.local_id,
                    e.message,
                )
        return session

    async def sign_in_anonymously(
        self, *, cancel: CancellationSignal | None = None
    ) -> SessionState:
        data = await self._invoke(Operation.SIGN_IN_ANONYMOUS, {}, cancel)
        session = mapping.session_from_response(
            Operation.SIGN_IN_ANONYMOUS.value, data, ProviderType.ANONYMOUS, self.clock
        )
        # Anonymous accounts carry no profile, whatever the backend echoes
        return replace(session, email=None, display_name=None, photo_url=None, phone_number=None)

    async def sign_in_with_email_and_password(
        self,
        email: str,
        password: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        parameters = {
            "email": require("email", email),
            "password": require("password", password),
        }
        data = await self._invoke(Operation.SIGN_IN_EMAIL, parameters, cancel)
        return mapping.session_from_response(
            Operation.SIGN_IN_EMAIL.value, data, ProviderType.EMAIL, self.clock
        )

    async def sign_in_with_oauth(
        self,
        auth_type: AuthType | str,
        oauth_access_token: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Exchange a third-party OAuth access token for a session.

        Raises:
            ValidationError: If ``auth_type`` is not an OAuth provider
        """
        auth_type = require_oauth(auth_type)
        parameters = {
            "provider_id": auth_type.value,
            "access_token": require("oauth_access_token", oauth_access_token),
        }
        data = await self._invoke(Operation.SIGN_IN_OAUTH, parameters, cancel)
        return mapping.session_from_response(
            Operation.SIGN_IN_OAUTH.value, data, ProviderType.for_oauth(auth_type), self.clock
        )

    async def sign_in_with_oauth_twitter_token(
        self,
        access_token: str,
        token_secret: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Sign in with a Twitter OAuth 1.0a token pair."""
        parameters = {
            "provider_id": AuthType.TWITTER.value,
            "access_token": require("access_token", access_token),
            "oauth_token_secret": require("token_secret", token_secret),
        }
        data = await self._invoke(Operation.SIGN_IN_OAUTH, parameters, cancel)
        return mapping.session_from_response(
            Operation.SIGN_IN_OAUTH.value, data, ProviderType.TWITTER, self.clock
        )

    async def sign_in_with_custom_token(
        self,
        custom_token: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        parameters = {"custom_token": require("custom_token", custom_token)}
        data = await self._invoke(Operation.SIGN_IN_CUSTOM_TOKEN, parameters, cancel)
        return mapping.session_from_response(
            Operation.SIGN_IN_CUSTOM_TOKEN.value, data, ProviderType.CUSTOM_TOKEN, self.clock
        )

    # -- Expiry and refresh -------------------------------------------------

    def is_expired(
        self,
        session: SessionState,
        skew_seconds: float | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Pure expiry check using the configured skew unless one is given."""
        skew = self.expiry_skew_seconds if skew_seconds is None else skew_seconds
        return session.is_expired(skew, now or self.clock())

    async def refresh(
        self,
        session: SessionState,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Exchange the session's refresh token for a new ID token.

        Refresh tokens are reusable, so concurrent refreshes of the same
        session each succeed and return independent values.
        """
        parameters = {"refresh_token": require("refresh_token", session.refresh_token)}
        data = await self._invoke(Operation.REFRESH, parameters, cancel)
        refreshed = mapping.session_from_refresh(data, session, self.clock)
        self.logger.debug("Refreshed session %s until %s", refreshed.local_id, refreshed.expires_at)
        return refreshed

    async def get_fresh_session(
        self,
        session: SessionState,
        skew_seconds: float | None = None,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Return ``session`` if still valid, otherwise a refreshed one."""
        if not self.is_expired(session, skew_seconds):
            return session
        return await self.refresh(session, cancel=cancel)

    # -- Account operations -------------------------------------------------

    async def change_password(
        self,
        session_or_token: SessionOrToken,
        new_password: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        id_token, prior = resolve_session(session_or_token)
        parameters = {"id_token": id_token, "password": require("new_password", new_password)}
        data = await self._invoke(Operation.CHANGE_PASSWORD, parameters, cancel)
        return mapping.session_from_response(
            Operation.CHANGE_PASSWORD.value,
            data,
            ProviderType.EMAIL,
            self.clock,
            prior=prior,
            fallback_id_token=id_token,
        )

    async def update_profile(
        self,
        session_or_token: SessionOrToken,
        display_name: str | None,
        photo_url: str | None,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Set display name and photo URL. Empty or None clears the attribute."""
        id_token, prior = resolve_session(session_or_token)
        parameters = {
            "id_token": id_token,
            "display_name": display_name or None,
            "photo_url": photo_url or None,
        }
        data = await self._invoke(Operation.UPDATE_PROFILE, parameters, cancel)
        session = mapping.session_from_response(
            Operation.UPDATE_PROFILE.value,
            data,
            prior.provider_type if prior else ProviderType.ID_TOKEN,
            self.clock,
            prior=prior,
            fallback_id_token=id_token,
        )
        return replace(session, display_name=display_name or None, photo_url=photo_url or None)

    async def send_password_reset_email(
        self, email: str, *, cancel: CancellationSignal | None = None
    ) -> None:
        parameters = {"email": require("email", email)}
        await self._invoke(Operation.SEND_PASSWORD_RESET, parameters, cancel)

    async def send_email_verification(
        self,
        session_or_token: SessionOrToken,
        *,
        cancel: CancellationSignal | None = None,
    ) -> None:
        id_token, _ = resolve_session(session_or_token)
        await self._invoke(Operation.SEND_VERIFICATION_EMAIL, {"id_token": id_token}, cancel)

    async def get_user(
        self,
        session_or_token: SessionOrToken,
        *,
        cancel: CancellationSignal | None = None,
    ) -> UserRecord:
        """Fetch a profile snapshot. The caller's session is left as is."""
        id_token, _ = resolve_session(session_or_token)
        data = await self._invoke(Operation.GET_USER, {"id_token": id_token}, cancel)
        return mapping.user_from_lookup(data)

    async def delete_user(
        self,
        session_or_token: SessionOrToken,
        *,
        cancel: CancellationSignal | None = None,
    ) -> None:
        """Delete the account. Sessions for it must be discarded by the caller."""
        id_token, prior = resolve_session(session_or_token)
        await self._invoke(Operation.DELETE_USER, {"id_token": id_token}, cancel)
        if prior is not None:
            self.logger.info("Deleted account %s", prior.local_id)


def require_oauth(auth_type: AuthType | str) -> AuthType:
    """Coerce ``auth_type`` and reject non-OAuth providers."""
    resolved = AuthType.coerce(auth_type)
    if not resolved.is_oauth:
        raise ValidationError("auth_type", f"{resolved.value} is not an OAuth provider")
    return resolved
