"""
Attaching and detaching credential providers on an existing account.

Whether an account stays reachable after an unlink is decided by the
backend. A refused unlink of the last provider surfaces as
``BackendRejection`` with ``RejectionCode.LAST_PROVIDER``.
"""

from __future__ import annotations

from ..cancellation import CancellationSignal
from ..gateway.base import Operation
from . import mapping
from .base import GatewayComponent, SessionOrToken, require, resolve_session
from .lifecycle import require_oauth
from .types import AuthType, LinkedProviderSet, ProviderType, SessionState


class ProviderLinkCoordinator(GatewayComponent):
    """Links and unlinks providers for the account behind a session.

    Every method taking ``session_or_token`` accepts either a full
    ``SessionState`` or a bare ID token. Passing the session keeps its
    refresh token and profile in the returned value.
    """

    component = "linking"

    async def link_with_email_and_password(
        self,
        session_or_token: SessionOrToken,
        email: str,
        password: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Attach an email/password credential.

        Raises:
            BackendRejection: ``PROVIDER_ALREADY_LINKED`` if the account
                already has one, ``EMAIL_EXISTS`` if another account owns it
        """
        id_token, prior = resolve_session(session_or_token)
        parameters = {
            "id_token": id_token,
            "email": require("email", email),
            "password": require("password", password),
        }
        data = await self._invoke(Operation.LINK, parameters, cancel)
        session = mapping.session_from_response(
            Operation.LINK.value,
            data,
            ProviderType.EMAIL,
            self.clock,
            prior=prior,
            fallback_id_token=id_token,
        )
        self.logger.info("Linked %s to %s", AuthType.EMAIL_AND_PASSWORD.value, session.local_id)
        return session

    async def link_with_oauth(
        self,
        session_or_token: SessionOrToken,
        auth_type: AuthType | str,
        oauth_access_token: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        auth_type = require_oauth(auth_type)
        id_token, prior = resolve_session(session_or_token)
        parameters = {
            "id_token": id_token,
            "provider_id": auth_type.value,
            "access_token": require("oauth_access_token", oauth_access_token),
        }
        data = await self._invoke(Operation.LINK, parameters, cancel)
        session = mapping.session_from_response(
            Operation.LINK.value,
            data,
            ProviderType.for_oauth(auth_type),
            self.clock,
            prior=prior,
            fallback_id_token=id_token,
        )
        self.logger.info("Linked %s to %s", auth_type.value, session.local_id)
        return session

    async def unlink(
        self,
        session_or_token: SessionOrToken,
        auth_type: AuthType | str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Detach a provider.

        Raises:
            BackendRejection: ``LAST_PROVIDER`` if it is the account's only
                remaining credential
        """
        auth_type = AuthType.coerce(auth_type)
        id_token, prior = resolve_session(session_or_token)
        parameters = {"id_token": id_token, "provider_id": auth_type.value}
        data = await self._invoke(Operation.UNLINK, parameters, cancel)
        session = mapping.session_from_response(
            Operation.UNLINK.value,
            data,
            prior.provider_type if prior else ProviderType.ID_TOKEN,
            self.clock,
            prior=prior,
            fallback_id_token=id_token,
        )
        self.logger.info("Unlinked %s from %s", auth_type.value, session.local_id)
        return session

    async def get_linked_accounts(
        self,
        email: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> LinkedProviderSet:
        """Query the providers attached to ``email``. Never cached."""
        email = require("email", email)
        data = await self._invoke(Operation.GET_LINKED_ACCOUNTS, {"email": email}, cancel)
        return mapping.linked_providers_from_query(email, data)
