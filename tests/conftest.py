"""
Shared test configuration and fixtures.

Provides an in-memory identity backend that speaks the same result shapes
as Identity Toolkit, so the session components can be exercised without
network access.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from firebase_auth_session.cancellation import CancellationSignal
from firebase_auth_session.exceptions import AuthSessionError, BackendRejection
from firebase_auth_session.gateway.base import BackendGateway, Operation
from firebase_auth_session.session.lifecycle import SessionLifecycleManager
from firebase_auth_session.session.linking import ProviderLinkCoordinator
from firebase_auth_session.session.phone import PhoneVerificationFlow

VALID_PHONE_CODE = "123456"


@dataclass
class FakeAccount:
    local_id: str
    email: str | None = None
    password: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    phone_number: str | None = None
    email_verified: bool = False
    providers: set[str] = field(default_factory=set)
    federated_ids: dict[str, str] = field(default_factory=dict)


class FakeIdentityBackend(BackendGateway):
    """
    In-memory identity backend for testing.

    Tokens are plain strings; refresh tokens are reusable. Every call is
    recorded in ``calls``. Setting ``hold`` to an operation makes calls of
    that operation wait until ``release`` is set.
    """

    def __init__(self, expires_in: int = 3600):
        self.expires_in = expires_in
        self.accounts: dict[str, FakeAccount] = {}
        self.id_tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.phone_sessions: dict[str, tuple[str, str]] = {}
        self.used_session_infos: set[str] = set()
        self.sent_emails: list[tuple[str, str]] = []
        self.calls: list[tuple[Operation, dict[str, Any]]] = []
        self.failures: dict[Operation, AuthSessionError] = {}
        self.hold: Operation | None = None
        self.release = asyncio.Event()
        self.closed = False
        self._ids = itertools.count(1)

    # -- Helpers ------------------------------------------------------------

    def _reject(self, operation: Operation, raw: str) -> BackendRejection:
        return BackendRejection.from_message(operation.value, raw)

    def _new_account(self, **kwargs: Any) -> FakeAccount:
        account = FakeAccount(local_id=f"uid-{next(self._ids)}", **kwargs)
        self.accounts[account.local_id] = account
        self.refresh_tokens[f"refresh-{account.local_id}"] = account.local_id
        return account

    def _issue(self, account: FakeAccount) -> dict[str, Any]:
        id_token = f"id-{account.local_id}-{next(self._ids)}"
        self.id_tokens[id_token] = account.local_id
        return {
            "idToken": id_token,
            "refreshToken": f"refresh-{account.local_id}",
            "expiresIn": str(self.expires_in),
            "localId": account.local_id,
            "email": account.email or "",
            "displayName": account.display_name or "",
        }

    def _account_for(self, operation: Operation, id_token: str) -> FakeAccount:
        local_id = self.id_tokens.get(id_token)
        if local_id is None or local_id not in self.accounts:
            raise self._reject(operation, "INVALID_ID_TOKEN")
        return self.accounts[local_id]

    def _by_email(self, email: str) -> FakeAccount | None:
        return next((a for a in self.accounts.values() if a.email == email), None)

    def _by_federated(self, provider_id: str, token: str) -> FakeAccount | None:
        return next(
            (a for a in self.accounts.values() if a.federated_ids.get(provider_id) == token),
            None,
        )

    def register(self, email: str, password: str, **kwargs: Any) -> FakeAccount:
        """Seed an email/password account directly."""
        return self._new_account(email=email, password=password, providers={"password"}, **kwargs)

    # -- Gateway ------------------------------------------------------------

    async def invoke(
        self,
        operation: Operation,
        parameters: dict[str, Any],
        cancel: CancellationSignal | None = None,
    ) -> dict[str, Any]:
        self.calls.append((operation, dict(parameters)))
        if self.hold is operation:
            await self.release.wait()
        if operation in self.failures:
            raise self.failures.pop(operation)
        handler = getattr(self, f"_handle_{operation.value}")
        return handler(parameters)

    async def close(self) -> None:
        self.closed = True

    def _handle_sign_up(self, p: dict[str, Any]) -> dict[str, Any]:
        if self._by_email(p["email"]) is not None:
            raise self._reject(Operation.SIGN_UP, "EMAIL_EXISTS")
        account = self.register(p["email"], p["password"], display_name=p.get("display_name"))
        return {"kind": "identitytoolkit#SignupNewUserResponse", **self._issue(account)}

    def _handle_sign_in_anonymous(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._new_account()
        response = self._issue(account)
        response.pop("displayName")
        return response

    def _handle_sign_in_email(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._by_email(p["email"])
        if account is None:
            raise self._reject(Operation.SIGN_IN_EMAIL, "EMAIL_NOT_FOUND")
        if account.password != p["password"]:
            raise self._reject(Operation.SIGN_IN_EMAIL, "INVALID_PASSWORD")
        return {**self._issue(account), "registered": True}

    def _handle_sign_in_oauth(self, p: dict[str, Any]) -> dict[str, Any]:
        provider_id = p["provider_id"]
        account = self._by_federated(provider_id, p["access_token"])
        if account is None:
            account = self._new_account(
                email=f"{p['access_token']}@{provider_id}",
                providers={provider_id},
                federated_ids={provider_id: p["access_token"]},
            )
        return {**self._issue(account), "providerId": provider_id}

    def _handle_sign_in_custom_token(self, p: dict[str, Any]) -> dict[str, Any]:
        if not p["custom_token"].startswith("custom-"):
            raise self._reject(Operation.SIGN_IN_CUSTOM_TOKEN, "INVALID_CUSTOM_TOKEN")
        account = self._new_account()
        response = self._issue(account)
        # Custom token sign-in returns tokens only
        return {key: response[key] for key in ("idToken", "refreshToken", "expiresIn", "localId")}

    def _handle_refresh(self, p: dict[str, Any]) -> dict[str, Any]:
        local_id = self.refresh_tokens.get(p["refresh_token"])
        if local_id is None or local_id not in self.accounts:
            raise self._reject(Operation.REFRESH, "INVALID_REFRESH_TOKEN")
        response = self._issue(self.accounts[local_id])
        return {
            "id_token": response["idToken"],
            "refresh_token": response["refreshToken"],
            "expires_in": response["expiresIn"],
            "user_id": local_id,
            "token_type": "Bearer",
        }

    def _handle_link(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.LINK, p["id_token"])
        if "email" in p:
            if "password" in account.providers:
                raise self._reject(Operation.LINK, "PROVIDER_ALREADY_LINKED")
            owner = self._by_email(p["email"])
            if owner is not None and owner is not account:
                raise self._reject(Operation.LINK, "EMAIL_EXISTS")
            account.email = p["email"]
            account.password = p["password"]
            account.providers.add("password")
        else:
            provider_id = p["provider_id"]
            if self._by_federated(provider_id, p["access_token"]) is not None:
                raise self._reject(Operation.LINK, "FEDERATED_USER_ID_ALREADY_LINKED")
            account.providers.add(provider_id)
            account.federated_ids[provider_id] = p["access_token"]
        return self._issue(account)

    def _handle_unlink(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.UNLINK, p["id_token"])
        if p["provider_id"] in account.providers and len(account.providers) <= 1:
            raise self._reject(Operation.UNLINK, "LAST_PROVIDER : cannot remove the only provider")
        account.providers.discard(p["provider_id"])
        account.federated_ids.pop(p["provider_id"], None)
        # accounts:update echoes the profile but keeps the caller's token
        return {"localId": account.local_id, "email": account.email or ""}

    def _handle_get_linked_accounts(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._by_email(p["email"])
        if account is None:
            return {"registered": False}
        return {"registered": True, "allProviders": sorted(account.providers)}

    def _handle_get_user(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.GET_USER, p["id_token"])
        return {
            "users": [
                {
                    "localId": account.local_id,
                    "email": account.email,
                    "emailVerified": account.email_verified,
                    "displayName": account.display_name,
                    "providerUserInfo": [{"providerId": pid} for pid in sorted(account.providers)],
                    "createdAt": "1700000000000",
                }
            ]
        }

    def _handle_send_password_reset(self, p: dict[str, Any]) -> dict[str, Any]:
        if self._by_email(p["email"]) is None:
            raise self._reject(Operation.SEND_PASSWORD_RESET, "EMAIL_NOT_FOUND")
        self.sent_emails.append(("PASSWORD_RESET", p["email"]))
        return {"email": p["email"]}

    def _handle_send_verification_email(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.SEND_VERIFICATION_EMAIL, p["id_token"])
        self.sent_emails.append(("VERIFY_EMAIL", account.email or ""))
        return {"email": account.email}

    def _handle_update_profile(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.UPDATE_PROFILE, p["id_token"])
        account.display_name = p.get("display_name")
        account.photo_url = p.get("photo_url")
        response: dict[str, Any] = {"localId": account.local_id, "email": account.email or ""}
        if account.display_name:
            response["displayName"] = account.display_name
        if account.photo_url:
            response["photoUrl"] = account.photo_url
        return response

    def _handle_change_password(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.CHANGE_PASSWORD, p["id_token"])
        account.password = p["password"]
        return self._issue(account)

    def _handle_delete_user(self, p: dict[str, Any]) -> dict[str, Any]:
        account = self._account_for(Operation.DELETE_USER, p["id_token"])
        del self.accounts[account.local_id]
        return {"kind": "identitytoolkit#DeleteAccountResponse"}

    def _handle_send_phone_code(self, p: dict[str, Any]) -> dict[str, Any]:
        if p["recaptcha_token"] != "recaptcha-ok":
            raise self._reject(Operation.SEND_PHONE_CODE, "CAPTCHA_CHECK_FAILED")
        session_info = f"session-info-{next(self._ids)}"
        self.phone_sessions[session_info] = (p["phone_number"], VALID_PHONE_CODE)
        return {"sessionInfo": session_info}

    def _handle_confirm_phone_code(self, p: dict[str, Any]) -> dict[str, Any]:
        session_info = p["session_info"]
        if session_info in self.used_session_infos or session_info not in self.phone_sessions:
            raise self._reject(Operation.CONFIRM_PHONE_CODE, "INVALID_SESSION_INFO")
        self.used_session_infos.add(session_info)
        phone_number, code = self.phone_sessions.pop(session_info)
        if p["code"] != code:
            raise self._reject(Operation.CONFIRM_PHONE_CODE, "INVALID_CODE")
        account = next(
            (a for a in self.accounts.values() if a.phone_number == phone_number), None
        ) or self._new_account(phone_number=phone_number, providers={"phone"})
        response = self._issue(account)
        response.pop("displayName")
        return {**response, "phoneNumber": phone_number, "isNewUser": True}

    def operations(self) -> list[Operation]:
        return [operation for operation, _ in self.calls]


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def backend() -> FakeIdentityBackend:
    return FakeIdentityBackend()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def manager(backend, clock) -> SessionLifecycleManager:
    return SessionLifecycleManager(backend, clock=clock)


@pytest.fixture
def coordinator(backend, clock) -> ProviderLinkCoordinator:
    return ProviderLinkCoordinator(backend, clock=clock)


@pytest.fixture
def phone_flow(backend, clock) -> PhoneVerificationFlow:
    return PhoneVerificationFlow(backend, clock=clock)
