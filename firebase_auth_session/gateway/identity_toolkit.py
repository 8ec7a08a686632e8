"""
Identity Toolkit gateway.

Implements ``BackendGateway`` over the Firebase Identity Toolkit v1 REST API
and the Secure Token API using aiohttp. One HTTP request per invocation, no
retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import aiohttp

from ..cancellation import CancellationSignal
from ..config import AuthConfig
from ..exceptions import BackendRejection, MalformedResponseError, TransportError, raw_error_code
from ..sanitization import sanitize_text
from .base import BackendGateway, Operation

logger = logging.getLogger(__name__)

# Identity Toolkit endpoint per operation; REFRESH goes to the Secure Token API
ENDPOINTS: dict[Operation, str] = {
    Operation.SIGN_UP: "accounts:signUp",
    Operation.SIGN_IN_ANONYMOUS: "accounts:signUp",
    Operation.SIGN_IN_EMAIL: "accounts:signInWithPassword",
    Operation.SIGN_IN_OAUTH: "accounts:signInWithIdp",
    Operation.SIGN_IN_CUSTOM_TOKEN: "accounts:signInWithCustomToken",
    Operation.UNLINK: "accounts:update",
    Operation.GET_LINKED_ACCOUNTS: "accounts:createAuthUri",
    Operation.GET_USER: "accounts:lookup",
    Operation.SEND_PASSWORD_RESET: "accounts:sendOobCode",
    Operation.SEND_VERIFICATION_EMAIL: "accounts:sendOobCode",
    Operation.UPDATE_PROFILE: "accounts:update",
    Operation.CHANGE_PASSWORD: "accounts:update",
    Operation.DELETE_USER: "accounts:delete",
    Operation.SEND_PHONE_CODE: "accounts:sendVerificationCode",
    Operation.CONFIRM_PHONE_CODE: "accounts:signInWithPhoneNumber",
}


class IdentityToolkitGateway(BackendGateway):
    """aiohttp-backed gateway to Firebase Authentication.

    Example:
        >>> async with IdentityToolkitGateway(AuthConfig.from_env()) as gateway:
        ...     manager = SessionLifecycleManager(gateway)
        ...     session = await manager.sign_in_anonymously()
    """

    def __init__(self, config: AuthConfig, session: aiohttp.ClientSession | None = None):
        """Initialize the gateway.

        Args:
            config: Backend configuration
            session: Optional shared aiohttp session. When omitted the gateway
                creates one lazily and closes it in ``close()``.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)
        self._builders: dict[Operation, Callable[[dict[str, Any]], dict[str, Any]]] = {
            Operation.SIGN_UP: self._sign_up_body,
            Operation.SIGN_IN_ANONYMOUS: lambda p: {"returnSecureToken": True},
            Operation.SIGN_IN_EMAIL: self._password_body,
            Operation.SIGN_IN_OAUTH: self._idp_body,
            Operation.SIGN_IN_CUSTOM_TOKEN: lambda p: {
                "token": p["custom_token"],
                "returnSecureToken": True,
            },
            Operation.UNLINK: lambda p: {
                "idToken": p["id_token"],
                "deleteProvider": [p["provider_id"]],
                "returnSecureToken": True,
            },
            Operation.GET_LINKED_ACCOUNTS: lambda p: {
                "identifier": p["email"],
                "continueUri": self.config.request_uri,
            },
            Operation.GET_USER: lambda p: {"idToken": p["id_token"]},
            Operation.SEND_PASSWORD_RESET: lambda p: {
                "requestType": "PASSWORD_RESET",
                "email": p["email"],
            },
            Operation.SEND_VERIFICATION_EMAIL: lambda p: {
                "requestType": "VERIFY_EMAIL",
                "idToken": p["id_token"],
            },
            Operation.UPDATE_PROFILE: self._profile_body,
            Operation.CHANGE_PASSWORD: lambda p: {
                "idToken": p["id_token"],
                "password": p["password"],
                "returnSecureToken": True,
            },
            Operation.DELETE_USER: lambda p: {"idToken": p["id_token"]},
            Operation.SEND_PHONE_CODE: lambda p: {
                "phoneNumber": p["phone_number"],
                "recaptchaToken": p["recaptcha_token"],
            },
            Operation.CONFIRM_PHONE_CODE: lambda p: {
                "sessionInfo": p["session_info"],
                "code": p["code"],
            },
        }

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    # -- Request bodies -----------------------------------------------------

    @staticmethod
    def _sign_up_body(p: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "email": p["email"],
            "password": p["password"],
            "returnSecureToken": True,
        }
        if p.get("display_name"):
            body["displayName"] = p["display_name"]
        return body

    @staticmethod
    def _password_body(p: dict[str, Any]) -> dict[str, Any]:
        return {"email": p["email"], "password": p["password"], "returnSecureToken": True}

    def _idp_body(self, p: dict[str, Any]) -> dict[str, Any]:
        post_body = {"access_token": p["access_token"], "providerId": p["provider_id"]}
        if p.get("oauth_token_secret"):
            post_body["oauth_token_secret"] = p["oauth_token_secret"]

        body: dict[str, Any] = {
            "postBody": urlencode(post_body),
            "requestUri": self.config.request_uri,
            "returnSecureToken": True,
            "returnIdpCredential": True,
        }
        if p.get("id_token"):
            body["idToken"] = p["id_token"]
        return body

    def _link_body(self, p: dict[str, Any]) -> dict[str, Any]:
        if "email" in p:
            return {
                "idToken": p["id_token"],
                "email": p["email"],
                "password": p["password"],
                "returnSecureToken": True,
            }
        return self._idp_body(p)

    @staticmethod
    def _profile_body(p: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {"idToken": p["id_token"], "returnSecureToken": True}
        delete_attributes = []
        if p.get("display_name"):
            body["displayName"] = p["display_name"]
        else:
            delete_attributes.append("DISPLAY_NAME")
        if p.get("photo_url"):
            body["photoUrl"] = p["photo_url"]
        else:
            delete_attributes.append("PHOTO_URL")
        if delete_attributes:
            body["deleteAttribute"] = delete_attributes
        return body

    def _build_request(
        self, operation: Operation, parameters: dict[str, Any]
    ) -> tuple[str, dict[str, Any] | None, dict[str, str] | None]:
        """Return ``(url, json_body, form_body)`` for an operation."""
        if operation is Operation.REFRESH:
            form = {"grant_type": "refresh_token", "refresh_token": parameters["refresh_token"]}
            return f"{self.config.secure_token_url}/token", None, form

        if operation is Operation.LINK:
            body = self._link_body(parameters)
            endpoint = "accounts:update" if "email" in parameters else "accounts:signInWithIdp"
        else:
            body = self._builders[operation](parameters)
            endpoint = ENDPOINTS[operation]
        return f"{self.config.identity_toolkit_url}/{endpoint}", body, None

    # -- Invocation ---------------------------------------------------------

    async def invoke(
        self,
        operation: Operation,
        parameters: dict[str, Any],
        cancel: CancellationSignal | None = None,
    ) -> dict[str, Any]:
        if cancel is not None:
            cancel.raise_if_cancelled(operation.value)

        url, json_body, form_body = self._build_request(operation, parameters)
        session = self._ensure_session()

        try:
            async with session.post(
                url,
                params={"key": self.config.api_key},
                json=json_body,
                data=form_body,
                timeout=self._timeout,
            ) as response:
                status = response.status
                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    if status >= 500:
                        raise TransportError(
                            operation.value, f"backend unavailable (HTTP {status})", e
                        ) from e
                    raise MalformedResponseError(
                        operation.value, f"unparsable response body (HTTP {status})", e
                    ) from e
        except asyncio.TimeoutError as e:
            raise TransportError(operation.value, "request timed out", e) from e
        except aiohttp.ClientError as e:
            logger.warning(
                "Identity Toolkit unreachable: operation=%s url=%s",
                operation.value,
                sanitize_text(url),
            )
            raise TransportError(operation.value, "connection failed", e) from e

        return self._handle_response(operation, status, body)

    def _handle_response(self, operation: Operation, status: int, body: Any) -> dict[str, Any]:
        """Return the body of a successful response or raise the mapped error."""
        if status >= 500:
            raise TransportError(operation.value, f"backend unavailable (HTTP {status})")

        if not isinstance(body, dict):
            raise MalformedResponseError(operation.value, f"expected a JSON object (HTTP {status})")

        if status != 200:
            message = _error_message(body)
            if not message:
                raise MalformedResponseError(
                    operation.value, f"error response without message (HTTP {status})"
                )
            # Log the code only; messages can echo user input
            logger.info(
                "Identity Toolkit error: operation=%s status=%s code=%s",
                operation.value,
                status,
                raw_error_code(message),
            )
            raise BackendRejection.from_message(operation.value, message)

        # signInWithIdp reports some failures with HTTP 200
        if body.get("errorMessage"):
            logger.info(
                "Identity Toolkit error: operation=%s status=200 code=%s",
                operation.value,
                raw_error_code(body["errorMessage"]),
            )
            raise BackendRejection.from_message(operation.value, body["errorMessage"])

        return body


def _error_message(body: dict[str, Any]) -> str | None:
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    if isinstance(error, str):
        return error.upper()
    return None
