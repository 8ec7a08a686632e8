"""
Backend gateway abstract interface.

Defines the single capability the session core depends on: invoking one
remote operation and getting back the backend's raw result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ..cancellation import CancellationSignal


class Operation(Enum):
    """Remote operations understood by every gateway."""

    SIGN_UP = "sign_up"
    SIGN_IN_EMAIL = "sign_in_email"
    SIGN_IN_ANONYMOUS = "sign_in_anonymous"
    SIGN_IN_OAUTH = "sign_in_oauth"
    SIGN_IN_CUSTOM_TOKEN = "sign_in_custom_token"
    REFRESH = "refresh"
    LINK = "link"
    UNLINK = "unlink"
    GET_LINKED_ACCOUNTS = "get_linked_accounts"
    GET_USER = "get_user"
    SEND_PASSWORD_RESET = "send_password_reset"
    SEND_VERIFICATION_EMAIL = "send_verification_email"
    UPDATE_PROFILE = "update_profile"
    CHANGE_PASSWORD = "change_password"
    DELETE_USER = "delete_user"
    SEND_PHONE_CODE = "send_phone_code"
    CONFIRM_PHONE_CODE = "confirm_phone_code"


class BackendGateway(ABC):
    """Abstract RPC capability for the identity backend.

    Implementations own transport, wire format and authentication to the
    backend. Parameters are passed with snake_case keys:

    - ``email``, ``password``, ``display_name``, ``photo_url``
    - ``id_token``, ``refresh_token``, ``custom_token``
    - ``provider_id``, ``access_token``, ``oauth_token_secret``
    - ``phone_number``, ``recaptcha_token``, ``session_info``, ``code``

    The result is the backend's JSON object for the operation.
    """

    @abstractmethod
    async def invoke(
        self,
        operation: Operation,
        parameters: dict[str, Any],
        cancel: CancellationSignal | None = None,
    ) -> dict[str, Any]:
        """Perform exactly one backend exchange.

        Raises:
            TransportError: If the call could not complete
            BackendRejection: If the backend refused the operation
        """
        ...

    async def close(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None

    async def __aenter__(self) -> BackendGateway:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
