"""
Phone number sign-in as a two-step flow.

``send_verification_code`` yields a ``PhoneVerificationSession`` in the
CODE_SENT state; ``confirm_code`` consumes it. A verification session can be
confirmed at most once, whatever the outcome. After a rejection the caller
starts over with a new code.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum

from ..cancellation import CancellationSignal
from ..exceptions import MalformedResponseError, ValidationError
from ..gateway.base import Operation
from . import mapping
from .base import GatewayComponent, require
from .types import ProviderType, SessionState


class PhoneVerificationState(Enum):
    CODE_SENT = "code_sent"
    COMPLETED = "completed"
    REJECTED = "rejected"


class PhoneVerificationSession:
    """Single-use handle on a sent SMS code.

    Wraps the backend's opaque ``session_info``. ``consume`` hands it out
    once; later calls raise ``ValidationError``.
    """

    def __init__(self, session_info: str, phone_number: str | None = None):
        self._session_info = require("session_info", session_info)
        self.phone_number = phone_number
        self.state = PhoneVerificationState.CODE_SENT

    @property
    def consumed(self) -> bool:
        return self._session_info is None

    def consume(self) -> str:
        if self._session_info is None:
            raise ValidationError("session_info", "verification session already used")
        session_info, self._session_info = self._session_info, None
        return session_info

    def __repr__(self) -> str:
        return (
            f"PhoneVerificationSession(phone_number={self.phone_number!r}, "
            f"state={self.state.value})"
        )


class PhoneVerificationFlow(GatewayComponent):
    """Sends SMS codes and exchanges confirmed codes for sessions."""

    component = "phone"

    async def send_verification_code(
        self,
        phone_number: str,
        recaptcha_token: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> PhoneVerificationSession:
        """Ask the backend to text a code to ``phone_number``.

        The recaptcha token is forwarded as is.
        """
        parameters = {
            "phone_number": require("phone_number", phone_number),
            "recaptcha_token": require("recaptcha_token", recaptcha_token),
        }
        data = await self._invoke(Operation.SEND_PHONE_CODE, parameters, cancel)
        session_info = data.get("sessionInfo")
        if not session_info:
            raise MalformedResponseError(
                Operation.SEND_PHONE_CODE.value, "response carries no sessionInfo"
            )
        return PhoneVerificationSession(session_info, phone_number)

    async def confirm_code(
        self,
        verification: PhoneVerificationSession,
        code: str,
        *,
        cancel: CancellationSignal | None = None,
    ) -> SessionState:
        """Exchange the SMS code for a phone session.

        The verification session is consumed before the call, so it cannot be
        retried after a rejection, a transport failure or a cancellation.

        Raises:
            ValidationError: If ``verification`` was already used or ``code`` is empty
            BackendRejection: If the backend refused the code or session
        """
        code = require("code", code)
        session_info = verification.consume()
        try:
            data = await self._invoke(
                Operation.CONFIRM_PHONE_CODE,
                {"session_info": session_info, "code": code},
                cancel,
            )
            session = mapping.session_from_response(
                Operation.CONFIRM_PHONE_CODE.value, data, ProviderType.PHONE, self.clock
            )
        except BaseException:
            # Includes cancellation of the calling task; the session info is spent
            verification.state = PhoneVerificationState.REJECTED
            raise

        verification.state = PhoneVerificationState.COMPLETED
        if session.phone_number is None and verification.phone_number:
            session = replace(session, phone_number=verification.phone_number)
        self.logger.info("Phone sign-in completed for %s", session.local_id)
        return session
