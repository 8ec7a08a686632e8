"""
Shared plumbing for components that talk to the gateway.
"""

from __future__ import annotations

from typing import Any

from ..cancellation import CancellationSignal, run_cancellable
from ..exceptions import AuthSessionError, ValidationError
from ..gateway.base import BackendGateway, Operation
from ..logging_utils import AuthLoggerAdapter, get_auth_logger
from ..sanitization import redact_parameters
from .mapping import Clock, utc_now
from .types import SessionState

SessionOrToken = SessionState | str


def require(field: str, value: str | None) -> str:
    """Return ``value`` or raise ``ValidationError`` when it is empty."""
    if value is None or not str(value).strip():
        raise ValidationError(field, "must not be empty")
    return value


def resolve_session(session_or_token: SessionOrToken) -> tuple[str, SessionState | None]:
    """Split a session-or-token argument into ``(id_token, prior_session)``."""
    if isinstance(session_or_token, SessionState):
        return session_or_token.id_token, session_or_token
    return require("id_token", session_or_token), None


class GatewayComponent:
    """Base for session components.

    Holds the gateway and the clock, and performs single cancellable
    gateway calls with operation-scoped logging.
    """

    component = "session"

    def __init__(self, gateway: BackendGateway, *, clock: Clock | None = None):
        self.gateway = gateway
        self.clock = clock or utc_now
        self.logger = get_auth_logger(self.component)

    async def _invoke(
        self,
        operation: Operation,
        parameters: dict[str, Any],
        cancel: CancellationSignal | None,
    ) -> dict[str, Any]:
        if cancel is not None:
            cancel.raise_if_cancelled(operation.value)

        log = AuthLoggerAdapter(self.logger, {"operation": operation.value})
        log.debug("Invoking %s with %s", operation.value, redact_parameters(parameters))
        try:
            result = await run_cancellable(
                self.gateway.invoke(operation, parameters, cancel),
                cancel,
                operation.value,
            )
        except AuthSessionError as e:
            log.info("%s failed: %s", operation.value, e.message)
            raise
        log.debug("%s succeeded", operation.value)
        return result
