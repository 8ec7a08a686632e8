"""
Custom exceptions for the auth session manager.

Every operation either returns its success value or raises one of these.
Callers branch on the exception type and, for backend rejections, on the
stable ``RejectionCode``.
"""

from __future__ import annotations

import re
from enum import Enum


class AuthSessionError(Exception):
    """Base exception for all auth session errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(AuthSessionError):
    """Raised when a caller-supplied argument fails a local precondition.

    Always raised before any network call.
    """

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Validation failed for {field}: {reason}",
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


class ConfigurationError(AuthSessionError):
    """Raised when client configuration is missing or invalid."""

    def __init__(self, setting: str, reason: str):
        super().__init__(
            f"Invalid configuration for {setting}: {reason}",
            {"setting": setting, "reason": reason},
        )
        self.setting = setting
        self.reason = reason


class TransportError(AuthSessionError):
    """Raised when a backend call could not complete.

    Covers network failures, timeouts and cancellation. The core never
    retries; whether to retry is the caller's decision.
    """

    def __init__(self, operation: str, reason: str, cause: Exception | None = None):
        details = {"operation": operation, "reason": reason}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Backend call {operation} failed: {reason}", details)
        self.operation = operation
        self.reason = reason
        self.cause = cause


class OperationCancelledError(TransportError):
    """Raised when an in-flight operation was cancelled through its signal."""

    def __init__(self, operation: str):
        super().__init__(operation, "cancelled")


class MalformedResponseError(TransportError):
    """Raised when the backend answered with a body that cannot be mapped."""


class RejectionCode(Enum):
    """Stable codes for backend rejections."""

    EMAIL_EXISTS = "email-exists"
    EMAIL_NOT_FOUND = "email-not-found"
    INVALID_PASSWORD = "invalid-password"
    INVALID_CREDENTIALS = "invalid-credentials"
    WEAK_PASSWORD = "weak-password"
    USER_DISABLED = "user-disabled"
    USER_NOT_FOUND = "user-not-found"
    INVALID_TOKEN = "invalid-token"
    TOKEN_EXPIRED = "token-expired"
    CREDENTIAL_TOO_OLD = "credential-too-old"
    EXPIRED_REFRESH_TOKEN = "expired-refresh-token"
    PROVIDER_ALREADY_LINKED = "provider-already-linked"
    CREDENTIAL_IN_USE = "credential-in-use"
    LAST_PROVIDER = "last-provider"
    INVALID_SESSION_INFO = "invalid-session-info"
    INVALID_CODE = "invalid-code"
    SESSION_EXPIRED = "session-expired"
    INVALID_RECAPTCHA = "invalid-recaptcha"
    INVALID_PHONE_NUMBER = "invalid-phone-number"
    INVALID_CUSTOM_TOKEN = "invalid-custom-token"
    OPERATION_NOT_ALLOWED = "operation-not-allowed"
    TOO_MANY_ATTEMPTS = "too-many-attempts"
    UNKNOWN = "unknown"


# Raw backend messages, keyed by the leading error token.
_RAW_CODES: dict[str, RejectionCode] = {
    "EMAIL_EXISTS": RejectionCode.EMAIL_EXISTS,
    "EMAIL_NOT_FOUND": RejectionCode.EMAIL_NOT_FOUND,
    "INVALID_PASSWORD": RejectionCode.INVALID_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": RejectionCode.INVALID_CREDENTIALS,
    "INVALID_EMAIL": RejectionCode.INVALID_CREDENTIALS,
    "MISSING_PASSWORD": RejectionCode.INVALID_PASSWORD,
    "WEAK_PASSWORD": RejectionCode.WEAK_PASSWORD,
    "USER_DISABLED": RejectionCode.USER_DISABLED,
    "USER_NOT_FOUND": RejectionCode.USER_NOT_FOUND,
    "INVALID_ID_TOKEN": RejectionCode.INVALID_TOKEN,
    "TOKEN_EXPIRED": RejectionCode.TOKEN_EXPIRED,
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": RejectionCode.CREDENTIAL_TOO_OLD,
    "INVALID_REFRESH_TOKEN": RejectionCode.EXPIRED_REFRESH_TOKEN,
    "MISSING_REFRESH_TOKEN": RejectionCode.EXPIRED_REFRESH_TOKEN,
    "PROVIDER_ALREADY_LINKED": RejectionCode.PROVIDER_ALREADY_LINKED,
    "FEDERATED_USER_ID_ALREADY_LINKED": RejectionCode.CREDENTIAL_IN_USE,
    "CREDENTIAL_ALREADY_IN_USE": RejectionCode.CREDENTIAL_IN_USE,
    "LAST_PROVIDER": RejectionCode.LAST_PROVIDER,
    "INVALID_SESSION_INFO": RejectionCode.INVALID_SESSION_INFO,
    "MISSING_SESSION_INFO": RejectionCode.INVALID_SESSION_INFO,
    "INVALID_CODE": RejectionCode.INVALID_CODE,
    "MISSING_CODE": RejectionCode.INVALID_CODE,
    "SESSION_EXPIRED": RejectionCode.SESSION_EXPIRED,
    "CAPTCHA_CHECK_FAILED": RejectionCode.INVALID_RECAPTCHA,
    "INVALID_RECAPTCHA_TOKEN": RejectionCode.INVALID_RECAPTCHA,
    "INVALID_PHONE_NUMBER": RejectionCode.INVALID_PHONE_NUMBER,
    "INVALID_CUSTOM_TOKEN": RejectionCode.INVALID_CUSTOM_TOKEN,
    "CREDENTIAL_MISMATCH": RejectionCode.INVALID_CUSTOM_TOKEN,
    "OPERATION_NOT_ALLOWED": RejectionCode.OPERATION_NOT_ALLOWED,
    "TOO_MANY_ATTEMPTS_TRY_LATER": RejectionCode.TOO_MANY_ATTEMPTS,
    "QUOTA_EXCEEDED": RejectionCode.TOO_MANY_ATTEMPTS,
}

_RAW_CODE_PATTERN = re.compile(r"[A-Z0-9_]+")


def raw_error_code(message: str) -> str:
    """Extract the leading error token from a backend error message.

    ``"WEAK_PASSWORD : Password should be at least 6 characters"`` yields
    ``"WEAK_PASSWORD"``. Messages with no such token yield ``"UNKNOWN"``.
    """
    match = _RAW_CODE_PATTERN.match(message.strip())
    return match.group(0) if match else "UNKNOWN"


def classify_rejection(message: str) -> RejectionCode:
    """Map a raw backend error message to a stable rejection code."""
    return _RAW_CODES.get(raw_error_code(message), RejectionCode.UNKNOWN)


class BackendRejection(AuthSessionError):
    """Raised when the backend explicitly refused an operation."""

    def __init__(self, operation: str, code: RejectionCode, raw_code: str | None = None):
        details = {"operation": operation, "code": code.value}
        if raw_code:
            details["raw_code"] = raw_code
        super().__init__(f"Backend rejected {operation}: {code.value}", details)
        self.operation = operation
        self.code = code
        self.raw_code = raw_code

    @classmethod
    def from_message(cls, operation: str, message: str) -> BackendRejection:
        """Build a rejection from a raw backend error message."""
        raw = raw_error_code(message)
        return cls(operation, _RAW_CODES.get(raw, RejectionCode.UNKNOWN), raw)
