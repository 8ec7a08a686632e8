"""
Redaction of credentials before they reach logs or error details.
"""

from __future__ import annotations

import re
from typing import Any

# Parameter keys whose values are credentials
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "id_token",
        "refresh_token",
        "custom_token",
        "access_token",
        "oauth_token_secret",
        "recaptcha_token",
        "session_info",
        "code",
    }
)

API_KEY_PATTERNS = [
    r"AIza[a-zA-Z0-9_-]{35}",  # Google API keys
    r"ya29\.[a-zA-Z0-9_-]{20,}",  # Google OAuth tokens
    r"eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]*",  # JWTs
]

QUERY_SECRET_PATTERN = r"(?i)([?&](?:key|access_token|oauth_token_secret)=)[^&\s]+"


def sanitize_text(text: str, placeholder: str = "[REDACTED]") -> str:
    """
    Remove API keys and tokens from free text such as URLs or error bodies.

    Args:
        text: Text to sanitize
        placeholder: Replacement string for sensitive data

    Returns:
        Sanitized text
    """
    if not text or not isinstance(text, str):
        return text

    sanitized = re.sub(QUERY_SECRET_PATTERN, rf"\1{placeholder}", text)
    for pattern in API_KEY_PATTERNS:
        sanitized = re.sub(pattern, placeholder, sanitized)
    return sanitized


def redact_parameters(
    parameters: dict[str, Any], placeholder: str = "[REDACTED]"
) -> dict[str, Any]:
    """Copy gateway parameters with credential values masked."""
    return {
        key: placeholder if key in SENSITIVE_KEYS and value else value
        for key, value in parameters.items()
    }
