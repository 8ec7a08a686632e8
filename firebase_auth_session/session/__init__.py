"""
Session lifecycle, provider linking and phone verification.
"""

from .lifecycle import SessionLifecycleManager
from .linking import ProviderLinkCoordinator
from .phone import PhoneVerificationFlow, PhoneVerificationSession, PhoneVerificationState
from .types import (
    AuthType,
    LinkedProviderSet,
    ProviderType,
    SessionState,
    UserRecord,
)

__all__ = [
    # Types
    "AuthType",
    "ProviderType",
    "SessionState",
    "UserRecord",
    "LinkedProviderSet",
    # Components
    "SessionLifecycleManager",
    "ProviderLinkCoordinator",
    "PhoneVerificationFlow",
    "PhoneVerificationSession",
    "PhoneVerificationState",
]
