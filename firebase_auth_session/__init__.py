"""
Firebase Auth Session

Client-side session manager for Firebase Authentication.

Provides:
- Sign-in and sign-up (email/password, anonymous, OAuth, custom token)
- Session refresh with explicit expiry checks
- Provider linking and unlinking
- Two-step phone number verification
- Typed errors with stable backend rejection codes

Usage:

    >>> from firebase_auth_session import AuthType, FirebaseAuthClient
    >>> async with FirebaseAuthClient.create() as auth:
    ...     session = await auth.sessions.sign_in_with_email_and_password(email, password)
    ...     session = await auth.sessions.get_fresh_session(session)
    ...     session = await auth.links.link_with_oauth(session, AuthType.GOOGLE, google_token)

Custom backends:

    # Any BackendGateway implementation can drive the components directly
    from firebase_auth_session import SessionLifecycleManager
    manager = SessionLifecycleManager(my_gateway)
"""

from .cancellation import CancellationSignal
from .client import FirebaseAuthClient
from .config import AuthConfig

# Exceptions
from .exceptions import (
    AuthSessionError,
    BackendRejection,
    ConfigurationError,
    MalformedResponseError,
    OperationCancelledError,
    RejectionCode,
    TransportError,
    ValidationError,
    classify_rejection,
)

# Gateways
from .gateway import BackendGateway, IdentityToolkitGateway, Operation

# Session components
from .session import (
    AuthType,
    LinkedProviderSet,
    PhoneVerificationFlow,
    PhoneVerificationSession,
    PhoneVerificationState,
    ProviderLinkCoordinator,
    ProviderType,
    SessionLifecycleManager,
    SessionState,
    UserRecord,
)

__all__ = [
    # Entry point
    "FirebaseAuthClient",
    "AuthConfig",
    "CancellationSignal",
    # Gateways
    "BackendGateway",
    "IdentityToolkitGateway",
    "Operation",
    # Session
    "AuthType",
    "ProviderType",
    "SessionState",
    "UserRecord",
    "LinkedProviderSet",
    "SessionLifecycleManager",
    "ProviderLinkCoordinator",
    "PhoneVerificationFlow",
    "PhoneVerificationSession",
    "PhoneVerificationState",
    # Exceptions
    "AuthSessionError",
    "ValidationError",
    "ConfigurationError",
    "TransportError",
    "OperationCancelledError",
    "MalformedResponseError",
    "BackendRejection",
    "RejectionCode",
    "classify_rejection",
]

__version__ = "0.1.0"
