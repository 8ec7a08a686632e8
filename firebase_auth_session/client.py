"""
Client facade bundling the session components over one gateway.
"""

from __future__ import annotations

from .config import AuthConfig
from .gateway.base import BackendGateway
from .gateway.identity_toolkit import IdentityToolkitGateway
from .logging_utils import configure_structured_logging
from .session.lifecycle import SessionLifecycleManager
from .session.linking import ProviderLinkCoordinator
from .session.mapping import Clock
from .session.phone import PhoneVerificationFlow


class FirebaseAuthClient:
    """Entry point for applications.

    Usage:
        async with FirebaseAuthClient.create() as auth:
            session = await auth.sessions.sign_in_with_email_and_password(email, password)
            session = await auth.links.link_with_oauth(session, AuthType.GOOGLE, token)
            verification = await auth.phone.send_verification_code(number, recaptcha)
    """

    def __init__(
        self,
        gateway: BackendGateway,
        config: AuthConfig | None = None,
        clock: Clock | None = None,
    ):
        self.gateway = gateway
        self.config = config
        self.sessions = SessionLifecycleManager(gateway, config=config, clock=clock)
        self.links = ProviderLinkCoordinator(gateway, clock=clock)
        self.phone = PhoneVerificationFlow(gateway, clock=clock)

    @classmethod
    def create(cls, config: AuthConfig | None = None) -> FirebaseAuthClient:
        """Create a client talking to Firebase over HTTP.

        Args:
            config: Backend configuration (from env if None). With
                ``json_logging`` set, package logs switch to JSON on stdout.
        """
        if config is None:
            config = AuthConfig.from_env()
        if config.json_logging:
            configure_structured_logging()
        return cls(IdentityToolkitGateway(config), config)

    async def close(self) -> None:
        await self.gateway.close()

    async def __aenter__(self) -> FirebaseAuthClient:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
