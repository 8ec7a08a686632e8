"""
Backend gateways.

The session core depends only on ``BackendGateway``; ``IdentityToolkitGateway``
is the HTTP implementation for Firebase Authentication.
"""

from .base import BackendGateway, Operation
from .identity_toolkit import IdentityToolkitGateway

__all__ = [
    "BackendGateway",
    "Operation",
    "IdentityToolkitGateway",
]
