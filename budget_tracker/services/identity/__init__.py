"""Identity provider package."""

from budget_tracker.services.identity.interface import (
    AuthError,
    IdentityProvider,
    SessionListener,
)
from budget_tracker.services.identity.local import LocalIdentityProvider

__all__ = [
    "AuthError",
    "IdentityProvider",
    "LocalIdentityProvider",
    "SessionListener",
]
