"""
Abstract Identity Provider

Sign-up, sign-in and sign-out are delegated to an external identity
provider. The budget core only consumes the outcome: a session-change
notification carrying a user id, or None when signed out.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional


SessionListener = Callable[[Optional[str]], Awaitable[None]]


class AuthError(Exception):
    """Sign-up or sign-in failed. The message is safe to show to the user."""
    pass


class IdentityProvider(ABC):
    """
    Interface every identity backend implements.

    Implementations call _notify() whenever the signed-in identity
    changes; subscribers receive the new user id or None.
    """

    def __init__(self):
        self._listeners: list[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a session-change listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, user_id: Optional[str]) -> None:
        """Deliver a session change to every listener, in order."""
        for listener in list(self._listeners):
            await listener(user_id)

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> str:
        """
        Create an account and sign it in.

        Returns:
            The new user id

        Raises:
            AuthError: If the account cannot be created
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> str:
        """
        Sign in with credentials.

        Returns:
            The user id

        Raises:
            AuthError: If the credentials are rejected
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session (no-op when nobody is signed in)."""
        pass

    @abstractmethod
    def current_user(self) -> Optional[str]:
        """User id of the current session, or None."""
        pass
