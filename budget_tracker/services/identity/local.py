"""
Local Identity Provider

Keeps accounts in process memory with PBKDF2 password hashes (passlib).
Enough to drive the app and the sync tests end to end; a hosted
identity service plugs in behind the same interface.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import structlog
from passlib.context import CryptContext

from budget_tracker.services.identity.interface import AuthError, IdentityProvider


logger = structlog.get_logger(__name__)


MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"])


@dataclass
class _Account:
    user_id: str
    email: str
    password_hash: str


class LocalIdentityProvider(IdentityProvider):
    """In-memory email/password accounts."""

    def __init__(self):
        super().__init__()
        self._accounts: dict[str, _Account] = {}
        self._current: Optional[_Account] = None

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def current_user(self) -> Optional[str]:
        return self._current.user_id if self._current else None

    def current_email(self) -> Optional[str]:
        return self._current.email if self._current else None

    async def sign_up(self, email: str, password: str) -> str:
        email = self._normalize_email(email)
        if not email or not password:
            raise AuthError("Please enter email and password.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if email in self._accounts:
            raise AuthError("User already registered.")

        account = _Account(
            user_id=str(uuid4()),
            email=email,
            password_hash=pwd_context.hash(password),
        )
        self._accounts[email] = account
        logger.info("account_created", user_id=account.user_id)
        await self._switch_to(account)
        return account.user_id

    async def sign_in(self, email: str, password: str) -> str:
        email = self._normalize_email(email)
        account = self._accounts.get(email)
        if account is None or not pwd_context.verify(password, account.password_hash):
            raise AuthError("Invalid login credentials.")
        await self._switch_to(account)
        return account.user_id

    async def sign_out(self) -> None:
        if self._current is None:
            return
        logger.info("signed_out", user_id=self._current.user_id)
        self._current = None
        await self._notify(None)

    async def _switch_to(self, account: _Account) -> None:
        if self._current is not None and self._current.user_id == account.user_id:
            return
        self._current = account
        logger.info("signed_in", user_id=account.user_id)
        await self._notify(account.user_id)
