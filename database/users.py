"""
User repository — registration, credential checks and lookup.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth.password import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, hash_password, verify_password
from core.errors import Conflict, InvalidInput, NotFound, Unauthorized
from database.models import User

logger = logging.getLogger(__name__)

USERNAME_MIN, USERNAME_MAX = 2, 64
EMAIL_MAX = 255
PASSWORD_MIN = 4

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_BAD_CREDENTIALS = "Invalid username or password"


def _validate_registration(username: str, email: str, password: str) -> None:
    if not username:
        raise InvalidInput("username is required")
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        raise InvalidInput(
            f"username must be between {USERNAME_MIN} and {USERNAME_MAX} characters"
        )
    if not email:
        raise InvalidInput("email is required")
    if len(email) > EMAIL_MAX or not _EMAIL_RE.match(email):
        raise InvalidInput("email is not a valid address")
    if not password:
        raise InvalidInput("password is required")
    if len(password) < PASSWORD_MIN:
        raise InvalidInput(f"password must be at least {PASSWORD_MIN} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"password must be at most {MAX_PASSWORD_BYTES} bytes")


class UserRepository:
    """Each public method runs in its own transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self._sessions = session_factory
        self._bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: str | None = None

    async def _burn_password_check(self, password: str) -> None:
        """Spend one bcrypt verification so unknown usernames cost as much as
        known ones."""
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                hash_password, "unused-dummy-password", self._bcrypt_rounds
            )
        await asyncio.to_thread(verify_password, password, self._dummy_hash)

    async def register(self, username: str, email: str, password: str) -> User:
        username = (username or "").strip()
        email = (email or "").strip()
        _validate_registration(username, email, password or "")

        # bcrypt is deliberately slow; keep it off the event loop.
        password_hash = await asyncio.to_thread(
            hash_password, password, self._bcrypt_rounds
        )
        now = datetime.now(timezone.utc)
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )

        try:
            async with self._sessions.begin() as session:
                result = await session.execute(
                    select(User.username, User.email).where(
                        or_(User.username == username, User.email == email)
                    )
                )
                for existing_username, existing_email in result:
                    if existing_username == username:
                        raise Conflict("Username already registered")
                    if existing_email == email:
                        raise Conflict("Email already registered")
                session.add(user)
        except IntegrityError:
            # Lost a race against a concurrent registration.
            logger.info("Concurrent registration conflict for %s", username)
            raise Conflict("Username or email already registered")

        logger.info("Registered user %s (%s)", username, user.id)
        return user

    async def authenticate(self, username: str, password: str) -> User:
        async with self._sessions() as session:
            result = await session.execute(
                select(User).where(User.username == (username or "").strip())
            )
            user = result.scalar_one_or_none()

        if user is None:
            await self._burn_password_check(password or "")
            logger.info("Login failed: unknown user %r", username)
            raise Unauthorized(_BAD_CREDENTIALS)
        ok = await asyncio.to_thread(verify_password, password or "", user.password_hash)
        if not ok:
            logger.info("Login failed: bad password for %s (%s)", user.username, user.id)
            raise Unauthorized(_BAD_CREDENTIALS)

        logger.info("Login: %s (%s)", user.username, user.id)
        return user

    async def find_by_id(self, user_id: str) -> User:
        async with self._sessions() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user
