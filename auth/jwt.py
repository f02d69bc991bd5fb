"""
JWT-style token creation and verification.

Tokens are a base64url-encoded JSON payload followed by a hex
HMAC-SHA256 signature over that payload::

    <base64url({"sub": ..., "iat": ..., "exp": ...})>.<hex signature>

Verification is stateless: only the signature and the embedded expiry are
checked, there is no server-side session store.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import logging
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Callable

from core.errors import Unauthorized

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Issue and verify signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        expiry_seconds: int = 86400,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret.encode()
        self._expiry_seconds = expiry_seconds
        self._clock = clock

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def issue(self, user_id: str) -> str:
        """Create a signed token containing ``user_id`` and expiry."""
        now = int(self._clock())
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": now + self._expiry_seconds,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode() + "." + self._sign(raw)

    def verify(self, token: str) -> str:
        """
        Verify token and return the ``user_id`` it was issued for.

        Raises ``Unauthorized`` on malformed, forged or expired tokens.
        """
        encoded, sep, sig = token.partition(".")
        if not sep or not encoded or not sig or not token.isascii():
            raise Unauthorized("Invalid or expired token")
        try:
            raw = urlsafe_b64decode(encoded.encode())
        except (binascii.Error, ValueError):
            raise Unauthorized("Invalid or expired token")

        if not hmac.compare_digest(sig, self._sign(raw)):
            logger.debug("Rejected token with bad signature")
            raise Unauthorized("Invalid or expired token")

        try:
            payload = json.loads(raw)
        except ValueError:
            raise Unauthorized("Invalid or expired token")

        user_id = payload.get("sub") if isinstance(payload, dict) else None
        exp = payload.get("exp") if isinstance(payload, dict) else None
        if not isinstance(user_id, str) or not isinstance(exp, (int, float)):
            raise Unauthorized("Invalid or expired token")
        if exp <= self._clock():
            logger.debug("Rejected expired token for %s", user_id)
            raise Unauthorized("Invalid or expired token")
        return user_id
