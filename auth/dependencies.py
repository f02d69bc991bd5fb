"""
FastAPI dependencies for authentication.

``get_current_user_id`` guards every protected route: the user id it
returns is the only identity a handler may act on.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.jwt import TokenIssuer
from core.errors import Unauthorized

_bearer_scheme = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """
    Extract and verify the Bearer token, returning the authenticated
    ``user_id`` (UUID string).
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Missing Bearer token")
    return issuer.verify(credentials.credentials)
