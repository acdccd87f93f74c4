"""Caller identity for history ownership.

Tokens are HS256 JWTs signed with JWT_SECRET; the ``sub`` claim names the
owner of stored analyses. Unless REQUIRE_AUTH is on, callers without a token
share the anonymous owner.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

ANONYMOUS_OWNER = "anonymous"
DEFAULT_TOKEN_TTL_MIN = 60

bearer_scheme = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET is not set")
    return secret


def _jwt_alg() -> str:
    return os.environ.get("JWT_ALG", "HS256")


def _token_ttl() -> timedelta:
    try:
        minutes = int(os.environ.get("JWT_EXPIRES_MIN", str(DEFAULT_TOKEN_TTL_MIN)))
    except ValueError:
        minutes = DEFAULT_TOKEN_TTL_MIN
    return timedelta(minutes=minutes)


def require_auth_enabled() -> bool:
    return os.environ.get("REQUIRE_AUTH", "false").strip().lower() in {"1", "true", "yes", "on"}


def create_access_token(*, sub: str, email: Optional[str] = None) -> str:
    issued = datetime.now(tz=timezone.utc)
    claims: Dict[str, Any] = {
        "sub": sub,
        "iat": int(issued.timestamp()),
        "exp": int((issued + _token_ttl()).timestamp()),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, _jwt_secret(), algorithm=_jwt_alg())


def owner_from_token(token: str) -> str:
    """Return the token's subject or raise 401."""
    try:
        claims = jwt.decode(token, _jwt_secret(), algorithms=[_jwt_alg()])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return str(sub)


def current_owner(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if creds is not None:
        return owner_from_token(creds.credentials)
    if require_auth_enabled():
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return ANONYMOUS_OWNER
