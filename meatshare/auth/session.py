# meatshare/auth/session.py

import time
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Header, HTTPException

from meatshare.config import get_settings

ALGORITHM = "HS256"


@dataclass(frozen=True)
class AuthSession:
    """
    The authenticated caller, passed explicitly into every workflow.

    - user_id: the auth provider's user id (JWT "sub")
    - email: the verified email claim, when the provider includes one
    """
    user_id: str
    email: Optional[str] = None


def _get_secret_key() -> str:
    secret = get_settings().auth_jwt_secret
    if not secret:
        raise HTTPException(status_code=500, detail="AUTH_JWT_SECRET is not set")
    return secret


def create_access_token(
    *, user_id: str, email: Optional[str] = None, ttl_seconds: int = 3600
) -> str:
    """
    Issue an HS256 JWT the same way the auth provider does.

    Production tokens come from the provider; this exists for dev tooling
    and tests.
    """
    claims = {"sub": user_id, "exp": int(time.time()) + ttl_seconds}
    if email:
        claims["email"] = email
    return jwt.encode(claims, _get_secret_key(), algorithm=ALGORITHM)


def verify_access_token(token: str) -> AuthSession:
    """Verify an HS256 JWT (signature, exp, nbf) and return its session."""
    secret = _get_secret_key()
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.ImmatureSignatureError:
        raise HTTPException(status_code=401, detail="Token not yet valid")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    return AuthSession(user_id=str(claims["sub"]), email=claims.get("email"))


def get_auth_session(
    authorization: Optional[str] = Header(default=None),
) -> AuthSession:
    """FastAPI dependency: ``Authorization: Bearer <jwt>`` -> AuthSession."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return verify_access_token(authorization.split(" ", 1)[1].strip())
