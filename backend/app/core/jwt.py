"""
Bearer tokens for the marketplace API.

A token only identifies the user (``sub`` is the user id). Role and
active flag are re-read from the database on every request, so they are
not trusted from the token.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from backend.app.core.config import settings

TOKEN_TYPE = "access"


def issue_token(user_id: int, email: Optional[str] = None, expires_in: Optional[timedelta] = None) -> str:
    """Sign an access token for ``user_id``, valid for the configured lifetime unless overridden."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(user_id),
        "typ": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def token_user_id(token: str) -> Optional[int]:
    """
    The user id a token was issued for.

    None for a bad signature, an expired token, a token of another type,
    or a subject that is not a user id.
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if claims.get("typ") != TOKEN_TYPE:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
