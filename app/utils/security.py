"""Access token helpers.

Tokens are issued by the external auth provider and signed with the shared
JWT secret; `sub` carries the account id.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from app.config import settings


def create_access_token(account_id: str, expires_minutes: int = 60, **claims: Any) -> str:
    """Mint a token the same shape as the provider's (used by scripts and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify signature, expiry and audience; None when the token is not acceptable."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except jwt.PyJWTError:
        return None
