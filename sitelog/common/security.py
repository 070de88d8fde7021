"""Bearer-token handling for identity-provider issued tokens.

Sign-in, verification mails and password resets live with the identity
provider. This service only verifies the token signature and reads the
claims it needs: ``sub`` (the per-user partition key), ``email`` and
``email_verified``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from sitelog.config import settings


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Mint a token the way the identity provider does. Used by dev tooling and tests."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    if settings.JWT_AUDIENCE:
        to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e
