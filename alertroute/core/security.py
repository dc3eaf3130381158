"""JWT handling for requester and responder tokens.

Production tokens come from the identity service; ``create_access_token``
exists for tooling and tests. Tokens carry ``sub`` (principal id),
``role`` and ``type="access"``.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from alertroute.config import settings

ACCESS_TOKEN_TYPE = "access"
DEFAULT_TOKEN_LIFETIME = timedelta(days=30)


def create_access_token(
    subject_id: uuid.UUID,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign an access token for ``subject_id`` acting as ``role``."""
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(subject_id),
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or DEFAULT_TOKEN_LIFETIME),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Verify signature, expiry and token type.

    Returns:
        The claims, or None for any invalid token
    """
    try:
        claims = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
    return claims if claims.get("type") == ACCESS_TOKEN_TYPE else None


class TokenData:
    """Typed view of verified claims.

    Raises KeyError or ValueError if ``sub``/``role``/``exp`` are missing
    or malformed.
    """

    def __init__(self, claims: dict):
        self.subject_id = uuid.UUID(claims["sub"])
        self.role: str = claims["role"]
        self.exp = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
