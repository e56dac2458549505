"""Bearer token creation and verification.

Learn: A bearer token is a JWT whose issuer claim (iss) is the verified
email address of the account it speaks for. It is a second way to carry
the identity that an assertion login stores in the cookie session, for
API clients that don't keep cookies.

- exp bounds the token's lifetime (PyJWT rejects expired tokens)
- iss must be present and look like an email address
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from eisenhower.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    email: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a bearer token asserting `email`."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "iss": email.lower(),
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def token_expiry(token: str) -> datetime:
    """Read the expiry of a token this server issued (signature checked)."""
    payload = _decode(token)
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)


def verify_token(token: str) -> str:
    """Verify a bearer token and return the email it asserts.

    Raises TokenError on a bad signature, an expired token, or a
    missing/invalid issuer claim.
    """
    payload = _decode(token)
    issuer = payload.get("iss")
    if not isinstance(issuer, str) or "@" not in issuer:
        raise TokenError("Token has no valid issuer claim")
    return issuer.lower()


def _decode(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
