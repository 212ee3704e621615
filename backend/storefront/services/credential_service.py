# Overview: Password hashing and signed access tokens.

"""
Credential & Token Management

PASSWORDS:
- bcrypt, work factor 12 in production (BCRYPT_ROUNDS). The factor is stored
  inside every hash, so raising it later does not invalidate old hashes.
- verify_password never raises: a malformed stored hash simply fails.
- Plaintext is never logged or returned.

TOKENS:
- HS256 JWT (python-jose) carrying userId, email, role, iat, exp.
- Fixed validity window (TOKEN_TTL_DAYS, 7 days). No server-side revocation:
  a token dies when it expires.
- validate() distinguishes TokenExpired from TokenMalformed so clients can be
  told to log in again rather than that their token is bogus.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from ..errors import TokenExpired, TokenMalformed


BCRYPT_ROUNDS = 12
DEFAULT_TOKEN_TTL = timedelta(days=7)


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Hash password using bcrypt with a per-hash random salt.

    Strength rules are checked by request validation before this is reached.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() compares in constant time.
    Returns False for missing or malformed hashes instead of raising.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """
    Issues and validates access tokens.

    Built once at startup from configuration and handed to whoever needs it;
    the signing key never changes for the life of the process.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    def issue(self, user) -> str:
        issued_at = self._clock()
        claims = {
            "sub": user.id,
            "userId": user.id,
            "email": user.email,
            "role": user.role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require_exp": True, "verify_aud": False},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise TokenMalformed() from exc

        if not isinstance(claims.get("userId"), str) or not claims["userId"]:
            raise TokenMalformed()
        return claims

    def validate(self, token: str) -> str:
        """Return the principal id the token was issued for."""
        return self.decode(token)["userId"]
