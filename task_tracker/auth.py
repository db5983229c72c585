"""Authentication utilities for password hashing and session token management."""

from datetime import datetime, timedelta, timezone
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt
from .config import settings


# ==================== Password Hashing ====================

# bcrypt ignores (newer releases reject) anything past 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plain text password with bcrypt. The random salt is embedded in the result."""
    password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    # Return as string for database storage
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain text password against a stored bcrypt hash.

    A mismatch, or a stored value that is not a bcrypt hash, returns False.
    """
    password_bytes = plain_password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except (ValueError, TypeError):
        return False


# ==================== Session Tokens ====================

class TokenError(Exception):
    """Raised when a token is malformed, tampered with or expired."""


class TokenCodec:
    """Issues and verifies signed, time-bound JWTs naming a user id.

    Tokens are never stored. Rotating ``secret_key`` invalidates all of them.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: int, ttl: timedelta | None = None) -> str:
        """Create a token for ``user_id`` valid for ``ttl`` (defaults to the codec's TTL)."""
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + (ttl if ttl is not None else self.ttl)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> int:
        """Return the user id carried by ``token`` or raise TokenError."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise TokenError("Token has expired") from e
        except JWTError as e:
            raise TokenError(f"Token validation failed: {str(e)}") from e

        subject = payload.get("sub")
        if subject is None:
            raise TokenError("Missing subject (sub) in token")
        try:
            return int(subject)
        except (TypeError, ValueError) as e:
            raise TokenError("Token subject is not a user id") from e


# Signing key and TTL are fixed for the life of the process
token_codec = TokenCodec(
    settings.JWT_SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    ttl=timedelta(minutes=settings.JWT_EXPIRATION_MINUTES),
)
