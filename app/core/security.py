"""
app/core/security.py

Purpose: Credential and token helpers

- bcrypt password hashing and verification
- Signed session tokens (JWT, HS256)
- Single-use password reset tokens (random value, SHA-256 at rest)
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Tuple

import bcrypt
import jwt

from app.core.config import Settings
from app.core.exceptions import TokenExpiredError, TokenInvalidError, ValidationError
from utils.constants import RESET_TOKEN_BYTES

JWT_ALGORITHM = "HS256"
# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with a fresh bcrypt salt."""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError("Password is too long", field="password")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a password against its stored hash."""
    if not password or not password_hash:
        return False
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_session_token(user_id: str, settings: Settings) -> str:
    """
    Issues a signed session token for a user.

    Args:
        user_id: Database id of the user
        settings: Application settings (secret, lifetime)

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.JWT_EXPIRE_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> str:
    """
    Validates a session token and returns the user id it was issued for.

    Raises:
        TokenExpiredError: Signature is valid but the token has expired
        TokenInvalidError: Token is malformed, tampered with or has no subject
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalidError() from exc

    user_id = payload.get("sub")
    if not user_id:
        raise TokenInvalidError()
    return user_id


def hash_reset_token(token: str) -> str:
    """One-way hash stored in place of the emailed reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """
    Creates a password reset token.

    Returns:
        (token, token_hash): the value to email and the value to store
    """
    token = secrets.token_hex(RESET_TOKEN_BYTES)
    return token, hash_reset_token(token)
