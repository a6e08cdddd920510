"""
Internal authentication: password hashing (bcrypt) and session JWTs.
Uses bcrypt directly to avoid passlib/bcrypt 4.x compatibility issues.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from controlstock.config import settings

# Bcrypt max password length (bytes)
BCRYPT_MAX_PASSWORD_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 12

# JWT claim names
CLAIM_SUB = "sub"
CLAIM_ROLE = "role"
CLAIM_TYPE = "type"
CLAIM_EXP = "exp"
CLAIM_ISS = "iss"
CLAIM_JTI = "jti"

TYPE_ACCESS = "access"
ISSUER_INTERNAL = "controlstock-internal"


def _password_bytes(password: str, max_bytes: int = BCRYPT_MAX_PASSWORD_BYTES) -> bytes:
    """Encode password to bytes and truncate to bcrypt limit (72 bytes) to avoid ValueError."""
    raw = password.encode("utf-8")
    return raw[:max_bytes] if len(raw) > max_bytes else raw


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return bcrypt hash of password."""
    pw = _password_bytes(password)
    return bcrypt.hashpw(pw, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """Return True if plain_password matches password_hash. False if hash is None or invalid."""
    if not password_hash:
        return False
    try:
        pw = _password_bytes(plain_password)
        return bcrypt.checkpw(pw, password_hash.encode("ascii"))
    except ValueError:
        return False


def validate_new_password(password: str) -> Optional[str]:
    """
    Returns None if valid, or an error message string if invalid.
    Policy: minimum 8 characters; at least 1 letter and 1 digit.
    """
    if not password or len(password) < 8:
        return "Password must be at least 8 characters."
    has_letter = any(c.isalpha() for c in password)
    has_digit = any(c.isdigit() for c in password)
    if not has_letter or not has_digit:
        return "Password must contain at least one letter and one digit."
    return None


def create_access_token(user_id: str, role: str, session_id: str) -> str:
    """Access token bound to a server-side session (jti = UserSession.id)."""
    now = datetime.now(timezone.utc)
    payload = {
        CLAIM_SUB: str(user_id),
        CLAIM_ROLE: role,
        CLAIM_JTI: str(session_id),
        CLAIM_TYPE: TYPE_ACCESS,
        CLAIM_ISS: ISSUER_INTERNAL,
        CLAIM_EXP: now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify an access token. Returns payload dict or None."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_iss": True, "verify_exp": True},
            issuer=ISSUER_INTERNAL,
        )
    except JWTError:
        return None
    if not payload.get(CLAIM_SUB) or not payload.get(CLAIM_JTI):
        return None
    if payload.get(CLAIM_TYPE) != TYPE_ACCESS:
        return None
    return payload
