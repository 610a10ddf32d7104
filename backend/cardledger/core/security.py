"""
Security utilities: JWT access tokens, password hashing and the cron shared secret.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import hmac
import bcrypt
from jose import JWTError, jwt
from cardledger.core.config import settings
from cardledger.core.exceptions import Unauthorized


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash password with SHA256 so bcrypt's 72-byte input limit never truncates it.
    """
    return hashlib.sha256(password.encode('utf-8')).digest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    pre_hashed = _pre_hash_password(plain_password)
    return bcrypt.checkpw(pre_hashed, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    pre_hashed = _pre_hash_password(password)
    hashed = bcrypt.hashpw(pre_hashed, bcrypt.gensalt())
    return hashed.decode('utf-8')


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token carrying the user id and role."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_cron_token(token: Optional[str]) -> None:
    """
    Check the x-cron-token header against CRON_SECRET.

    When no secret is configured every caller is accepted.
    """
    secret = settings.CRON_SECRET
    if not secret:
        return
    if not token or not hmac.compare_digest(token, secret):
        raise Unauthorized("Unauthorized cron caller")
