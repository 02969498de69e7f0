"""
JWT Authentication for EventFlow

Provides password hashing, JWT token generation and verification.
Verification never raises: a missing or bad credential simply yields no
caller identity, which the GraphQL layer treats as an anonymous request.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from jose import JWTError, jwt
from passlib.context import CryptContext

from eventflow.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# JWT Configuration
DEFAULT_SECRET_KEY = "eventflow-dev-secret-change-this-in-production"
SECRET_KEY = os.getenv("JWT_SECRET", DEFAULT_SECRET_KEY)
ALGORITHM = "HS256"
TOKEN_EXPIRATION_DAYS = 1

# bcrypt work factor
BCRYPT_ROUNDS = 12

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

BEARER_PREFIX = "Bearer "

if SECRET_KEY == DEFAULT_SECRET_KEY:
    logger.warning("⚠️ JWT_SECRET not set, using the development secret")


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated user claims carried by a request context"""
    id: str
    email: str


def hash_password(password: str) -> str:
    """Hash a plain password with bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plain password against a stored bcrypt hash

    Returns False for a malformed or unknown hash instead of raising.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def create_access_token(
    user: Mapping[str, Any],
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a signed JWT binding the user's id and email

    Args:
        user: Mapping with ``id`` and ``email``
        expires_delta: Token lifetime (default: 1 day)
        secret_key: Signing secret (default: JWT_SECRET)

    Returns:
        JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(days=TOKEN_EXPIRATION_DAYS)

    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "id": str(user["id"]),
        "email": user["email"],
        "exp": expire,
    }

    encoded_jwt = jwt.encode(to_encode, secret_key or SECRET_KEY, algorithm=ALGORITHM)

    logger.info(f"🔑 JWT token created for {to_encode['id']} (expires: {expire})")

    return encoded_jwt


def get_user_from_token(
    token: Optional[str],
    secret_key: Optional[str] = None,
) -> Optional[CallerIdentity]:
    """
    Verify a bearer credential and return the caller identity

    Args:
        token: Raw header or connection parameter value, with or without
            the "Bearer " prefix
        secret_key: Verification secret (default: JWT_SECRET)

    Returns:
        CallerIdentity, or None for empty, malformed, expired or forged tokens
    """
    if not token or not isinstance(token, str):
        return None

    if token.startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):]

    token = token.strip()
    if not token:
        return None

    try:
        payload = jwt.decode(token, secret_key or SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"JWT verification failed: {e}")
        return None

    user_id = payload.get("id")
    email = payload.get("email")
    if not user_id or not email:
        return None

    return CallerIdentity(id=str(user_id), email=email)
