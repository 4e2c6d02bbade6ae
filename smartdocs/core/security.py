"""
Security utilities for authentication
API key generation, hashing, password hashing, one-time tokens
"""

import secrets
import string
import hashlib
from passlib.context import CryptContext
from smartdocs.config import settings

# Password hashing context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_api_key() -> tuple[str, str]:
    """
    Generate a new API key and its hash

    Returns:
        tuple: (api_key, key_hash)
            - api_key: Full key to show user (only once)
            - key_hash: SHA-256 hash to store in database

    Example:
        >>> key, key_hash = generate_api_key()
        >>> key
        'sd_abc123def456...'
    """
    api_key = f"{settings.API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return api_key, hash_api_key(api_key)


def hash_api_key(api_key: str) -> str:
    """Hash an API key using SHA-256"""
    return hashlib.sha256(api_key.encode()).hexdigest()


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        str: Bcrypt hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Stored bcrypt hash

    Returns:
        bool: True if password matches hash
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_email_token() -> str:
    """64 hex chars, used for email verification and password reset links"""
    return secrets.token_hex(32)


def generate_referral_code(length: int = 8) -> str:
    """Random uppercase alphanumeric referral code"""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))
