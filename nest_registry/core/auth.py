"""
Credential issuing and secret hashing for registry authors.
"""
import hashlib
import secrets

import bcrypt

from nest_registry.core.config import settings

# 32 random bytes, 256 bits of entropy
CREDENTIAL_BYTES = 32


def issue_credential() -> str:
    """Generate a fresh, opaque, URL-safe author credential."""
    return secrets.token_urlsafe(CREDENTIAL_BYTES)


def hash_credential(credential: str) -> str:
    """Hash a credential for storage and lookup."""
    return hashlib.sha256(credential.encode()).hexdigest()


def hash_password(password: str) -> str:
    """Hash an author secret with bcrypt."""
    secret = password.encode()
    # Bcrypt has a 72-byte limit
    if len(secret) > 72:
        secret = secret[:72]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()
