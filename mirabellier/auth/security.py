"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- Opaque session token issuing
- Optional HMAC signing of session tokens
"""

import hashlib
import hmac
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


# Argon2id configuration (OWASP recommended parameters)
# https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html
_password_hasher = PasswordHasher(
    time_cost=2,  # 2 iterations
    memory_cost=19456,  # 19 MiB (19456 KiB)
    parallelism=1,  # Single thread
    hash_len=32,  # 32-byte output
    salt_len=16,  # 16-byte random salt
)

# Random part of a session token, in bytes
TOKEN_BYTES = 16
TOKEN_SIGNATURE_SEPARATOR = "."


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    The returned hash includes the algorithm parameters and salt,
    making it self-contained for verification.

    Example:
        >>> hashed = hash_password("my-secure-password")
        >>> hashed.startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Also checks if the hash needs rehashing (algorithm params changed).

    Args:
        password: Plain text password to verify
        password_hash: Stored Argon2id hash

    Returns:
        Tuple of (is_valid, new_hash):
        - is_valid: True if password matches
        - new_hash: New hash if rehash needed, None otherwise
    """
    try:
        _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)

    return True, None


def sign_token_id(token_id: str, secret: str) -> str:
    """HMAC-SHA256 of the token id, hex encoded."""
    return hmac.new(
        secret.encode("utf-8"), token_id.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def issue_token(secret: str | None = None) -> str:
    """Issue a new opaque session token.

    Args:
        secret: Signing secret; when set the token is ``<id>.<hmac(id)>``

    Returns:
        Token string (16 random bytes in hex, optionally signed)
    """
    token_id = secrets.token_hex(TOKEN_BYTES)
    if not secret:
        return token_id
    return f"{token_id}{TOKEN_SIGNATURE_SEPARATOR}{sign_token_id(token_id, secret)}"


def verify_token_signature(token: str, secret: str | None) -> bool:
    """Check a token's signature before it is looked up.

    Unsigned tokens, or any token when no secret is configured, pass through
    unchecked and are resolved by direct lookup.

    Returns:
        False only when a signed token's signature does not match
    """
    if not secret or TOKEN_SIGNATURE_SEPARATOR not in token:
        return True

    token_id, _, signature = token.partition(TOKEN_SIGNATURE_SEPARATOR)
    expected = sign_token_id(token_id, secret)
    return secrets.compare_digest(signature, expected)
