"""
Security utilities.

Token generation and hashing/masking of sensitive values before they
are stored or logged.
"""

import hashlib
import secrets

# Bytes of entropy in invitation tokens (hex encoded -> 64 chars)
INVITATION_TOKEN_BYTES = 32

# Length of the stored IP fingerprint
IP_HASH_LENGTH = 16


def generate_invitation_token() -> str:
    """
    Generate a secret single-use invitation token.

    Returns:
        64 character hex token
    """
    return secrets.token_hex(INVITATION_TOKEN_BYTES)


def hash_ip(ip: str | None) -> str | None:
    """
    Hash client IP for analytics without storing it.

    Args:
        ip: Client IP address

    Returns:
        First 16 hex chars of SHA-256, or None if no IP

    Examples:
        >>> len(hash_ip("127.0.0.1"))
        16
        >>> hash_ip(None) is None
        True
    """
    if not ip:
        return None
    return hashlib.sha256(ip.encode()).hexdigest()[:IP_HASH_LENGTH]


def mask_token(token: str | None) -> str:
    """
    Mask secret token for logging: abcd...wxyz

    Args:
        token: Token to mask

    Returns:
        Masked token showing first and last 4 characters
    """
    if not token or len(token) < 12:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
