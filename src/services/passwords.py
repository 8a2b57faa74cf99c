"""Credential hashing for stored passwords and the legacy email hash."""

from passlib.context import CryptContext

# Unsalted SHA-256 hex digests; existing rows in the Users table use this format.
pwd_context = CryptContext(schemes=["hex_sha256"])


def hash_password(password: str) -> str:
    """Hash a password into a lowercase SHA-256 hex digest."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its stored digest."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password.lower())
    except ValueError:
        # Not a SHA-256 hex digest
        return False


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_email(email: str) -> str:
    """Compute the legacy "Encrypted Email" value.

    A 31-multiplier rolling hash over UTF-16 code units, wrapped to a signed
    32-bit integer and rendered in decimal. Not a security measure.
    """
    encoded = email.encode("utf-16-le")
    result = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        result = _to_int32((result << 5) - result + code_unit)
    return str(result)
