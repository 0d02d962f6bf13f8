"""
Impact token generation.

An impact token addresses a donor's public impact page without
authentication. Tokens are derived from the donor email:

    SHA-256(email bytes) -> big integer -> base-62 -> first N characters

The token is not a security boundary, only a stable short identifier, so
collision resistance at donor-list scale is what matters. With 12 base-62
characters there are about 3.2e21 possible tokens.

Collisions with a different donor are resolved by re-deriving from
"<email>#<attempt>" until a free token is found. The canonical token
(attempt 0) is a pure function of the email.
"""

import hashlib
from typing import Callable

from ..errors import TokenCollisionError


BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
DEFAULT_TOKEN_LENGTH = 12
MAX_TOKEN_ATTEMPTS = 16


def _base62(number: int) -> str:
    if number == 0:
        return BASE62_ALPHABET[0]

    digits = []
    while number:
        number, remainder = divmod(number, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_token(email: str, attempt: int = 0, length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """
    Derive the impact token for an email.

    Args:
        email: Donor email, used exactly as given
        attempt: Collision attempt number (0 = canonical token)
        length: Number of characters to keep

    Returns:
        URL-safe alphanumeric token of exactly `length` characters

    Examples:
        >>> generate_token("john@example.com") == generate_token("john@example.com")
        True
        >>> len(generate_token("john@example.com"))
        12
    """
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    if length < 1:
        raise ValueError("length must be >= 1")

    material = email if attempt == 0 else f"{email}#{attempt}"
    digest = hashlib.sha256(material.encode("utf-8")).digest()

    # 256 bits encode to at most 43 base-62 digits
    encoded = _base62(int.from_bytes(digest, "big")).rjust(43, BASE62_ALPHABET[0])
    return encoded[:length]


def is_valid_token(token: str, length: int = DEFAULT_TOKEN_LENGTH) -> bool:
    """Check that a string has the shape of an impact token."""
    if not token or not isinstance(token, str) or len(token) != length:
        return False
    return all(ch in BASE62_ALPHABET for ch in token)


def assign_token(
    email: str,
    is_taken: Callable[[str], bool],
    length: int = DEFAULT_TOKEN_LENGTH,
    max_attempts: int = MAX_TOKEN_ATTEMPTS,
) -> str:
    """
    Return the first token for `email` that is not taken by another donor.

    Args:
        email: Donor email
        is_taken: Predicate returning True when a token already belongs to
            a different donor
        length: Token length
        max_attempts: Upper bound on re-derivations

    Raises:
        TokenCollisionError: If every attempt collides
    """
    for attempt in range(max_attempts):
        token = generate_token(email, attempt=attempt, length=length)
        if not is_taken(token):
            return token

    raise TokenCollisionError(
        f"Could not derive a free impact token for {email} "
        f"after {max_attempts} attempts"
    )
