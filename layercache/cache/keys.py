"""
layercache - Key Derivation

Turns a logical cache key plus a namespace into the storage key used by a
backend: ``namespace + sha256(key)``. Different namespaces never collide on
the same logical key, and hashing keeps storage keys fixed-length and safe
for every backend (Redis patterns, SQL LIKE prefixes, file-backed stores).
"""

import hashlib
from typing import Any

from ..errors import InvalidKeyError

# Length of the hex digest that follows the namespace in every storage key
DIGEST_LENGTH = 64


def validate_key(key: Any) -> str:
    """
    Ensure a key is a non-empty string.

    Args:
        key: Logical cache key

    Returns:
        The key, unchanged

    Raises:
        InvalidKeyError: If key is not a string or is empty after trimming
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidKeyError(key)
    return key


def normalize_namespace(namespace: str | None) -> str:
    """Trim a namespace; None means no namespace."""
    return (namespace or "").strip()


def derive_key(namespace: str | None, key: Any) -> str:
    """
    Derive the storage key for a logical key.

    Args:
        namespace: Prefix isolating one keyspace from another
        key: Logical cache key

    Returns:
        Namespace followed by the hex SHA-256 digest of the key

    Raises:
        InvalidKeyError: If key is empty or whitespace-only
    """
    validate_key(key)
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return f"{normalize_namespace(namespace)}{digest}"


def is_namespace_key(namespace: str, storage_key: str) -> bool:
    """True if storage_key was derived under exactly this namespace."""
    return (
        len(storage_key) == len(namespace) + DIGEST_LENGTH
        and storage_key.startswith(namespace)
        and all(c in "0123456789abcdef" for c in storage_key[len(namespace) :])
    )
