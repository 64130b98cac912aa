"""
Hash functions used for block and transaction identifiers.

- **SHA-256** is the building block.
- **double SHA-256** identifies headers and transactions and hashes
  Merkle tree nodes. It is also the digest that transaction signatures sign.
"""

import hashlib


def sha256(data: bytes) -> bytes:
    """Compute the 32-byte SHA-256 digest of ``data``."""
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    """
    Compute SHA-256(SHA-256(data)).

    Example:
        >>> double_sha256(b"hello").hex()
        '9595c9df90075148eb06860365df33584b75bff782a510c6cd4883a419833d50'
    """
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def display_hash(data: bytes) -> str:
    """
    Double SHA-256 in display order.

    Identifiers are computed over the natural digest but shown with the bytes
    reversed, so a txid or block hash reads most-significant byte first.
    """
    return double_sha256(data)[::-1].hex()
