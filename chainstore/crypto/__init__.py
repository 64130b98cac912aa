# Hashing, Merkle roots and transaction signing keys

from .hash import sha256, double_sha256, display_hash
from .keys import PrivateKey, PublicKey
from .merkle import EMPTY_ROOT, compute_merkle_root

__all__ = [
    # Hash functions
    'sha256',
    'double_sha256',
    'display_hash',
    # Keys
    'PrivateKey',
    'PublicKey',
    # Merkle tree
    'EMPTY_ROOT',
    'compute_merkle_root',
]
