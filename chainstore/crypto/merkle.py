"""
Merkle root computation over transaction identifiers.

The root commits a block header to the exact set *and order* of its
transactions: swapping two transactions changes the root. Leaves are txids
converted to internal byte order; each parent is the double SHA-256 of its
two children concatenated, and an odd level duplicates its last node.
"""

from .hash import double_sha256

EMPTY_ROOT = "0" * 64


def compute_merkle_root(txids: list) -> str:
    """
    Compute the Merkle root of a list of display-order txids.

    Args:
        txids: Transaction identifiers as 64-character hex strings, in block
            order.

    Returns:
        The root as a display-order hex string. An empty list yields
        ``EMPTY_ROOT``; a single txid is its own root.
    """
    if not txids:
        return EMPTY_ROOT

    if len(txids) == 1:
        return txids[0].lower()

    level = [bytes.fromhex(txid)[::-1] for txid in txids]

    while len(level) > 1:
        if len(level) % 2 != 0:
            level.append(level[-1])
        level = [
            double_sha256(level[i] + level[i + 1])
            for i in range(0, len(level), 2)
        ]

    return level[0][::-1].hex()
