"""
Codec defaults.

These are the values used when a serializer is constructed without explicit
arguments. Override per instance through constructor keyword arguments, e.g.
``BlockSerializer(max_concurrency=32)`` or
``TransactionSerializer(verify_signatures=False)``.
"""

# Upper bound on per-transaction encodes in flight for one block.
# None means every transaction of the block is dispatched at once.
DEFAULT_MAX_CONCURRENCY = None

# Verify input signatures before a transaction is written to storage.
VERIFY_SIGNATURES = True

# Number of hex characters of a hash shown in log lines and reprs.
HASH_PREFIX_LENGTH = 16
