"""
Block data structures.

- **BlockHeader**: block metadata held as a plain mapping of fields. The
  header is carried exactly as it was given: ``to_dict`` returns the same
  fields (nothing added, nothing dropped) whatever their values, so a stored
  header comes back exactly as it went in. The known fields (version,
  number, previous block hash, Merkle root, timestamp, difficulty bits,
  nonce) are readable as attributes and fall back to defaults when absent.

- **Block**: a header plus an ordered list of transactions. Transaction
  order is part of a block's identity: the Merkle root commits to it, and
  two blocks holding the same transactions in a different order are
  different blocks.

The block hash is the double SHA-256 of the serialized header, displayed in
reversed byte order. It is computed on demand and is never part of the
stored header.
"""

from __future__ import annotations

import copy
from typing import Optional

from chainstore.crypto.hash import display_hash
from chainstore.crypto.merkle import EMPTY_ROOT, compute_merkle_root
from chainstore.utils.encoding import (
    hex_to_bytes,
    int_to_little_endian,
    encode_varint,
)
from chainstore.core.transaction import Transaction

HEADER_SIZE = 88
NULL_HASH = "0" * 64


def _field(name: str, default):
    def getter(self):
        return self.fields.get(name, default)

    def setter(self, value):
        self.fields[name] = value
        self._hash = None

    return property(getter, setter)


# ---------------------------------------------------------------------------
# BlockHeader
# ---------------------------------------------------------------------------

class BlockHeader:
    """
    Block metadata.

    Serialized layout used for the block hash (88 bytes, integers
    little-endian):
        - version (4 bytes)
        - number (8 bytes): position of the block in its chain
        - previous_block_hash (32 bytes, internal byte order)
        - merkle_root (32 bytes, internal byte order)
        - timestamp (4 bytes)
        - difficulty_bits (4 bytes)
        - nonce (4 bytes)

    Attributes:
        fields: Every header field, exactly as given.
    """

    version = _field('version', 1)
    number = _field('number', 0)
    previous_block_hash = _field('previous_block_hash', NULL_HASH)
    merkle_root = _field('merkle_root', EMPTY_ROOT)
    timestamp = _field('timestamp', 0)
    difficulty_bits = _field('difficulty_bits', 0x1d00ffff)
    nonce = _field('nonce', 0)

    def __init__(self, fields: Optional[dict] = None, **values):
        self.fields = dict(fields) if fields else {}
        self.fields.update(values)
        self._hash: Optional[str] = None

    @property
    def hash(self) -> str:
        """The block hash, cached until a known field is assigned."""
        if self._hash is None:
            self._hash = self.calculate_hash()
        return self._hash

    def calculate_hash(self) -> str:
        return display_hash(self.serialize())

    def serialize(self) -> bytes:
        """
        Serialize the known fields to exactly ``HEADER_SIZE`` bytes.

        Raises:
            ValueError: If a known field does not fit its wire width.
        """
        try:
            result = int_to_little_endian(self.version, 4)
            result += int_to_little_endian(self.number, 8)
            result += hex_to_bytes(self.previous_block_hash)[::-1]
            result += hex_to_bytes(self.merkle_root)[::-1]
            result += int_to_little_endian(self.timestamp, 4)
            result += int_to_little_endian(self.difficulty_bits, 4)
            result += int_to_little_endian(self.nonce, 4)
        except (OverflowError, TypeError, AttributeError) as e:
            raise ValueError(f"header cannot be serialized: {e}") from e
        if len(result) != HEADER_SIZE:
            raise ValueError(
                f"header cannot be serialized: {len(result)} bytes, "
                f"expected {HEADER_SIZE}"
            )
        return result

    def to_dict(self) -> dict:
        """Return a copy of the header fields, exactly as they were given."""
        return copy.deepcopy(self.fields)

    @classmethod
    def from_dict(cls, data: dict) -> BlockHeader:
        """Build a header holding a copy of ``data``, key for key."""
        return cls(copy.deepcopy(dict(data)))

    def __repr__(self) -> str:
        return f"BlockHeader(number={self.number!r}, fields={len(self.fields)})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, BlockHeader):
            return NotImplemented
        return self.fields == other.fields


# ---------------------------------------------------------------------------
# Block
# ---------------------------------------------------------------------------

class Block:
    """
    A block: a header and the ordered transactions it commits to.

    Attributes:
        header: The block header.
        transactions: Transactions in block order.
    """

    def __init__(
        self,
        header: Optional[BlockHeader] = None,
        transactions: Optional[list] = None,
    ):
        self.header = header if header is not None else BlockHeader()
        self.transactions = transactions if transactions is not None else []

    @classmethod
    def shell(cls, header: BlockHeader) -> Block:
        """A block with ``header`` and no transactions yet."""
        return cls(header=header, transactions=[])

    @property
    def number(self) -> int:
        return self.header.number

    @property
    def hash(self) -> str:
        return self.header.hash

    def calculate_merkle_root(self) -> str:
        return compute_merkle_root([tx.txid for tx in self.transactions])

    def add_transaction(self, tx: Transaction):
        """
        Append a transaction while building a block.

        Refreshes the header's Merkle root, which also drops the cached block
        hash. Use ``transactions.append`` instead to fill a block whose header is
        already final.
        """
        self.transactions.append(tx)
        self.header.merkle_root = self.calculate_merkle_root()

    def get_size(self) -> int:
        """Serialized size in bytes: header, tx count varint, transactions."""
        size = HEADER_SIZE
        size += len(encode_varint(len(self.transactions)))
        for tx in self.transactions:
            size += len(tx.serialize())
        return size

    def to_dict(self) -> dict:
        """
        Convert to a dictionary with in-line transaction dicts.

        This is the synchronous, in-process view of a block. Storage goes
        through ``chainstore.database.blockserializer`` instead, which runs
        every transaction through a transaction serializer.
        """
        return {
            'header': self.header.to_dict(),
            'transactions': [tx.to_dict() for tx in self.transactions],
            'size': self.get_size(),
            'tx_count': len(self.transactions),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Block:
        return cls(
            header=BlockHeader.from_dict(data['header']),
            transactions=[
                Transaction.from_dict(tx_data)
                for tx_data in data['transactions']
            ],
        )

    def __repr__(self) -> str:
        return (
            f"Block(number={self.header.number!r}, "
            f"txs={len(self.transactions)})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Block):
            return NotImplemented
        return (
            self.header == other.header
            and [tx.txid for tx in self.transactions]
            == [tx.txid for tx in other.transactions]
        )
