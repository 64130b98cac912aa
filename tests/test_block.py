"""
Tests for Block and BlockHeader
===============================

Tests cover:
- Header serialization size and hash properties
- Headers carried verbatim through to_dict / from_dict
- Merkle root maintenance while building a block
- Block shells, size, equality and dict round trips
"""

import pytest

from chainstore.core.block import HEADER_SIZE, Block, BlockHeader
from chainstore.crypto.merkle import EMPTY_ROOT


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def default_header():
    """A block header with explicit values."""
    return BlockHeader(
        version=1,
        number=5,
        previous_block_hash="0" * 64,
        merkle_root="ab" * 32,
        timestamp=1700000000,
        difficulty_bits=0x1f0fffff,
        nonce=0,
    )


# ---------------------------------------------------------------------------
# BlockHeader Tests
# ---------------------------------------------------------------------------

class TestBlockHeader:

    def test_serialize_size(self, default_header):
        assert len(default_header.serialize()) == HEADER_SIZE

    def test_hash_is_64_hex_chars(self, default_header):
        block_hash = default_header.hash
        assert len(block_hash) == 64
        assert all(c in "0123456789abcdef" for c in block_hash)

    def test_number_changes_hash(self):
        assert BlockHeader(number=1).hash != BlockHeader(number=2).hash

    def test_assigning_a_field_resets_hash(self, default_header):
        before = default_header.hash
        default_header.nonce = 7
        assert default_header.fields['nonce'] == 7
        assert default_header.hash != before

    def test_partial_header_uses_defaults(self):
        """A header given only a number still reads like a complete header."""
        header = BlockHeader.from_dict({'number': 5})
        assert header.number == 5
        assert header.version == 1
        assert header.merkle_root == EMPTY_ROOT
        assert header.to_dict() == {'number': 5}

    def test_unknown_fields_are_kept(self):
        data = {'number': 5, 'miner': 'pool', 'uncles': []}
        assert BlockHeader.from_dict(data).to_dict() == data

    def test_stored_hash_is_kept_but_not_used(self, default_header):
        data = default_header.to_dict()
        data['hash'] = "ff" * 32
        restored = BlockHeader.from_dict(data)
        assert restored.to_dict()['hash'] == "ff" * 32
        assert restored.hash == default_header.hash

    @pytest.mark.parametrize("fields", [
        {'timestamp': 1700000000000},
        {'number': '0x5'},
        {'merkle_root': 'abcd'},
    ])
    def test_out_of_layout_fields(self, fields):
        """Fields the hashing layout cannot hold are still carried as given."""
        header = BlockHeader.from_dict(fields)
        assert header.to_dict() == fields
        with pytest.raises(ValueError):
            header.serialize()

    def test_copies_are_independent(self):
        data = {'number': 5, 'uncles': ['aa']}
        header = BlockHeader.from_dict(data)
        data['uncles'].append('bb')
        header.to_dict()['uncles'].append('cc')
        assert header.fields == {'number': 5, 'uncles': ['aa']}

    def test_dict_roundtrip(self, default_header):
        restored = BlockHeader.from_dict(default_header.to_dict())
        assert restored == default_header
        assert restored.to_dict() == default_header.to_dict()

    def test_equality_is_by_fields(self, default_header):
        other = BlockHeader.from_dict(default_header.to_dict())
        other.fields['note'] = 'x'
        assert other != default_header


# ---------------------------------------------------------------------------
# Block Tests
# ---------------------------------------------------------------------------

class TestBlock:

    def test_shell_is_empty(self, default_header):
        block = Block.shell(default_header)
        assert block.header is default_header
        assert block.transactions == []
        assert block.number == 5

    def test_empty_block_merkle_root(self):
        assert Block().calculate_merkle_root() == EMPTY_ROOT

    def test_add_transaction_updates_merkle_root(self, coinbase_tx, make_signed_tx):
        block = Block(header=BlockHeader(number=5))
        block.add_transaction(coinbase_tx)
        assert block.header.merkle_root == coinbase_tx.txid

        hash_before = block.hash
        block.add_transaction(make_signed_tx(1))
        assert block.header.merkle_root == block.calculate_merkle_root()
        assert block.hash != hash_before

    def test_transaction_order_is_identity(self, signed_block):
        reordered = Block(
            header=BlockHeader.from_dict(signed_block.header.to_dict()),
            transactions=list(reversed(signed_block.transactions)),
        )
        assert reordered != signed_block
        assert reordered.calculate_merkle_root() != reordered.header.merkle_root

    def test_get_size(self, signed_block):
        expected = HEADER_SIZE + 1 + sum(
            len(tx.serialize()) for tx in signed_block.transactions
        )
        assert signed_block.get_size() == expected

    def test_dict_roundtrip(self, signed_block):
        data = signed_block.to_dict()
        assert data['tx_count'] == 4
        restored = Block.from_dict(data)
        assert restored == signed_block
