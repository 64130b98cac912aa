"""
Shared fixtures and test doubles.

``FakeItemCodec`` stands in for a real transaction serializer: its items are
plain string labels, every call is recorded, per-item latencies make tasks
finish out of order, and any label can be made to fail.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chainstore.core.block import Block, BlockHeader
from chainstore.core.transaction import Transaction, TransactionInput, TransactionOutput
from chainstore.crypto.keys import PrivateKey
from chainstore.database.errors import ItemDecodeError, ItemEncodeError


class FakeItemCodec:
    """
    Deterministic item codec over string labels.

    Args:
        delays: Seconds each label's encode sleeps before finishing.
        encode_errors: Label -> exception raised by encode for that label.
        decode_errors: Label -> exception raised by decode for that label.
    """

    def __init__(self, delays=None, encode_errors=None, decode_errors=None):
        self.delays = delays or {}
        self.encode_errors = encode_errors or {}
        self.decode_errors = decode_errors or {}
        self.encode_calls = []
        self.encode_completed = []
        self.decode_calls = []
        self.active_encodes = 0
        self.max_active_encodes = 0
        self.active_decodes = 0
        self.max_active_decodes = 0

    async def encode(self, tx):
        self.encode_calls.append(tx)
        self.active_encodes += 1
        self.max_active_encodes = max(self.max_active_encodes, self.active_encodes)
        try:
            await asyncio.sleep(self.delays.get(tx, 0))
            if tx in self.encode_errors:
                raise self.encode_errors[tx]
            self.encode_completed.append(tx)
            return {'item': tx}
        finally:
            self.active_encodes -= 1

    async def decode(self, data):
        label = data['item']
        self.decode_calls.append(label)
        self.active_decodes += 1
        self.max_active_decodes = max(self.max_active_decodes, self.active_decodes)
        try:
            await asyncio.sleep(self.delays.get(label, 0))
            if label in self.decode_errors:
                raise self.decode_errors[label]
            return label
        finally:
            self.active_decodes -= 1


def label_block(labels, **header_fields):
    """A block whose transactions are the given string labels."""
    return Block(header=BlockHeader(**header_fields), transactions=list(labels))


def stored_block(labels, **header_fields):
    """The stored form ``FakeItemCodec`` would produce for ``labels``."""
    return {
        'header': BlockHeader(**header_fields).to_dict(),
        'transactions': [{'item': label} for label in labels],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def private_key():
    """A fixed signing key so signatures are reproducible."""
    return PrivateKey(bytes.fromhex("11" * 32))


@pytest.fixture
def other_key():
    return PrivateKey(bytes.fromhex("22" * 32))


@pytest.fixture
def coinbase_tx():
    return Transaction.create_coinbase(
        block_number=5,
        reward_script="aa" * 20,
        reward_amount=50_00000000,
    )


@pytest.fixture
def make_signed_tx(private_key):
    """Factory for one-input transactions signed with ``private_key``."""

    def _make(seed: int, value: int = 1_000):
        tx = Transaction(
            inputs=[TransactionInput(
                previous_txid=f"{seed:064x}",
                previous_output_index=0,
            )],
            outputs=[TransactionOutput(value=value, pubkey_script="bb" * 20)],
        )
        tx.sign_input(0, private_key)
        return tx

    return _make


@pytest.fixture
def signed_block(coinbase_tx, make_signed_tx):
    """A block with a coinbase and three signed transactions."""
    block = Block(header=BlockHeader(number=5, timestamp=1700000000))
    block.add_transaction(coinbase_tx)
    for seed in (1, 2, 3):
        block.add_transaction(make_signed_tx(seed, value=1_000 * seed))
    return block


@pytest.fixture
def encode_failure():
    return ItemEncodeError("bad signature")


@pytest.fixture
def decode_failure():
    return ItemDecodeError("missing required field: hex")
