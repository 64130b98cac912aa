"""
Transaction serializer: the per-item codec used by the block serializer.

The block serializer never looks inside a transaction. It relies on an
*item codec*, any object with two coroutines:

- ``encode(tx) -> dict``: the stored form of one transaction. May be awaited
  concurrently for different transactions of the same block.
- ``decode(data) -> tx``: the transaction rebuilt from one stored form.
  Awaited one item at a time, in block order.

``TransactionSerializer`` is the item codec for ``chainstore`` transactions.
Its stored form keeps the readable ``to_dict()`` fields next to the
authoritative wire bytes::

    {
        "version": 1,
        "txid": "<64 hex chars>",
        "inputs": [...],
        "outputs": [...],
        "locktime": 0,
        "hex": "<wire serialization>"
    }

Decoding only trusts ``hex``; ``txid`` serves as a checksum over it.

Before a transaction is stored, every signed input is checked against the
transaction's signing preimage. ECDSA verification is CPU-bound, so it runs
on an executor thread to let the encodes of one block proceed in parallel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from concurrent.futures import Executor
from typing import Any, Optional, Protocol

from chainstore import config
from chainstore.core.transaction import Transaction
from chainstore.crypto.hash import display_hash
from chainstore.crypto.keys import PublicKey
from chainstore.database.errors import ItemDecodeError, ItemEncodeError
from chainstore.utils.encoding import bytes_to_hex, hex_to_bytes

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('txid', 'hex')


class ItemCodec(Protocol):
    """Per-transaction codec consumed by ``BlockSerializer``."""

    async def encode(self, tx: Any) -> Any:
        ...

    async def decode(self, data: Any) -> Any:
        ...


class TransactionSerializer:
    """
    Item codec for :class:`~chainstore.core.transaction.Transaction`.

    Instances hold no per-call state and may be shared between any number
    of concurrent block encodes and decodes.

    Args:
        verify_signatures: Check input signatures on encode. Defaults to
            ``config.VERIFY_SIGNATURES``.
        executor: Executor for signature checks; ``None`` uses the running
            loop's default executor.
    """

    def __init__(
        self,
        verify_signatures: Optional[bool] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        if verify_signatures is None:
            verify_signatures = config.VERIFY_SIGNATURES
        self.verify_signatures = verify_signatures
        self._executor = executor

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    async def encode(self, tx: Transaction) -> dict:
        """
        Convert one transaction to its stored form.

        Raises:
            ItemEncodeError: If the object is not a Transaction, is
                structurally malformed, or carries a signature that does not
                verify.
        """
        if not isinstance(tx, Transaction):
            raise ItemEncodeError(
                f"unsupported transaction type: {type(tx).__name__}"
            )

        self._check_structure(tx)

        try:
            raw = tx.serialize()
        except (ValueError, OverflowError, TypeError, AttributeError) as e:
            raise ItemEncodeError(f"malformed transaction: {e}") from e

        if self.verify_signatures and not tx.is_coinbase():
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._executor, self._check_signatures, tx)

        txid = display_hash(raw)
        data = tx.to_dict()
        data['txid'] = txid
        data['hex'] = bytes_to_hex(raw)
        return data

    @staticmethod
    def _check_structure(tx: Transaction) -> None:
        if not tx.outputs:
            raise ItemEncodeError("malformed transaction: no outputs")

        for index, txout in enumerate(tx.outputs):
            if not isinstance(txout.value, int) or txout.value < 0:
                raise ItemEncodeError(
                    f"malformed transaction: output {index} has invalid "
                    f"value {txout.value!r}"
                )

        for index, txin in enumerate(tx.inputs):
            if not isinstance(txin.previous_txid, str) or len(txin.previous_txid) != 64:
                raise ItemEncodeError(
                    f"malformed transaction: input {index} has invalid "
                    f"previous_txid {txin.previous_txid!r}"
                )

    @staticmethod
    def _check_signatures(tx: Transaction) -> None:
        """
        Verify every signed input over the signing preimage.

        Unsigned inputs (empty script) are accepted; whether an input *must*
        be signed is a chain rule, not a storage one.
        """
        preimage = tx.signing_preimage()

        for index, txin in enumerate(tx.inputs):
            try:
                parsed = txin.parse_signature_script()
            except ValueError as e:
                logger.debug("Input %d of %s has unparsable script: %s",
                             index, tx.txid[:config.HASH_PREFIX_LENGTH], e)
                raise ItemEncodeError("bad signature") from e

            if parsed is None:
                continue

            signature, pubkey_bytes = parsed
            try:
                public_key = PublicKey.from_bytes(pubkey_bytes)
            except ValueError as e:
                raise ItemEncodeError("bad signature") from e

            if not public_key.verify(preimage, signature):
                logger.debug("Input %d of %s fails signature check",
                             index, tx.txid[:config.HASH_PREFIX_LENGTH])
                raise ItemEncodeError("bad signature")

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    async def decode(self, data: Mapping) -> Transaction:
        """
        Rebuild one transaction from its stored form.

        Raises:
            ItemDecodeError: If a required field is missing, the wire bytes
                cannot be parsed (or have trailing data), or the recomputed
                txid differs from the stored one.
        """
        if not isinstance(data, Mapping):
            raise ItemDecodeError(
                f"stored transaction must be a mapping, got {type(data).__name__}"
            )

        for field in REQUIRED_FIELDS:
            if field not in data:
                raise ItemDecodeError(f"missing required field: {field}")

        try:
            raw = hex_to_bytes(data['hex'])
            tx, consumed = Transaction.deserialize(raw)
        except (ValueError, TypeError, AttributeError) as e:
            raise ItemDecodeError(f"malformed transaction hex: {e}") from e

        if consumed != len(raw):
            raise ItemDecodeError(
                f"malformed transaction hex: {len(raw) - consumed} trailing byte(s)"
            )

        if tx.txid != data['txid']:
            logger.debug("Stored txid %s does not match content %s",
                         str(data['txid'])[:config.HASH_PREFIX_LENGTH],
                         tx.txid[:config.HASH_PREFIX_LENGTH])
            raise ItemDecodeError(
                f"txid mismatch: stored {data['txid']}, computed {tx.txid}"
            )

        return tx


_default_serializer = TransactionSerializer()


async def encode(tx: Transaction) -> dict:
    """Encode ``tx`` with the default :class:`TransactionSerializer`."""
    return await _default_serializer.encode(tx)


async def decode(data: Mapping) -> Transaction:
    """Decode ``data`` with the default :class:`TransactionSerializer`."""
    return await _default_serializer.decode(data)
