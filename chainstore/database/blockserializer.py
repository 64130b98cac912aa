"""
Block serializer: converts a Block to its stored form and back.

The stored form of a block is a plain dictionary::

    {
        "header": {<header fields, copied verbatim>},
        "transactions": [<stored transaction>, ...]
    }

Each transaction is handled by an *item codec* (see
``chainstore.database.txserializer``), which may fail for any single item.
The two directions use different scheduling:

- **encode** fans out. One task per transaction is started at once (or up
  to ``max_concurrency`` at a time), and the results are read back by task
  index, so ``transactions[i]`` is always the stored form of transaction
  ``i`` whatever order the tasks finish in. The first failure observed is
  raised unchanged and no dictionary is returned. Tasks already running are
  left to finish and their results are dropped; tasks still waiting for a
  concurrency slot never start. An item task that ends cancelled counts as a
  failure and surfaces as ``ItemEncodeError``.

- **decode** is strictly sequential. An empty block shell is built from the
  header, then each stored transaction is decoded and appended in order,
  one at a time. The first failure is raised unchanged, later items are
  never attempted and no block is returned. Item codecs may therefore rely
  on every earlier transaction of the block having been decoded.

Both directions are one-shot: a call either returns a complete result or
raises. Calls share no state, so one serializer can process many blocks
concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Optional

from chainstore import config
from chainstore.core.block import Block, BlockHeader
from chainstore.database.errors import ItemEncodeError, RepresentationError
from chainstore.database.txserializer import ItemCodec, TransactionSerializer

logger = logging.getLogger(__name__)


def _failed(task: asyncio.Future) -> bool:
    return task.cancelled() or task.exception() is not None


def _item_error(task: asyncio.Future, index: int) -> BaseException:
    if task.cancelled():
        return ItemEncodeError(f"transaction {index} encode was cancelled")
    return task.exception()


def _discard(task: asyncio.Future) -> None:
    # Late sibling results are never surfaced; retrieving the exception
    # keeps asyncio from reporting it as unhandled.
    if not task.cancelled():
        task.exception()


class BlockSerializer:
    """
    Block codec built on an injected per-transaction item codec.

    Args:
        item_codec: Object providing ``encode``/``decode`` coroutines for a
            single transaction. Defaults to :class:`TransactionSerializer`.
        max_concurrency: Maximum number of item encodes in flight for one
            block. ``None`` (the default, ``config.DEFAULT_MAX_CONCURRENCY``)
            dispatches every transaction at once.

    Raises:
        ValueError: If ``max_concurrency`` is less than 1.
    """

    def __init__(
        self,
        item_codec: Optional[ItemCodec] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if item_codec is None:
            item_codec = TransactionSerializer()
        if max_concurrency is None:
            max_concurrency = config.DEFAULT_MAX_CONCURRENCY
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be at least 1, got {max_concurrency}"
            )
        self.item_codec = item_codec
        self.max_concurrency = max_concurrency

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    async def encode(self, block: Block) -> dict:
        """
        Convert ``block`` to its stored form.

        The block is only read. An empty block encodes to an empty
        ``transactions`` list.

        Returns:
            A new dictionary with ``header`` and ``transactions``.

        Raises:
            Exception: The first item codec failure, unchanged.
        """
        number = block.header.number
        logger.debug("Encoding block %s with %d transaction(s)",
                     number, len(block.transactions))

        data = {'header': block.header.to_dict()}
        data['transactions'] = await self._encode_transactions(
            list(block.transactions), number
        )

        logger.debug("Encoded block %s", number)
        return data

    async def _encode_transactions(self, transactions: list, number) -> list:
        if not transactions:
            return []

        semaphore = (
            asyncio.Semaphore(self.max_concurrency)
            if self.max_concurrency is not None else None
        )
        stopped = asyncio.Event()

        tasks = [
            asyncio.ensure_future(self._encode_item(tx, semaphore, stopped))
            for tx in transactions
        ]
        index_of = {task: index for index, task in enumerate(tasks)}

        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_EXCEPTION
                )
                failed = sorted(
                    (task for task in done if _failed(task)),
                    key=index_of.__getitem__,
                )
                if failed:
                    first = failed[0]
                    for task in pending:
                        task.add_done_callback(_discard)
                    for task in failed[1:]:
                        _discard(task)
                    error = _item_error(first, index_of[first])
                    logger.warning(
                        "Transaction %d of block %s failed to encode: %s",
                        index_of[first], number, error,
                    )
                    raise error
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        return [task.result() for task in tasks]

    async def _encode_item(self, tx, semaphore, stopped):
        if semaphore is None:
            return await self.item_codec.encode(tx)
        async with semaphore:
            if stopped.is_set():
                return None
            try:
                return await self.item_codec.encode(tx)
            except (Exception, asyncio.CancelledError):
                stopped.set()
                raise

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    async def decode(self, data: Mapping) -> Block:
        """
        Rebuild a block from its stored form.

        ``data`` is not modified.

        Raises:
            RepresentationError: If ``data`` has no header mapping or no
                ``transactions`` list.
            Exception: The first item codec failure, unchanged.
        """
        header_data, stored_transactions = self._split(data)

        block = Block.shell(BlockHeader.from_dict(header_data))
        number = block.header.number
        logger.debug("Decoding block %s with %d transaction(s)",
                     number, len(stored_transactions))

        for index, stored in enumerate(stored_transactions):
            try:
                tx = await self.item_codec.decode(stored)
            except Exception as e:
                logger.warning(
                    "Transaction %d of block %s failed to decode: %s",
                    index, number, e,
                )
                raise
            block.transactions.append(tx)

        logger.debug("Decoded block %s", number)
        return block

    @staticmethod
    def _split(data: Mapping) -> tuple:
        if not isinstance(data, Mapping):
            raise RepresentationError(
                f"stored block must be a mapping, got {type(data).__name__}"
            )

        header_data = data.get('header')
        if not isinstance(header_data, Mapping):
            raise RepresentationError(
                f"stored block header must be a mapping, "
                f"got {type(header_data).__name__}"
            )

        if 'transactions' not in data:
            raise RepresentationError("stored block has no transactions field")
        stored_transactions = data['transactions']
        if not isinstance(stored_transactions, (list, tuple)):
            raise RepresentationError(
                f"stored block transactions must be a list, "
                f"got {type(stored_transactions).__name__}"
            )

        return header_data, stored_transactions


_default_serializer: Optional[BlockSerializer] = None


def _get_default_serializer() -> BlockSerializer:
    global _default_serializer
    if _default_serializer is None:
        _default_serializer = BlockSerializer()
    return _default_serializer


async def encode(block: Block) -> dict:
    """Encode ``block`` with a default :class:`BlockSerializer`."""
    return await _get_default_serializer().encode(block)


async def decode(data: Mapping) -> Block:
    """Decode ``data`` with a default :class:`BlockSerializer`."""
    return await _get_default_serializer().decode(data)
