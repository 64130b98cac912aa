# Stored-form codecs for blocks and transactions

from .errors import (
    CodecError,
    ItemEncodeError,
    ItemDecodeError,
    RepresentationError,
    AggregationError,
)
from .txserializer import ItemCodec, TransactionSerializer
from .blockserializer import BlockSerializer

__all__ = [
    # Errors
    'CodecError',
    'ItemEncodeError',
    'ItemDecodeError',
    'RepresentationError',
    'AggregationError',
    # Codecs
    'ItemCodec',
    'TransactionSerializer',
    'BlockSerializer',
]
