# In-memory block and transaction entities

from .transaction import Transaction, TransactionInput, TransactionOutput
from .block import Block, BlockHeader

__all__ = [
    'Transaction',
    'TransactionInput',
    'TransactionOutput',
    'Block',
    'BlockHeader',
]
