"""
Transaction data structures.

A block stores an ordered list of these. Three classes make up a transaction:

- **TransactionOutput**: a value (in base units) locked to a script, here
  the hex-encoded hash of the recipient's public key.

- **TransactionInput**: a reference to a previous output plus the
  signature script that unlocks it. A signed input carries
  ``"<signature_hex> <pubkey_hex>"`` in its signature script.

- **Transaction**: version, inputs, outputs and locktime. The transaction ID
  (txid) is the double SHA-256 of the wire serialization, displayed in
  reversed byte order.

Signatures commit to the *signing preimage*: the wire serialization with
every signature script blanked. Signing one input therefore never
invalidates the signature already placed on another.

Wire format: little-endian integers, varint prefixes for lists and scripts.
"""

from __future__ import annotations

from typing import Optional

from chainstore.crypto.hash import display_hash
from chainstore.crypto.keys import PrivateKey
from chainstore.utils.encoding import (
    bytes_to_hex,
    hex_to_bytes,
    int_to_little_endian,
    read_little_endian,
    encode_varint,
    decode_varint,
)

NULL_TXID = "0" * 64
COINBASE_INDEX = 0xffffffff
FINAL_SEQUENCE = 0xffffffff


def _read_bytes(data: bytes, offset: int, length: int) -> bytes:
    if offset + length > len(data):
        raise ValueError(
            f"Not enough data: need {length} bytes at offset {offset}"
        )
    return data[offset:offset + length]


# ---------------------------------------------------------------------------
# TransactionOutput
# ---------------------------------------------------------------------------

class TransactionOutput:
    """
    Attributes:
        value: Amount in base units.
        pubkey_script: Hex-encoded locking script.
    """

    def __init__(self, value: int, pubkey_script: str):
        self.value = value
        self.pubkey_script = pubkey_script

    def serialize(self) -> bytes:
        """value (8 bytes) || varint script length || script."""
        script_bytes = hex_to_bytes(self.pubkey_script)
        return (
            int_to_little_endian(self.value, 8)
            + encode_varint(len(script_bytes))
            + script_bytes
        )

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple:
        """
        Returns:
            A tuple of (TransactionOutput, bytes_consumed).

        Raises:
            ValueError: If the data ends before the output does.
        """
        start = offset

        value = read_little_endian(data, offset, 8)
        offset += 8

        script_length, varint_size = decode_varint(data, offset)
        offset += varint_size

        pubkey_script = bytes_to_hex(_read_bytes(data, offset, script_length))
        offset += script_length

        return (cls(value=value, pubkey_script=pubkey_script), offset - start)

    def to_dict(self) -> dict:
        return {
            'value': self.value,
            'pubkey_script': self.pubkey_script,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TransactionOutput:
        return cls(
            value=data['value'],
            pubkey_script=data['pubkey_script'],
        )

    def __repr__(self) -> str:
        return (
            f"TransactionOutput(value={self.value}, "
            f"pubkey_script='{self.pubkey_script[:16]}...')"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, TransactionOutput):
            return NotImplemented
        return (self.value, self.pubkey_script) == (other.value, other.pubkey_script)


# ---------------------------------------------------------------------------
# TransactionInput
# ---------------------------------------------------------------------------

class TransactionInput:
    """
    Attributes:
        previous_txid: Display-order txid of the output being spent.
        previous_output_index: Index of that output.
        signature_script: Unlocking script. For a signed input this is the
            text ``"<signature_hex> <pubkey_hex>"``; for a coinbase input it
            is arbitrary hex.
        sequence: Sequence number (default final).
    """

    def __init__(
        self,
        previous_txid: str,
        previous_output_index: int,
        signature_script: str = "",
        sequence: int = FINAL_SEQUENCE,
    ):
        self.previous_txid = previous_txid
        self.previous_output_index = previous_output_index
        self.signature_script = signature_script
        self.sequence = sequence

    def serialize(self, blank_script: bool = False) -> bytes:
        """
        previous_txid (32 bytes, internal order) || index (4 bytes) ||
        varint script length || script || sequence (4 bytes).

        The signature script is stored as UTF-8 text so the signed
        ``"<sig> <pubkey>"`` form survives a round trip unchanged.

        Args:
            blank_script: Serialize with an empty signature script, as used
                by the signing preimage.
        """
        result = hex_to_bytes(self.previous_txid)[::-1]
        result += int_to_little_endian(self.previous_output_index, 4)

        script_bytes = b'' if blank_script else self.signature_script.encode('utf-8')
        result += encode_varint(len(script_bytes))
        result += script_bytes

        result += int_to_little_endian(self.sequence, 4)
        return result

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple:
        """
        Returns:
            A tuple of (TransactionInput, bytes_consumed).

        Raises:
            ValueError: If the data is truncated or the script is not text.
        """
        start = offset

        previous_txid = bytes_to_hex(_read_bytes(data, offset, 32)[::-1])
        offset += 32

        previous_output_index = read_little_endian(data, offset, 4)
        offset += 4

        script_length, varint_size = decode_varint(data, offset)
        offset += varint_size

        signature_script = _read_bytes(data, offset, script_length).decode('utf-8')
        offset += script_length

        sequence = read_little_endian(data, offset, 4)
        offset += 4

        return (cls(
            previous_txid=previous_txid,
            previous_output_index=previous_output_index,
            signature_script=signature_script,
            sequence=sequence,
        ), offset - start)

    def is_coinbase(self) -> bool:
        return (
            self.previous_txid == NULL_TXID
            and self.previous_output_index == COINBASE_INDEX
        )

    def parse_signature_script(self) -> Optional[tuple]:
        """
        Split a signed script into raw (signature, pubkey) bytes.

        Returns:
            ``(signature, pubkey)`` for a ``"<sig_hex> <pubkey_hex>"`` script,
            or None when the input is unsigned.

        Raises:
            ValueError: If the script is present but not in that form.
        """
        if not self.signature_script:
            return None
        parts = self.signature_script.split()
        if len(parts) != 2:
            raise ValueError(
                f"expected '<sig> <pubkey>' script, got {len(parts)} part(s)"
            )
        return bytes.fromhex(parts[0]), bytes.fromhex(parts[1])

    def to_dict(self) -> dict:
        return {
            'previous_txid': self.previous_txid,
            'previous_output_index': self.previous_output_index,
            'signature_script': self.signature_script,
            'sequence': self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TransactionInput:
        return cls(
            previous_txid=data['previous_txid'],
            previous_output_index=data['previous_output_index'],
            signature_script=data.get('signature_script', ''),
            sequence=data.get('sequence', FINAL_SEQUENCE),
        )

    def __repr__(self) -> str:
        return (
            f"TransactionInput(txid='{self.previous_txid[:16]}...', "
            f"index={self.previous_output_index})"
        )


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------

class Transaction:
    """
    A complete transaction.

    Attributes:
        version: Transaction version number (default 1).
        inputs: List of TransactionInput objects.
        outputs: List of TransactionOutput objects.
        locktime: Earliest block/time when the tx can be included (default 0).
    """

    def __init__(
        self,
        version: int = 1,
        inputs: Optional[list] = None,
        outputs: Optional[list] = None,
        locktime: int = 0,
    ):
        self.version = version
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.locktime = locktime
        self._txid: Optional[str] = None

    @property
    def txid(self) -> str:
        """
        The transaction ID, cached after first computation.

        Mutating a transaction after reading its txid requires resetting
        ``_txid`` (``sign_input`` does this).
        """
        if self._txid is None:
            self._txid = self.calculate_txid()
        return self._txid

    def calculate_txid(self) -> str:
        return display_hash(self.serialize())

    def serialize(self, blank_scripts: bool = False) -> bytes:
        """
        version (4 bytes) || varint input count || inputs ||
        varint output count || outputs || locktime (4 bytes).
        """
        result = int_to_little_endian(self.version, 4)

        result += encode_varint(len(self.inputs))
        for txin in self.inputs:
            result += txin.serialize(blank_script=blank_scripts)

        result += encode_varint(len(self.outputs))
        for txout in self.outputs:
            result += txout.serialize()

        result += int_to_little_endian(self.locktime, 4)
        return result

    def signing_preimage(self) -> bytes:
        """The bytes every input signature commits to."""
        return self.serialize(blank_scripts=True)

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple:
        """
        Returns:
            A tuple of (Transaction, bytes_consumed).

        Raises:
            ValueError: If the data is truncated or malformed.
        """
        start = offset

        version = read_little_endian(data, offset, 4)
        offset += 4

        input_count, varint_size = decode_varint(data, offset)
        offset += varint_size

        inputs = []
        for _ in range(input_count):
            txin, consumed = TransactionInput.deserialize(data, offset)
            inputs.append(txin)
            offset += consumed

        output_count, varint_size = decode_varint(data, offset)
        offset += varint_size

        outputs = []
        for _ in range(output_count):
            txout, consumed = TransactionOutput.deserialize(data, offset)
            outputs.append(txout)
            offset += consumed

        locktime = read_little_endian(data, offset, 4)
        offset += 4

        return (cls(
            version=version,
            inputs=inputs,
            outputs=outputs,
            locktime=locktime,
        ), offset - start)

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].is_coinbase()

    def sign_input(self, index: int, private_key: PrivateKey) -> None:
        """
        Sign input ``index`` over the signing preimage.

        Writes ``"<signature_hex> <compressed_pubkey_hex>"`` into the input's
        signature script and invalidates the cached txid.
        """
        signature = private_key.sign(self.signing_preimage())
        pubkey_hex = private_key.public_key.to_hex(compressed=True)
        self.inputs[index].signature_script = f"{signature.hex()} {pubkey_hex}"
        self._txid = None

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'txid': self.txid,
            'inputs': [txin.to_dict() for txin in self.inputs],
            'outputs': [txout.to_dict() for txout in self.outputs],
            'locktime': self.locktime,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Transaction:
        tx = cls(
            version=data['version'],
            inputs=[TransactionInput.from_dict(inp) for inp in data['inputs']],
            outputs=[TransactionOutput.from_dict(out) for out in data['outputs']],
            locktime=data.get('locktime', 0),
        )
        if 'txid' in data:
            tx._txid = data['txid']
        return tx

    @staticmethod
    def create_coinbase(
        block_number: int,
        reward_script: str,
        reward_amount: int,
        extra_nonce: int = 0,
    ) -> Transaction:
        """
        Create the reward transaction that opens a block.

        Its single input spends nothing (null txid, index 0xffffffff); the
        input script encodes the block number and an extra nonce so that
        coinbases of different blocks never share a txid.
        """
        height_bytes = block_number.to_bytes(
            max(1, (block_number.bit_length() + 7) // 8), byteorder='little'
        )
        coinbase_script = (
            bytes([len(height_bytes)])
            + height_bytes
            + extra_nonce.to_bytes(8, byteorder='little')
        )

        return Transaction(
            version=1,
            inputs=[TransactionInput(
                previous_txid=NULL_TXID,
                previous_output_index=COINBASE_INDEX,
                signature_script=bytes_to_hex(coinbase_script),
            )],
            outputs=[TransactionOutput(
                value=reward_amount,
                pubkey_script=reward_script,
            )],
            locktime=0,
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(txid='{self.txid[:16]}...', "
            f"inputs={len(self.inputs)}, outputs={len(self.outputs)})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.txid == other.txid

    def __hash__(self) -> int:
        return hash(self.txid)
