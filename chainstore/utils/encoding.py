"""
Byte-level encoding utilities.

Both wire formats in this package (block headers and transactions) are built
from the same three primitives:

- Hex/bytes conversions, used wherever bytes cross into a persistable
  representation (which only carries strings and integers).
- Little-endian fixed-width integers, used for every numeric wire field.
- Variable-length integers (varints), used as count and length prefixes.

Every decoder here is strict: short input raises ``ValueError`` rather than
silently returning a truncated value, so callers can turn a malformed item
into a typed codec error.
"""


# ---------------------------------------------------------------------------
# Hex / bytes conversions
# ---------------------------------------------------------------------------

def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to a lowercase hex string.

    Example:
        >>> bytes_to_hex(b'\\xab\\xcd')
        'abcd'
    """
    return data.hex()


def hex_to_bytes(hex_string: str) -> bytes:
    """
    Convert a hex string to bytes.

    Args:
        hex_string: Hexadecimal string (with or without '0x' prefix).

    Returns:
        The decoded bytes.

    Raises:
        ValueError: If the string is not valid hex.
        TypeError: If ``hex_string`` is not a string.
    """
    if hex_string.startswith('0x') or hex_string.startswith('0X'):
        hex_string = hex_string[2:]
    return bytes.fromhex(hex_string)


# ---------------------------------------------------------------------------
# Fixed-width integers
# ---------------------------------------------------------------------------

def int_to_little_endian(value: int, length: int) -> bytes:
    """
    Encode a non-negative integer as ``length`` little-endian bytes.

    Raises:
        OverflowError: If the value does not fit (or is negative).
    """
    return value.to_bytes(length, byteorder='little')


def little_endian_to_int(data: bytes) -> int:
    """Decode little-endian bytes to an integer."""
    return int.from_bytes(data, byteorder='little')


def read_little_endian(data: bytes, offset: int, length: int) -> int:
    """
    Read a ``length``-byte little-endian integer at ``offset``.

    Unlike slicing followed by :func:`little_endian_to_int`, this refuses to
    read past the end of the buffer.

    Raises:
        ValueError: If fewer than ``length`` bytes remain.
    """
    if offset + length > len(data):
        raise ValueError(
            f"Not enough data: need {length} bytes at offset {offset}, "
            f"have {max(0, len(data) - offset)}"
        )
    return little_endian_to_int(data[offset:offset + length])


# ---------------------------------------------------------------------------
# Variable-length integer (varint) encoding
# ---------------------------------------------------------------------------

def encode_varint(value: int) -> bytes:
    """
    Encode an integer in the compact variable-length format.

    Encoding rules:
    - 0x00-0xfc:          1 byte  (the value itself)
    - 0xfd-0xffff:        3 bytes (0xfd prefix + 2-byte little-endian)
    - 0x10000-0xffffffff: 5 bytes (0xfe prefix + 4-byte little-endian)
    - Larger:             9 bytes (0xff prefix + 8-byte little-endian)

    Raises:
        ValueError: If value is negative.

    Example:
        >>> encode_varint(252).hex()
        'fc'
        >>> encode_varint(255).hex()
        'fdff00'
    """
    if value < 0:
        raise ValueError(f"Varint value must be non-negative, got {value}")

    if value < 0xfd:
        return bytes([value])
    elif value <= 0xffff:
        return b'\xfd' + int_to_little_endian(value, 2)
    elif value <= 0xffffffff:
        return b'\xfe' + int_to_little_endian(value, 4)
    else:
        return b'\xff' + int_to_little_endian(value, 8)


def decode_varint(data: bytes, offset: int = 0) -> tuple:
    """
    Decode a variable-length integer from a byte stream.

    Returns:
        A tuple of (decoded_value, number_of_bytes_consumed).

    Raises:
        ValueError: If there are not enough bytes to decode.

    Example:
        >>> decode_varint(b'\\xfd\\xff\\x00')
        (255, 3)
    """
    if offset >= len(data):
        raise ValueError("Not enough data to decode varint")

    first_byte = data[offset]

    if first_byte < 0xfd:
        return (first_byte, 1)
    elif first_byte == 0xfd:
        return (read_little_endian(data, offset + 1, 2), 3)
    elif first_byte == 0xfe:
        return (read_little_endian(data, offset + 1, 4), 5)
    else:  # 0xff
        return (read_little_endian(data, offset + 1, 8), 9)
