# Byte-level encoding helpers shared by the wire serializers

from .encoding import (
    bytes_to_hex,
    hex_to_bytes,
    int_to_little_endian,
    little_endian_to_int,
    encode_varint,
    decode_varint,
)

__all__ = [
    'bytes_to_hex',
    'hex_to_bytes',
    'int_to_little_endian',
    'little_endian_to_int',
    'encode_varint',
    'decode_varint',
]
