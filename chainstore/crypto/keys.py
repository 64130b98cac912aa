"""
secp256k1 keys and transaction signatures
=========================================

Transactions carry ECDSA signatures in their input signature scripts. The
transaction serializer verifies them before a transaction is written to
storage, so this module provides just enough key handling for that round
trip:

- **PrivateKey**: a 32-byte secret scalar. Signs the double SHA-256 of a
  message and returns a DER-encoded signature. Signing is deterministic
  (RFC 6979), so the same key and message always give the same signature.

- **PublicKey**: a curve point, serialized as 33 compressed bytes. Verifies
  DER signatures and never raises on a bad one.
"""

import hashlib

import ecdsa
from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.der import UnexpectedDER
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigencode_der, sigdecode_der

from .hash import double_sha256


# =============================================================================
# PublicKey
# =============================================================================

class PublicKey:
    """A secp256k1 public key wrapping an ``ecdsa.VerifyingKey``."""

    def __init__(self, key: VerifyingKey):
        self._key = key

    def verify(self, message: bytes, signature: bytes) -> bool:
        """
        Check a DER signature over the double SHA-256 of ``message``.

        Returns:
            True if the signature is valid, False for any invalid or
            undecodable signature.
        """
        try:
            return self._key.verify_digest(
                signature, double_sha256(message), sigdecode=sigdecode_der
            )
        except (ecdsa.BadSignatureError, ecdsa.BadDigestError,
                UnexpectedDER):
            return False

    def to_bytes(self, compressed: bool = True) -> bytes:
        """Serialize as 33 compressed or 65 uncompressed bytes."""
        return self._key.to_string("compressed" if compressed else "uncompressed")

    def to_hex(self, compressed: bool = True) -> str:
        return self.to_bytes(compressed=compressed).hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PublicKey':
        """
        Load a compressed (33-byte) or uncompressed (65-byte) public key.

        Raises:
            ValueError: If the bytes are not a valid point encoding.
        """
        if len(data) not in (33, 65):
            raise ValueError(
                f"Invalid public key length: expected 33 or 65 bytes, "
                f"got {len(data)}"
            )
        try:
            key = VerifyingKey.from_string(data, curve=SECP256k1)
        except MalformedPointError as e:
            raise ValueError(f"Invalid public key: {e}") from e
        return cls(key)

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


# =============================================================================
# PrivateKey
# =============================================================================

class PrivateKey:
    """A secp256k1 private key wrapping an ``ecdsa.SigningKey``."""

    def __init__(self, key_bytes: bytes = None):
        """
        Args:
            key_bytes: Optional 32-byte secret. A fresh random key is
                generated when omitted.

        Raises:
            ValueError: If key_bytes is not exactly 32 bytes.
        """
        if key_bytes is not None:
            if len(key_bytes) != 32:
                raise ValueError(
                    f"Private key must be exactly 32 bytes, got {len(key_bytes)}"
                )
            self._key = SigningKey.from_string(key_bytes, curve=SECP256k1)
        else:
            self._key = SigningKey.generate(curve=SECP256k1)
        self._public_key = None

    @property
    def public_key(self) -> PublicKey:
        if self._public_key is None:
            self._public_key = PublicKey(self._key.get_verifying_key())
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        """
        Sign the double SHA-256 of ``message``.

        Returns:
            The DER-encoded ECDSA signature.
        """
        return self._key.sign_digest_deterministic(
            double_sha256(message),
            hashfunc=hashlib.sha256,
            sigencode=sigencode_der,
        )

    def to_bytes(self) -> bytes:
        return self._key.to_string()

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> 'PrivateKey':
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def generate(cls) -> 'PrivateKey':
        return cls()

    def __repr__(self) -> str:
        hex_str = self.to_hex()
        return f"PrivateKey({hex_str[:8]}...{hex_str[-8:]})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())
