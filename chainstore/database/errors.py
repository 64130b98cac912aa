"""
Errors raised while converting blocks to and from their stored form.

Every failure is an exception the caller can catch and recover from; the
message names the problem and, where known, the transaction it concerns.
"""


class CodecError(Exception):
    """Base class for block and transaction codec failures."""
    pass


class ItemEncodeError(CodecError):
    """
    Raised when one transaction cannot be converted to its stored form,
    e.g. a malformed field, an unsupported transaction type or a signature
    that does not verify.
    """
    pass


class ItemDecodeError(CodecError):
    """
    Raised when one stored transaction cannot be rebuilt, e.g. a missing
    field, undecodable bytes or a txid that does not match the content.
    """
    pass


class RepresentationError(CodecError):
    """
    Raised when a stored block is not shaped like one: the header is not a
    mapping or the ``transactions`` field is absent or not a list.
    """
    pass


class AggregationError(CodecError):
    """
    Carries several item failures at once.

    Not raised by the current codecs, which stop at the first failure and
    raise it unchanged.
    """

    def __init__(self, errors: list):
        self.errors = list(errors)
        super().__init__(
            f"{len(self.errors)} item(s) failed: "
            + "; ".join(str(e) for e in self.errors)
        )
