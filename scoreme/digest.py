"""Password digests.

Each candidate line is hashed with SHA-1, the same digest the breach
corpus is published in. The canonical text form is 40 uppercase hex
characters.
"""

import binascii
import hashlib
from typing import Union

DIGEST_SIZE = 20
HEX_LENGTH = DIGEST_SIZE * 2

_HEX_CHARS = frozenset("0123456789abcdefABCDEF")


class MalformedDigest(ValueError):
    """Digest text or bytes are not a valid SHA-1 value."""
    pass


def digest(line: Union[bytes, str]) -> bytes:
    """Compute the SHA-1 digest of one password line.

    Strings are UTF-8 encoded first. The bytes are hashed exactly as given,
    so callers are responsible for stripping line terminators.
    """
    if isinstance(line, str):
        line = line.encode("utf-8")
    return hashlib.sha1(line).digest()


def to_hex(value: bytes) -> str:
    """Render a digest in canonical uppercase hex."""
    if len(value) != DIGEST_SIZE:
        raise MalformedDigest(f"Digest must be {DIGEST_SIZE} bytes, got {len(value)}")
    return value.hex().upper()


def from_hex(text: str) -> bytes:
    """Parse 40 hex characters (either case) into a digest.

    Raises:
        MalformedDigest: If text is not exactly 40 hex characters
    """
    if len(text) != HEX_LENGTH or not _HEX_CHARS.issuperset(text):
        raise MalformedDigest(f"Not a {HEX_LENGTH}-character hex digest: {text[:64]!r}")
    try:
        return binascii.unhexlify(text)
    except binascii.Error as e:
        raise MalformedDigest(str(e)) from e


def hex_digest(line: Union[bytes, str]) -> str:
    """Digest a line and return its canonical text form."""
    return to_hex(digest(line))
