"""Shard keys.

A shard key is the first prefix_len hex characters of a digest. The
filesystem backend further cuts the key into split_len-sized path
segments to bound the fan-out of each directory level; that split is a
storage detail and never changes which shard a digest belongs to.
"""

from typing import Union

from scoreme.config import MAX_PREFIX_LEN
from scoreme.digest import DIGEST_SIZE, to_hex


def shard_key(value: Union[bytes, str], prefix_len: int) -> str:
    """Return the shard key for a digest (raw bytes or hex text)."""
    if not 1 <= prefix_len <= MAX_PREFIX_LEN:
        raise ValueError(f"prefix_len must be between 1 and {MAX_PREFIX_LEN}")
    if isinstance(value, (bytes, bytearray)):
        text = to_hex(bytes(value)) if len(value) == DIGEST_SIZE else value.decode("ascii")
    else:
        text = value
    return text[:prefix_len].upper()


def split_key(key: str, split_len: int) -> list[str]:
    """Cut a key into successive split_len slices; the last may be shorter.

    >>> split_key("5BAA61E4", 3)
    ['5BA', 'A61', 'E4']
    """
    if split_len < 1:
        raise ValueError("split_len must be at least 1")
    return [key[i:i + split_len] for i in range(0, len(key), split_len)]
