"""Point lookups against a built index.

A digest's shard blob is treated as a sorted array of fixed-width
records and searched with a standard lower-bound binary search. Raw
digest bytes compare in the same order as their uppercase hex form, so
no hex conversion is needed on the search path.
"""

import logging
from typing import Optional

from scoreme.config import ScoreConfig
from scoreme.digest import DIGEST_SIZE, MalformedDigest, to_hex
from scoreme.records import CorruptRecord, decode, record_at, record_count
from scoreme.sharding import shard_key
from scoreme.storage import IndexStore

logger = logging.getLogger(__name__)


class NotFound(KeyError):
    """Digest is not in the index (absent shard or no matching record)."""
    pass


def lower_bound(blob: bytes, value: bytes) -> tuple[int, Optional[tuple[bytes, int]]]:
    """Find the first record whose digest is >= value.

    Returns:
        Tuple of (index, decoded record at index), with (n, None) when every
        record is smaller than value

    Raises:
        CorruptRecord: If the blob length is not a whole number of records
            or a visited record fails to decode
    """
    lo, hi = 0, record_count(blob)
    while lo < hi:
        mid = (lo + hi) // 2
        mid_digest, _ = decode(record_at(blob, mid))
        if mid_digest < value:
            lo = mid + 1
        else:
            hi = mid
    if lo == record_count(blob):
        return lo, None
    return lo, decode(record_at(blob, lo))


class LookupEngine:
    """Read-only lookups; safe to share between threads once a build is done."""

    def __init__(self, store: IndexStore, config: ScoreConfig):
        self.store = store
        self.config = config

    def get(self, value: bytes) -> Optional[int]:
        """Return the occurrence count for a digest, or None on a miss.

        Raises:
            CorruptRecord: If the shard blob is damaged
            StoreUnavailable: If the backing store cannot be read
        """
        if len(value) != DIGEST_SIZE:
            raise MalformedDigest(f"Digest must be {DIGEST_SIZE} bytes, got {len(value)}")
        key = shard_key(value, self.config.prefix_len)
        blob = self.store.get(key)
        if blob is None:
            logger.debug("%s: shard %s not found", to_hex(value), key)
            return None

        index, found = lower_bound(blob, value)
        if found is None or found[0] != value:
            return None
        count = found[1]
        if count == 0:
            raise CorruptRecord(f"Zero occurrence count for {to_hex(value)} in shard {key}")
        logger.debug("%s: found at record %d of shard %s (count %d)", to_hex(value), index, key, count)
        return count

    def lookup(self, value: bytes) -> int:
        """Like get, but raises NotFound on a miss."""
        count = self.get(value)
        if count is None:
            raise NotFound(to_hex(value))
        return count

    def contains(self, value: bytes) -> bool:
        return self.get(value) is not None
