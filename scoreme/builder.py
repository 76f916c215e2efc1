"""Index builder.

Streams a breach corpus of "<40 hex digest>:<count>" lines into an
IndexStore. Consecutive entries sharing a shard key are packed into an
in-memory buffer and written with one put when the input moves on to
the next shard key (or ends).

Precondition: the corpus is sorted ascending by digest. Entries with the
same prefix are then contiguous and already in digest order, so every
shard blob comes out sorted without an explicit sort. The builder does
not check this; an unsorted corpus silently breaks lookups.

Re-running the builder against an existing store appends to the shard
blobs that are already there instead of replacing them.
"""

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from scoreme.config import ScoreConfig
from scoreme.digest import MalformedDigest, from_hex
from scoreme.records import InvalidCount, encode
from scoreme.sharding import shard_key
from scoreme.siem import log_siem_event
from scoreme.storage import IndexStore

logger = logging.getLogger(__name__)


class CorpusFormatError(ValueError):
    """A corpus line could not be parsed; aborts the build."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"line {line_number}: {reason}")


@dataclass
class BuildStats:
    """Summary of one build run."""
    entries: int = 0
    shards_flushed: int = 0
    elapsed_seconds: float = 0.0


def parse_corpus_line(line: str, line_number: int) -> tuple[bytes, int]:
    """Parse one "<hex digest>:<count>" corpus line.

    Raises:
        CorpusFormatError: If the separator is missing or either field is invalid
    """
    hex_part, sep, count_part = line.partition(":")
    if not sep:
        raise CorpusFormatError(line_number, f'No ":" in value "{line[:80]}"')
    try:
        value = from_hex(hex_part.strip())
    except MalformedDigest as e:
        raise CorpusFormatError(line_number, str(e)) from e
    count_part = count_part.strip()
    if not count_part.isascii() or not count_part.isdigit():
        raise CorpusFormatError(line_number, f"Unparsable occurrence count {count_part!r}")
    return value, int(count_part)


class IndexBuilder:
    """Single-writer builder; never run two against the same store."""

    def __init__(self, store: IndexStore, config: ScoreConfig):
        self.store = store
        self.config = config
        self._current_key: Optional[str] = None
        self._buffer = bytearray()
        self._stats = BuildStats()

    def _flush(self) -> None:
        if self._current_key is None or not self._buffer:
            return
        existing = self.store.get(self._current_key) or b""
        self.store.put(self._current_key, existing + bytes(self._buffer))
        logger.debug(
            "Flushed shard %s (%d new bytes, %d total)",
            self._current_key, len(self._buffer), len(existing) + len(self._buffer),
        )
        self._stats.shards_flushed += 1
        self._buffer = bytearray()

    def add(self, value: bytes, count: int, line_number: int = 0) -> None:
        """Append one corpus entry, flushing the previous shard on key change."""
        key = shard_key(value, self.config.prefix_len)
        try:
            packed = encode(value, count)
        except InvalidCount as e:
            raise CorpusFormatError(line_number, str(e)) from e
        if key != self._current_key:
            self._flush()
            self._current_key = key
        self._buffer += packed
        self._stats.entries += 1

    def build(self, lines: Iterable[Union[str, bytes]]) -> BuildStats:
        """Index every corpus line and flush the final shard.

        On a malformed line the shards flushed so far stay in the store and
        the partially accumulated shard is discarded.
        """
        self.store.ensure_bucket()
        self._stats = BuildStats()
        self._current_key = None
        self._buffer = bytearray()

        batch_size = self.config.batch_size
        started = batch_start = time.monotonic()

        for line_number, raw in enumerate(lines, start=1):
            if isinstance(raw, bytes):
                try:
                    raw = raw.decode("ascii")
                except UnicodeDecodeError as e:
                    raise CorpusFormatError(line_number, f"Non-ASCII corpus line: {e}") from e
            line = raw.strip()
            if not line:
                continue

            value, count = parse_corpus_line(line, line_number)
            self.add(value, count, line_number)

            if self._stats.entries % batch_size == 0:
                now = time.monotonic()
                logger.info("%d hashes indexed in %.3fs", batch_size, now - batch_start)
                batch_start = now

        self._flush()
        self._current_key = None
        self._stats.elapsed_seconds = time.monotonic() - started
        return self._stats


def build_from_file(path: str, store: IndexStore, config: ScoreConfig) -> BuildStats:
    """Build (or extend) the index in store from a corpus file on disk."""
    logger.info("Updating index at %s from %s", config.location, path)
    details = {
        "corpus": path,
        "backend": config.backend,
        "location": config.location,
        "prefix_len": config.prefix_len,
        "split_len": config.split_len,
    }
    try:
        with open(path, "rb") as f:
            stats = IndexBuilder(store, config).build(f)
    except CorpusFormatError as e:
        log_siem_event("index_build", "FAILURE", {**details, "line": e.line_number, "error": e.reason})
        raise

    logger.info(
        "Indexed %d entries into %d shard writes in %.2fs",
        stats.entries, stats.shards_flushed, stats.elapsed_seconds,
    )
    log_siem_event("index_build", "SUCCESS", {
        **details,
        "entries": stats.entries,
        "shards_flushed": stats.shards_flushed,
        "elapsed_seconds": round(stats.elapsed_seconds, 3),
    })
    return stats
