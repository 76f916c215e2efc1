"""Fixed-width binary records for shard blobs.

Layout of one record (RECORD_WIDTH = 42 bytes):

    offset  0..19   raw SHA-1 digest
    offset 20       b":" separator
    offset 21..40   occurrence count, ASCII decimal, zero-padded
    offset 41       b"\\n" terminator

Records for a shard are concatenated in digest order, so a blob of N
records is exactly N * RECORD_WIDTH bytes and can be binary-searched
without a separate index. Changing any of these constants invalidates
every previously built shard.
"""

from typing import Iterator, Tuple

from scoreme.digest import DIGEST_SIZE, MalformedDigest

SEPARATOR = b":"
TERMINATOR = b"\n"
COUNT_WIDTH = 20
RECORD_WIDTH = DIGEST_SIZE + len(SEPARATOR) + COUNT_WIDTH + len(TERMINATOR)

SEPARATOR_OFFSET = DIGEST_SIZE
COUNT_OFFSET = SEPARATOR_OFFSET + 1
TERMINATOR_OFFSET = RECORD_WIDTH - 1

MAX_COUNT = 10 ** COUNT_WIDTH - 1


class InvalidCount(ValueError):
    """Occurrence count cannot be represented in a record."""
    pass


class CorruptRecord(ValueError):
    """Stored bytes do not form a valid record."""
    pass


def encode(value: bytes, count: int) -> bytes:
    """Pack one corpus entry into RECORD_WIDTH bytes.

    Raises:
        MalformedDigest: If value is not a 20-byte digest
        InvalidCount: If count is not a positive int that fits the field
    """
    if len(value) != DIGEST_SIZE:
        raise MalformedDigest(f"Digest must be {DIGEST_SIZE} bytes, got {len(value)}")
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidCount(f"Count must be an integer, got {count!r}")
    if count <= 0 or count > MAX_COUNT:
        raise InvalidCount(f"Count {count} outside 1..{MAX_COUNT}")
    field = str(count).zfill(COUNT_WIDTH).encode("ascii")
    return bytes(value) + SEPARATOR + field + TERMINATOR


def decode(record: bytes) -> Tuple[bytes, int]:
    """Unpack one record into (digest, count).

    Raises:
        CorruptRecord: On wrong length, missing separator or terminator,
            or a count field that is not a non-negative decimal integer
    """
    if len(record) != RECORD_WIDTH:
        raise CorruptRecord(f"Record must be {RECORD_WIDTH} bytes, got {len(record)}")
    if record[SEPARATOR_OFFSET:COUNT_OFFSET] != SEPARATOR:
        raise CorruptRecord(f"Missing separator at offset {SEPARATOR_OFFSET}")
    if record[TERMINATOR_OFFSET:] != TERMINATOR:
        raise CorruptRecord(f"Missing terminator at offset {TERMINATOR_OFFSET}")
    field = bytes(record[COUNT_OFFSET:TERMINATOR_OFFSET])
    # int() would also accept signs, underscores and surrounding spaces
    if not field.isdigit():
        raise CorruptRecord(f"Count field is not a decimal number: {field!r}")
    return bytes(record[:DIGEST_SIZE]), int(field)


def record_at(blob: bytes, index: int) -> bytes:
    """Slice the index-th record out of a shard blob."""
    start = index * RECORD_WIDTH
    return blob[start:start + RECORD_WIDTH]


def record_count(blob: bytes) -> int:
    """Number of whole records in a blob.

    Raises:
        CorruptRecord: If the blob length is not a multiple of RECORD_WIDTH
    """
    count, remainder = divmod(len(blob), RECORD_WIDTH)
    if remainder:
        raise CorruptRecord(
            f"Shard blob of {len(blob)} bytes is not a multiple of {RECORD_WIDTH}"
        )
    return count


def iter_records(blob: bytes) -> Iterator[Tuple[bytes, int]]:
    """Decode every record of a shard blob in stored order."""
    for i in range(record_count(blob)):
        yield decode(record_at(blob, i))
