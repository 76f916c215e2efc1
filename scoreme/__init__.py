"""Breach-index scoring engine.

Provides the components for building and querying a prefix-sharded
breach-password index:
- config: Environment defaults and the immutable ScoreConfig
- digest: SHA-1 digests and their hex form
- records: Fixed-width binary shard records
- sharding: Shard keys and path segments
- storage: Filesystem-tree and SQLite index stores
- builder: Corpus -> index builder
- lookup: Binary-search lookups
- scorer: Deadline-bounded batch scoring
- siem: Logging and JSON audit events
- auth: Operator password gate
"""

from scoreme.config import ScoreConfig

from scoreme.digest import (
    MalformedDigest,
    digest,
    from_hex,
    hex_digest,
    to_hex,
)

from scoreme.records import (
    RECORD_WIDTH,
    CorruptRecord,
    InvalidCount,
    decode,
    encode,
    iter_records,
)

from scoreme.sharding import shard_key, split_key

from scoreme.storage import (
    FileTreeStore,
    IndexStore,
    SqliteStore,
    StorageError,
    StoreUnavailable,
    open_store,
)

from scoreme.builder import (
    BuildStats,
    CorpusFormatError,
    IndexBuilder,
    build_from_file,
)

from scoreme.lookup import LookupEngine, NotFound

from scoreme.scorer import (
    ScoreResult,
    ScoreState,
    Scorer,
    format_result,
)

from scoreme.siem import (
    configure_logging,
    get_siem_events,
    log_siem_event,
)

from scoreme.auth import (
    OperatorAuthError,
    require_operator,
    set_operator_password,
    verify_operator_password,
)

__version__ = "1.0.0"
