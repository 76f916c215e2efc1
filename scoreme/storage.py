"""Index storage backends.

A breach index is a mapping from shard key to shard blob. Two backends
implement the same small capability (get / put / ensure_bucket):

- FileTreeStore: one file per shard under nested directories derived
  from the shard key, e.g. data/5B/AA/61/E4/v
- SqliteStore: a single embedded SQLite file with one ordered
  key-value table (the "bucket") keyed by the shard key bytes

Both guarantee that a reader never sees a half-written shard blob.
"""

import os
import re
import sqlite3
import sys
import tempfile
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Optional

from scoreme.config import ScoreConfig
from scoreme.sharding import split_key


# Name of the shard file at the bottom of each FileTreeStore directory chain
SHARD_FILE_NAME = "v"

# Bucket names become SQLite table names, so keep them to plain identifiers
_BUCKET_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreUnavailable(StorageError):
    """Backing store cannot be opened, read or written."""
    pass


class IndexStore(ABC):
    """Shard key -> blob mapping shared by the builder and the lookup engine."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the blob stored for key, or None if the shard is absent."""

    @abstractmethod
    def put(self, key: str, blob: bytes) -> None:
        """Replace the blob stored for key atomically."""

    @abstractmethod
    def ensure_bucket(self) -> None:
        """One-time initialization of the backing namespace."""

    @abstractmethod
    def exists(self) -> bool:
        """Whether the backing store has been created."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FileTreeStore(IndexStore):
    """Shards stored as files in a directory tree.

    The shard key is split into split_len-character path segments; the
    blob lives in a file named "v" at the end of that path. Writes go to
    a temp file in the same directory which is fsynced and then renamed
    over the old blob.
    """

    def __init__(self, root: str, split_len: int):
        self.root = root
        self.split_len = split_len

    def shard_path(self, key: str) -> str:
        return os.path.join(self.root, *split_key(key, self.split_len), SHARD_FILE_NAME)

    def get(self, key: str) -> Optional[bytes]:
        path = self.shard_path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreUnavailable(f"Failed to read {path}: {e}") from e

    def put(self, key: str, blob: bytes) -> None:
        path = self.shard_path(key)
        directory = os.path.dirname(path)
        tmp_path = None
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".v-", dir=directory)
            with os.fdopen(fd, "wb") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise StoreUnavailable(f"Failed to write {path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def ensure_bucket(self) -> None:
        try:
            if sys.platform != "win32":
                os.makedirs(self.root, mode=0o755, exist_ok=True)
            else:
                os.makedirs(self.root, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Failed to create {self.root}: {e}") from e

    def exists(self) -> bool:
        return os.path.isdir(self.root)


class _ConnectionHolder:
    """Per-thread wrapper so a connection can be closed when its thread ends."""
    __slots__ = ("conn", "__weakref__")

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn


def _release_connection(conn: sqlite3.Connection, connections: list, lock: threading.Lock) -> None:
    with lock:
        if conn in connections:
            connections.remove(conn)
    conn.close()


class SqliteStore(IndexStore):
    """Shards stored in one SQLite table used as an ordered key-value bucket.

    The table is WITHOUT ROWID with the key as primary key, so rows are
    kept in key order just like a B+tree KV store. Each thread gets its own
    connection; every put is a single committed transaction, and WAL mode
    lets readers keep reading committed shards while the builder writes.
    """

    def __init__(self, path: str, bucket: str = "bucket1"):
        if not _BUCKET_NAME_RE.match(bucket):
            raise ValueError(f"Invalid bucket name {bucket!r}")
        self.path = path
        self.bucket = bucket
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        holder = getattr(self._local, "holder", None)
        if holder is None:
            try:
                # Only the owning thread queries it; close() may run elsewhere
                conn = sqlite3.connect(self.path, timeout=30, check_same_thread=False)
                conn.execute("PRAGMA journal_mode=WAL")
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to open {self.path}: {e}") from e
            holder = _ConnectionHolder(conn)
            self._local.holder = holder
            with self._lock:
                self._connections.append(conn)
            # The holder dies with its thread's local storage
            weakref.finalize(holder, _release_connection, conn, self._connections, self._lock)
        return holder.conn

    def get(self, key: str) -> Optional[bytes]:
        try:
            row = self._connect().execute(
                f"SELECT value FROM {self.bucket} WHERE key = ?",
                (key.encode("ascii"),),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to read shard {key} from {self.path}: {e}") from e
        return bytes(row[0]) if row is not None else None

    def put(self, key: str, blob: bytes) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO {self.bucket} (key, value) VALUES (?, ?)",
                    (key.encode("ascii"), sqlite3.Binary(blob)),
                )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to write shard {key} to {self.path}: {e}") from e

    def ensure_bucket(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {self.bucket} ("
                    "key BLOB PRIMARY KEY, value BLOB NOT NULL"
                    ") WITHOUT ROWID"
                )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to create bucket {self.bucket}: {e}") from e

    def exists(self) -> bool:
        if not os.path.exists(self.path):
            return False
        try:
            row = self._connect().execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (self.bucket,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to inspect {self.path}: {e}") from e
        return row is not None

    def close(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


def open_store(config: ScoreConfig) -> IndexStore:
    """Create the store selected by config.backend (not yet initialized)."""
    if config.backend == "tree":
        return FileTreeStore(config.datadir, config.split_len)
    return SqliteStore(config.dbname, config.bucket)
