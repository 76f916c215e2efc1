"""Tests for the index store backends."""

import os
import threading

import pytest

from scoreme import ScoreConfig
from scoreme.storage import (
    FileTreeStore,
    SqliteStore,
    StoreUnavailable,
    open_store,
)


class TestStoreContract:
    """Behaviour shared by both backends (runs once per backend)."""

    def test_missing_key(self, store):
        store.ensure_bucket()
        assert store.get("5BAA") is None

    def test_put_then_get(self, store):
        store.ensure_bucket()
        store.put("5BAA", b"blob-1")
        assert store.get("5BAA") == b"blob-1"

    def test_put_replaces(self, store):
        store.ensure_bucket()
        store.put("5BAA", b"old")
        store.put("5BAA", b"new and longer")
        assert store.get("5BAA") == b"new and longer"

    def test_keys_are_independent(self, store):
        store.ensure_bucket()
        store.put("5BAA", b"a")
        store.put("5BAB", b"b")
        assert store.get("5BAA") == b"a"
        assert store.get("5BAB") == b"b"

    def test_binary_safe(self, store):
        store.ensure_bucket()
        blob = bytes(range(256)) * 4
        store.put("0000", blob)
        assert store.get("0000") == blob

    def test_ensure_bucket_is_idempotent(self, store):
        store.ensure_bucket()
        store.put("ABCD", b"x")
        store.ensure_bucket()
        assert store.get("ABCD") == b"x"

    def test_exists(self, store):
        assert not store.exists()
        store.ensure_bucket()
        assert store.exists()

    def test_concurrent_readers(self, store):
        """Readers in several threads all see the committed blob."""
        store.ensure_bucket()
        store.put("FFFF", b"shared")
        results = []

        def read():
            results.append(store.get("FFFF"))

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [b"shared"] * 8


class TestFileTreeStore:
    """Directory-tree specifics."""

    def test_layout(self, tmp_path):
        store = FileTreeStore(str(tmp_path / "data"), split_len=2)
        store.ensure_bucket()
        store.put("5BAA61E4", b"x")
        assert (tmp_path / "data" / "5B" / "AA" / "61" / "E4" / "v").read_bytes() == b"x"

    def test_uneven_split_layout(self, tmp_path):
        store = FileTreeStore(str(tmp_path / "data"), split_len=3)
        store.put("5BAA61E4", b"x")
        assert (tmp_path / "data" / "5BA" / "A61" / "E4" / "v").exists()

    def test_no_temp_files_left(self, tmp_path):
        store = FileTreeStore(str(tmp_path / "data"), split_len=2)
        store.put("5BAA", b"first")
        store.put("5BAA", b"second")
        assert os.listdir(tmp_path / "data" / "5B" / "AA") == ["v"]

    def test_unwritable_root(self, tmp_path):
        """A file where a directory should be surfaces as StoreUnavailable."""
        (tmp_path / "blocker").write_text("not a directory")
        store = FileTreeStore(str(tmp_path / "blocker"), split_len=2)
        with pytest.raises(StoreUnavailable):
            store.put("5BAA", b"x")


class TestSqliteStore:
    """SQLite key-value specifics."""

    def test_invalid_bucket_name(self, tmp_path):
        with pytest.raises(ValueError):
            SqliteStore(str(tmp_path / "db"), bucket="drop table; --")

    def test_custom_bucket(self, tmp_path):
        path = str(tmp_path / "db")
        with SqliteStore(path, bucket="bucket2") as store:
            store.ensure_bucket()
            store.put("5BAA", b"x")
        with SqliteStore(path, bucket="bucket1") as other:
            assert not other.exists()
        with SqliteStore(path, bucket="bucket2") as again:
            assert again.get("5BAA") == b"x"

    def test_missing_bucket_read(self, tmp_path):
        """Reading before ensure_bucket is a store error, not a miss."""
        with SqliteStore(str(tmp_path / "db")) as store:
            with pytest.raises(StoreUnavailable):
                store.get("5BAA")

    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "db")
        with SqliteStore(path) as store:
            store.ensure_bucket()
            store.put("5BAA", b"durable")
        with SqliteStore(path) as store:
            assert store.get("5BAA") == b"durable"


class TestOpenStore:
    """Test backend selection."""

    def test_tree(self, tmp_path):
        store = open_store(ScoreConfig(backend="tree", datadir=str(tmp_path), split_len=3))
        assert isinstance(store, FileTreeStore)
        assert store.split_len == 3

    def test_kv(self, tmp_path):
        store = open_store(ScoreConfig(backend="kv", dbname=str(tmp_path / "db"), bucket="b"))
        assert isinstance(store, SqliteStore)
        assert store.bucket == "b"

    def test_thread_connection_released(self, tmp_path):
        """A thread's connection is closed once the thread has finished."""
        store = SqliteStore(str(tmp_path / "db"))
        store.ensure_bucket()
        store.put("5BAA", b"x")

        for _ in range(20):
            t = threading.Thread(target=store.get, args=("5BAA",))
            t.start()
            t.join()
        assert len(store._connections) < 5
        assert store.get("5BAA") == b"x"
        store.close()
        assert store._connections == []
