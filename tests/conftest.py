"""Shared fixtures: small corpora and indexes built in tmp_path."""

import os
import tempfile

# Keep log files out of the working tree; must run before scoreme is imported
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="scoreme-logs-"))

import pytest

from scoreme import ScoreConfig
from scoreme.builder import IndexBuilder
from scoreme.digest import hex_digest
from scoreme.storage import FileTreeStore, SqliteStore


def make_corpus(entries: dict) -> list[str]:
    """Turn {password: count} into sorted "HEX:COUNT" corpus lines."""
    return sorted(f"{hex_digest(pw)}:{count}" for pw, count in entries.items())


@pytest.fixture
def tree_config(tmp_path):
    return ScoreConfig(
        backend="tree",
        datadir=str(tmp_path / "data"),
        prefix_len=4,
        split_len=2,
        batch_size=10,
    )


@pytest.fixture
def kv_config(tmp_path):
    return ScoreConfig(
        backend="kv",
        dbname=str(tmp_path / "index.db"),
        prefix_len=4,
        batch_size=10,
    )


@pytest.fixture(params=["tree", "kv"])
def config(request, tree_config, kv_config):
    """Run the test once per storage backend."""
    return tree_config if request.param == "tree" else kv_config


@pytest.fixture
def store(config):
    if config.backend == "tree":
        s = FileTreeStore(config.datadir, config.split_len)
    else:
        s = SqliteStore(config.dbname, config.bucket)
    yield s
    s.close()


@pytest.fixture
def corpus_entries():
    """Passwords with their breach-corpus occurrence counts."""
    entries = {"password": 3_000_000, "hunter2": 2, "letmein": 1, "correct horse": 7}
    entries.update({f"generated-{i}": i + 1 for i in range(200)})
    return entries


@pytest.fixture
def built_store(store, config, corpus_entries):
    """Store with corpus_entries indexed."""
    IndexBuilder(store, config).build(make_corpus(corpus_entries))
    return store


@pytest.fixture
def corpus_file(tmp_path, corpus_entries):
    path = tmp_path / "passwd"
    path.write_text("\n".join(make_corpus(corpus_entries)) + "\n", encoding="ascii")
    return str(path)
