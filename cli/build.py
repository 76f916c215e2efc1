"""Index build CLI flow."""

import os

from scoreme import ScoreConfig, open_store
from scoreme.builder import CorpusFormatError, build_from_file
from scoreme.storage import StorageError

from cli.prompts import confirm_action


def build_index_flow(config: ScoreConfig, corpus: str, assume_yes: bool = False) -> int:
    """Build the breach index from a sorted corpus file.

    Building into an index that already exists appends to its shards
    rather than replacing them, so the operator has to confirm that.

    Returns:
        Process exit status
    """
    if not os.path.exists(corpus):
        print(f"Corpus file not found: {corpus}")
        return 1

    with open_store(config) as store:
        if store.exists() and not assume_yes:
            print(f"{config.location} already exists; building again appends every shard.")
            if not confirm_action("Append this corpus to the existing index?"):
                print("Build canceled.")
                return 1

        print(f"Update {config.location}")
        try:
            stats = build_from_file(corpus, store, config)
        except CorpusFormatError as e:
            print(f"Build aborted at {corpus}:{e.line_number}: {e.reason}")
            print("Shards written before this line remain in the index.")
            return 1
        except StorageError as e:
            print(f"Build failed: {e}")
            return 1

    print(f"{stats.entries} hashes indexed into {stats.shards_flushed} shard writes "
          f"in {stats.elapsed_seconds:.2f}s")
    return 0
