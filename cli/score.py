"""Scoring CLI flows.

Reads candidate passwords (one per line, raw bytes) from a file or
standard input and prints the score line.
"""

import sys
from typing import BinaryIO, Optional

from scoreme import ScoreConfig, open_store
from scoreme.auth import OperatorAuthError, require_operator
from scoreme.lookup import LookupEngine
from scoreme.scorer import ScoreResult, Scorer, format_result
from scoreme.siem import log_siem_event
from scoreme.storage import StorageError

from breach_check import check_and_warn


def read_candidates(stream: BinaryIO) -> list[bytes]:
    """Read raw candidate lines, keeping every byte except the terminator."""
    return [line.rstrip(b"\r\n") for line in stream]


def score_stream(config: ScoreConfig, stream: BinaryIO, source: str = "stdin") -> ScoreResult:
    """Score every line of stream against the configured index."""
    lines = read_candidates(stream)
    store = open_store(config)
    result = None
    try:
        result = Scorer(LookupEngine(store, config), config).score(lines)
    finally:
        # After a timeout the lookup worker may still be mid-query on the
        # store; its connection is released when that thread exits.
        if result is None or not result.partial:
            store.close()

    log_siem_event("score_run", "PARTIAL" if result.partial else "SUCCESS", {
        "source": source,
        "policy": config.policy,
        "candidates": result.total,
        "looked_up": result.looked_up,
        "corrupt": result.corrupt,
        "score": result.score,
        "bonus": round(result.bonus, 4),
        "elapsed_seconds": round(result.elapsed_seconds, 3),
    })
    return result


def score_flow(config: ScoreConfig, filename: Optional[str] = None, nocheat: bool = False) -> int:
    """Score a password file (or stdin) and print the result.

    Returns:
        Process exit status
    """
    if nocheat:
        try:
            require_operator()
        except OperatorAuthError as e:
            print(e)
            return 1

    with open_store(config) as store:
        if not store.exists():
            print(f"{config.location} doesn't exist; build the index first.")
            return 1

    try:
        if filename:
            with open(filename, "rb") as f:
                result = score_stream(config, f, source=filename)
        else:
            result = score_stream(config, sys.stdin.buffer)
    except OSError as e:
        print(e)
        return 1
    except StorageError as e:
        print(f"Scoring failed: {e}")
        return 1

    if result.partial:
        print(f"Timeout ({config.deadline_seconds:g}s)")
    print(format_result(result))
    return 0


def check_flow(config: ScoreConfig, password: str) -> int:
    """Check one password against the index and print a warning."""
    with open_store(config) as store:
        is_safe, message = check_and_warn(password, LookupEngine(store, config))

    print(f"\nResult: {message}")
    if is_safe:
        print("Status: SAFE")
        return 0
    print("Status: COMPROMISED - Choose a different password!")
    return 2
