"""Batch scoring against the breach index.

Scoring happens in two phases:

1. Classification (not cancellable). Every candidate line is digested
   and given its baseline. Under the "unique" policy a digest starts at
   -1 on first sight and every repeat costs another base point and
   another bonus point. Under the "per_line" policy each line stands on
   its own with a baseline of -point_value.
2. Lookup (cancellable). Each scored unit is looked up once. A hit adds
   point_value to the base (twice that under "per_line", turning the
   -point_value baseline into +point_value) and point_value / count to
   the bonus.

Baselines are applied before the lookup phase starts and each lookup's
contribution is applied in one step under a lock, so running totals
only ever grow during phase 2. The lookup phase runs in a worker thread
that races the configured deadline; if the deadline wins, the totals
reached so far are returned with partial=True.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from scoreme.config import ScoreConfig
from scoreme.digest import digest, to_hex
from scoreme.lookup import LookupEngine
from scoreme.records import CorruptRecord

logger = logging.getLogger(__name__)


@dataclass
class ScoreState:
    """Per-digest score deltas for one scoring run."""
    base: int = -1
    bonus: float = 0.0
    occurrences: int = 1


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of one scoring run."""
    score: int
    bonus: float
    partial: bool
    looked_up: int
    total: int
    corrupt: int = 0
    elapsed_seconds: float = 0.0


def format_result(result: ScoreResult) -> str:
    return f"Score is {result.score} ({result.bonus:.2f})."


def _strip_line(line: Union[bytes, str]) -> Union[bytes, str]:
    """Drop the line terminator (LF or CRLF) but keep other whitespace."""
    if isinstance(line, bytes):
        return line.rstrip(b"\r\n")
    return line.rstrip("\r\n")


def classify(lines: Iterable[Union[bytes, str]], policy: str, point_value: int) -> list[tuple[bytes, ScoreState]]:
    """Digest candidate lines and assign their baseline deltas.

    Returns:
        Ordered list of (digest, state) units to look up. Under "unique"
        there is one unit per distinct digest in first-seen order.
    """
    if policy == "per_line":
        return [
            (digest(_strip_line(line)), ScoreState(base=-point_value))
            for line in lines
        ]

    states: dict[bytes, ScoreState] = {}
    for line in lines:
        key = digest(_strip_line(line))
        state = states.get(key)
        if state is None:
            states[key] = ScoreState()
        else:
            # Resubmitting a password is penalized, not ignored
            state.base -= 1
            state.bonus -= 1
            state.occurrences += 1
    return list(states.items())


class _Totals:
    """Running totals shared between the caller and the lookup worker."""

    def __init__(self, score: int, bonus: float):
        self.score = score
        self.bonus = bonus
        self.looked_up = 0
        self.corrupt = 0
        self.frozen = False
        self.lock = threading.Lock()

    def apply(self, score: int, bonus: float, corrupt: bool = False) -> bool:
        """Add one unit's contribution; refused once a snapshot has been taken."""
        with self.lock:
            if self.frozen:
                return False
            self.score += score
            self.bonus += bonus
            self.looked_up += 1
            if corrupt:
                self.corrupt += 1
            return True

    def snapshot(self) -> tuple[int, float, int, int]:
        with self.lock:
            self.frozen = True
            return self.score, self.bonus, self.looked_up, self.corrupt


class Scorer:
    """Score candidate batches against one index."""

    def __init__(self, engine: LookupEngine, config: ScoreConfig):
        self.engine = engine
        self.config = config

    def _hit_delta(self, count: int) -> tuple[int, float]:
        point = self.config.point_value
        if self.config.policy == "per_line":
            return 2 * point, point / count
        return point, point / count

    def _lookup_all(self, units: list[tuple[bytes, ScoreState]], totals: _Totals,
                    cancel: threading.Event) -> None:
        for value, _state in units:
            if cancel.is_set():
                return
            try:
                count = self.engine.get(value)
            except CorruptRecord as e:
                logger.warning("Corrupt shard data for %s, counting as a miss: %s", to_hex(value), e)
                applied = totals.apply(0, 0.0, corrupt=True)
            else:
                if count is None:
                    applied = totals.apply(0, 0.0)
                else:
                    base, bonus = self._hit_delta(count)
                    applied = totals.apply(base, bonus)
            if not applied:
                return

    def score(self, lines: Iterable[Union[bytes, str]], deadline: Optional[float] = None) -> ScoreResult:
        """Score a batch of raw password lines.

        Args:
            lines: Candidate passwords, one per item (terminators are stripped)
            deadline: Seconds allowed for the lookup phase; defaults to the config

        Returns:
            ScoreResult with partial=True if the deadline elapsed first

        Raises:
            StoreUnavailable: If the index cannot be read
        """
        timeout = self.config.deadline_seconds if deadline is None else deadline
        started = time.monotonic()

        units = classify(lines, self.config.policy, self.config.point_value)
        totals = _Totals(
            score=sum(state.base for _, state in units),
            bonus=sum(state.bonus for _, state in units),
        )

        done = threading.Event()
        cancel = threading.Event()
        # Single-assignment slot for an error raised inside the worker
        failure: list[BaseException] = []

        def run() -> None:
            try:
                self._lookup_all(units, totals, cancel)
            except BaseException as e:  # re-raised in the calling thread
                failure.append(e)
            finally:
                done.set()

        worker = threading.Thread(target=run, name="scoreme-lookup", daemon=True)
        worker.start()

        finished = done.wait(timeout)
        if finished:
            # Let the thread exit so per-thread store resources are released
            worker.join()
        else:
            cancel.set()
        score, bonus, looked_up, corrupt = totals.snapshot()

        if finished and failure:
            raise failure[0]

        partial = not finished
        if partial:
            logger.warning(
                "Timeout (%ss): looked up %d of %d before the deadline",
                timeout, looked_up, len(units),
            )

        return ScoreResult(
            score=score,
            bonus=bonus,
            partial=partial,
            looked_up=looked_up,
            total=len(units),
            corrupt=corrupt,
            elapsed_seconds=time.monotonic() - started,
        )
