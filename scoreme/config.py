"""Centralized configuration constants.

All configurable values in one place for easy maintenance.
Every setting can be overridden via environment variables; the values
that shape an index build or a scoring run are bundled into an immutable
ScoreConfig that is constructed once and handed to each component.
"""

import os
from dataclasses import dataclass, replace

# Base directories
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Index location
BACKEND = os.environ.get("SCOREME_BACKEND", "tree")
DATA_DIR = os.environ.get("SCOREME_DATADIR", "data")
DB_NAME = os.environ.get("SCOREME_DBNAME", "db")
BUCKET_NAME = os.environ.get("SCOREME_BUCKET", "bucket1")

# Index layout - baked into the index at build time.
# A reader configured with a different prefix or split length will not
# resolve any keys; nothing checks this automatically.
PREFIX_LEN = int(os.environ.get("SCOREME_PREFIX_LEN", "8"))
SPLIT_LEN = int(os.environ.get("SCOREME_SPLIT_LEN", "2"))

# Scoring rules
POINT_VALUE = int(os.environ.get("SCOREME_POINT_VALUE", "1"))
DEADLINE_SECONDS = float(os.environ.get("SCOREME_TIMEOUT", "600"))  # 10 minutes
SCORING_POLICY = os.environ.get("SCOREME_POLICY", "unique")

# Build progress is reported every BATCH_SIZE corpus entries
BATCH_SIZE = int(os.environ.get("SCOREME_BATCH_SIZE", "100000"))

# Logging
LOG_DIR = os.environ.get("LOG_DIR", "logs")
APP_LOG_FILE = os.path.join(LOG_DIR, "scoreme.log")
SIEM_LOG_FILE = os.path.join(LOG_DIR, "siem_events.jsonl")
LOG_MAX_BYTES = int(os.environ.get("LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB default
LOG_BACKUP_COUNT = int(os.environ.get("LOG_BACKUP_COUNT", 5))

# Operator gate ("no-cheat" mode)
OPERATOR_FILE = os.environ.get("OPERATOR_FILE", "operator.hash")
MIN_OPERATOR_PASSWORD_LENGTH = 8
MAX_OPERATOR_ATTEMPTS = 3
PBKDF2_ITERATIONS = 600_000  # OWASP 2023 for SHA-256

# HTTP front-end
API_HOST = os.environ.get("SCOREME_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("SCOREME_PORT", "8080"))
MAX_FORM_BYTES = int(os.environ.get("SCOREME_MAX_FORM_BYTES", 8 * 1024 * 1024))

# Trusted proxy configuration
# SECURITY: Only trust X-Forwarded-For headers from these IP addresses
# Example: TRUSTED_PROXIES=10.0.0.1,10.0.0.2,172.17.0.1
_trusted_proxies_env = os.environ.get("TRUSTED_PROXIES", "")
TRUSTED_PROXIES: set[str] = set(
    ip.strip() for ip in _trusted_proxies_env.split(",") if ip.strip()
)

BACKENDS = ("tree", "kv")
POLICIES = ("unique", "per_line")

# Full digest text is 40 hex characters, so a prefix can be at most that long
MAX_PREFIX_LEN = 40

RULES = """
The rules are these:
1. -1 for each password not in the breach corpus
2. +{point} point(s) for each password found in the corpus
3. A bonus of {point}/N for a password that occurs N times in the corpus,
   so rare passwords like 04E2B8C988822005B768843B50A08BABDBA654FD:2 pay more
4. Submitting the same password again costs another point and another bonus point
5. If the timeout fires, you get whatever was scored up to that point
"""


@dataclass(frozen=True)
class ScoreConfig:
    """Settings shared by the index builder, the lookup engine and the scorer."""
    backend: str = BACKEND
    datadir: str = DATA_DIR
    dbname: str = DB_NAME
    bucket: str = BUCKET_NAME
    prefix_len: int = PREFIX_LEN
    split_len: int = SPLIT_LEN
    point_value: int = POINT_VALUE
    deadline_seconds: float = DEADLINE_SECONDS
    batch_size: int = BATCH_SIZE
    policy: str = SCORING_POLICY

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend {self.backend!r}, expected one of {BACKENDS}")
        if self.policy not in POLICIES:
            raise ValueError(f"Unknown scoring policy {self.policy!r}, expected one of {POLICIES}")
        if not 1 <= self.prefix_len <= MAX_PREFIX_LEN:
            raise ValueError(f"prefix_len must be between 1 and {MAX_PREFIX_LEN}")
        if self.split_len < 1:
            raise ValueError("split_len must be at least 1")
        if self.point_value < 1:
            raise ValueError("point_value must be a positive integer")
        if self.deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be positive")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @classmethod
    def from_env(cls) -> "ScoreConfig":
        """Build a config from the environment-derived module defaults."""
        return cls()

    def with_overrides(self, **changes) -> "ScoreConfig":
        """Return a copy with the given non-None fields replaced.

        CLI flags that were not supplied arrive as None and keep the default.
        """
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def location(self) -> str:
        """Path of the backing store for the selected backend."""
        return self.datadir if self.backend == "tree" else self.dbname

    def rules(self) -> str:
        return RULES.format(point=self.point_value)
