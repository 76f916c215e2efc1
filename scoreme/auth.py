"""Operator password gate ("no-cheat" mode).

Scoring at a competition can be locked behind an operator password so
contestants cannot run the scorer against their own submissions. The
password is stored as salt + PBKDF2-SHA256 hash, never in clear text.
"""

import getpass
import hashlib
import hmac
import os
import stat
import sys
from typing import Callable, Optional, Tuple

from scoreme.config import (
    MAX_OPERATOR_ATTEMPTS,
    MIN_OPERATOR_PASSWORD_LENGTH,
    OPERATOR_FILE,
    PBKDF2_ITERATIONS,
)
from scoreme.siem import log_siem_event
from scoreme.storage import StorageError

SALT_SIZE = 16

# Secure file permission: owner read/write only (0600 in octal)
SECURE_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR


class OperatorAuthError(Exception):
    """Operator password missing or not verified."""
    pass


def hash_password(password: str, salt: bytes) -> bytes:
    """Hash a password using PBKDF2-SHA256.

    Args:
        password: Password to hash
        salt: Random salt bytes

    Returns:
        32-byte hash digest
    """
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PBKDF2_ITERATIONS)


def validate_password_strength(password: str) -> Tuple[bool, str]:
    if len(password) < MIN_OPERATOR_PASSWORD_LENGTH:
        return False, f"Password too short. Use at least {MIN_OPERATOR_PASSWORD_LENGTH} characters."
    return True, ""


def set_operator_password(password: str, path: str = OPERATOR_FILE) -> None:
    """Store salt + hash for the operator password.

    Raises:
        ValueError: If the password is too short
        StorageError: If the file cannot be written
    """
    is_valid, error = validate_password_strength(password)
    if not is_valid:
        raise ValueError(error)

    salt = os.urandom(SALT_SIZE)
    try:
        with open(path, "wb") as f:
            f.write(salt + hash_password(password, salt))
        if sys.platform != "win32":
            os.chmod(path, SECURE_FILE_MODE)
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


def load_operator_hash(path: str = OPERATOR_FILE) -> Optional[Tuple[bytes, bytes]]:
    """Return (salt, hash), or None if no operator password is set."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e
    return data[:SALT_SIZE], data[SALT_SIZE:]


def verify_operator_password(password: str, path: str = OPERATOR_FILE) -> bool:
    stored = load_operator_hash(path)
    if stored is None:
        return False
    salt, stored_hash = stored
    return hmac.compare_digest(hash_password(password, salt), stored_hash)


def require_operator(
    path: str = OPERATOR_FILE,
    prompt: Callable[[str], str] = getpass.getpass,
) -> None:
    """Ask for the operator password, allowing MAX_OPERATOR_ATTEMPTS tries.

    Raises:
        OperatorAuthError: If no password is configured or every attempt fails
    """
    if load_operator_hash(path) is None:
        log_siem_event("operator_auth", "FAILURE", {"reason": "not_configured"})
        raise OperatorAuthError("No operator password configured")

    for attempt in range(1, MAX_OPERATOR_ATTEMPTS + 1):
        if verify_operator_password(prompt("Password: ").strip(), path):
            log_siem_event("operator_auth", "SUCCESS", {"attempt": attempt})
            return
        remaining = MAX_OPERATOR_ATTEMPTS - attempt
        if remaining:
            print(f"Incorrect password. {remaining} attempt(s) remaining.")

    log_siem_event("operator_auth", "LOCKOUT", {"attempts": MAX_OPERATOR_ATTEMPTS})
    raise OperatorAuthError("Access Denied")
