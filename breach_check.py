"""Breach detection against the local breach index.

Checks a single password by hashing it with SHA-1 and looking the digest
up in the prefix-sharded index built by scoreapp.py. Nothing leaves the
machine.
"""

from typing import Optional

from scoreme import ScoreConfig, StoreUnavailable, open_store
from scoreme.digest import digest
from scoreme.lookup import LookupEngine
from scoreme.records import CorruptRecord


def check_password_breach(password: str, engine: LookupEngine) -> Optional[int]:
    """Check if password appears in the breach index.

    Args:
        password: The password to check
        engine: Lookup engine over a built index

    Returns:
        Number of times the password occurs in the corpus, 0 if it was not
        found, or None if the index could not be read.
    """
    try:
        count = engine.get(digest(password))
    except StoreUnavailable as e:
        print(f"Warning: Could not read breach index: {e}")
        return None
    except CorruptRecord as e:
        print(f"Warning: Breach index shard is corrupt: {e}")
        return None
    return count or 0


def format_breach_warning(breach_count: int) -> str:
    """Format a warning message based on breach count."""
    if breach_count == 0:
        return ""
    elif breach_count < 10:
        return f"This password appeared {breach_count} time(s) in the breach corpus. Consider using a different password."
    elif breach_count < 100:
        return f"WARNING: This password was found {breach_count} times in the breach corpus!"
    elif breach_count < 1000:
        return f"DANGER: This password was exposed {breach_count} times in breaches. Do NOT use it!"
    else:
        return f"CRITICAL: This password was found {breach_count:,} times in breaches. It is extremely compromised!"


def check_and_warn(password: str, engine: LookupEngine) -> tuple[bool, str]:
    """Check password and return safety status with message.

    Returns:
        Tuple of (is_safe, message) where is_safe is False if breached.
    """
    breach_count = check_password_breach(password, engine)

    if breach_count is None:
        return True, "Could not verify against breach index"

    if breach_count == 0:
        return True, "Password not found in known data breaches"

    return False, format_breach_warning(breach_count)


# CLI usage
if __name__ == "__main__":
    import getpass

    print("=== Password Breach Checker ===")
    print("Check if your password appears in the local breach index.\n")

    config = ScoreConfig.from_env()
    pwd = getpass.getpass("Enter password to check: ")
    if pwd:
        with open_store(config) as store:
            is_safe, message = check_and_warn(pwd, LookupEngine(store, config))
        print(f"\nResult: {message}")
        if is_safe:
            print("Status: SAFE")
        else:
            print("Status: COMPROMISED - Choose a different password!")
