"""Shared CLI prompt utilities.

Common input prompts and validation used across CLI flows.
"""

import getpass
from typing import Callable

from scoreme.auth import validate_password_strength
from scoreme.config import MIN_OPERATOR_PASSWORD_LENGTH


def confirm_action(prompt: str, ask: Callable[[str], str] = input) -> bool:
    """Prompt for a yes/no confirmation.

    Args:
        prompt: Question to ask
        ask: Input function (replaced in tests)

    Returns:
        True if confirmed, False otherwise
    """
    response = ask(f"{prompt} (y/n): ").strip().lower()
    return response == 'y'


def prompt_new_password(prompt_text: str = "Enter new operator password: ",
                        ask: Callable[[str], str] = getpass.getpass) -> str:
    """Prompt user for a new password with confirmation.

    Loops until a valid password with matching confirmation is entered.
    """
    print(f"\n(Minimum {MIN_OPERATOR_PASSWORD_LENGTH} characters required)")

    while True:
        pw1 = ask(prompt_text)
        pw2 = ask("Confirm password: ")

        if pw1 != pw2:
            print("Passwords do not match. Try again.")
            continue

        is_valid, error = validate_password_strength(pw1)
        if not is_valid:
            print(error)
            continue

        return pw1
