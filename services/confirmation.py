"""
Confirmation gates for destructive actions (logout, conversation deletion).

A gate is any callable taking the prompt text and returning True when the
user agreed. The Streamlit interface uses two-step buttons instead and calls
the already-confirmed entry points directly.
"""

from typing import Callable

ConfirmCallback = Callable[[str], bool]


def always_confirm(prompt: str) -> bool:
    return True


def never_confirm(prompt: str) -> bool:
    return False
