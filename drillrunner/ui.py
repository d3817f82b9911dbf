"""Coloured status lines for warnings and successes."""

from __future__ import annotations

import os

from rich.console import Console
from rich.text import Text

WARN_ICON = "⚠️ "
WARN_FALLBACK = "!"
SUCCESS_ICON = "✅"
SUCCESS_FALLBACK = "✓"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _emit(icon: str, fallback: str, message: str, style: str) -> str:
    prefix = fallback if no_emoji() else icon
    line = f"{prefix} {message}"
    console = Console(highlight=False)
    text = Text()
    text.append(prefix, style=style)
    text.append(" ")
    text.append(str(message), style=style)
    console.print(text, soft_wrap=True)
    return line


def warn(message: str) -> str:
    """Print a red warning line and return its plain text."""
    return _emit(WARN_ICON, WARN_FALLBACK, message, "red")


def success(message: str) -> str:
    """Print a green success line and return its plain text."""
    return _emit(SUCCESS_ICON, SUCCESS_FALLBACK, message, "green")