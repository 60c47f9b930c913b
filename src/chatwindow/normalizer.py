"""Whitespace normalization applied before token counting and transmission."""

from __future__ import annotations

import re

_NEWLINE_RUNS = re.compile(r"\n+")
# Any whitespace except CR/LF.
_HORIZONTAL_RUNS = re.compile(r"[^\S\r\n]+")


def normalize_text(text: str) -> str:
    """Collapse newline runs and horizontal whitespace, then trim.

    >>> normalize_text("  hello \\t world\\n\\n\\nbye  ")
    'hello world\\nbye'
    """
    if not text:
        return ""
    collapsed = _NEWLINE_RUNS.sub("\n", text)
    collapsed = _HORIZONTAL_RUNS.sub(" ", collapsed)
    return collapsed.strip()
