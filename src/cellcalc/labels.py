"""A1-style cell label helpers."""

from __future__ import annotations

import re
from typing import Any

_LABEL_RE = re.compile(r"^([A-Z]{1,3})([1-9][0-9]*)$")


def is_valid_cell_label(token: Any) -> bool:
    """True iff *token* is a string like ``A1``, ``F2`` or ``AAA9999``.

    Labels are upper-case only; rows start at 1.
    """
    return isinstance(token, str) and _LABEL_RE.match(token) is not None


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def parse_label(label: str) -> tuple[int, int]:
    """Parse 'A1' -> (row_0based, col_0based).

    Raises ValueError on bad label.
    """
    m = _LABEL_RE.match(label)
    if not m:
        raise ValueError(f"Invalid cell label: {label!r}")
    col = col_letter_to_index(m.group(1))
    row = int(m.group(2)) - 1
    return row, col
