"""Token model for pre-tokenized formulas.

A formula arrives as a loosely typed sequence (numbers mixed with
strings).  Each entry is classified once into a tagged token:

- ``Number``: an already-parsed real value
- ``Symbol``: everything else (operators, parentheses, and fragments
  that are expected to fail later in the grammar)
"""

from __future__ import annotations

import math
from typing import Any, Union

from pydantic import BaseModel, ConfigDict

SYNTAX_SYMBOLS = frozenset({"+", "-", "*", "/", "(", ")"})


class Number(BaseModel):
    """A numeric literal token."""

    model_config = ConfigDict(frozen=True)

    value: float


class Symbol(BaseModel):
    """A non-numeric token, kept as its original text."""

    model_config = ConfigDict(frozen=True)

    text: str


Token = Union[Number, Symbol]


def format_number(value: float) -> str:
    """Render a float the way it was most likely written.

    Integral values drop the trailing ``.0`` (``3.0`` -> ``"3"``).
    """
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def token_text(token: Any) -> str:
    """Return the textual form of a raw or tagged token."""
    if isinstance(token, Number):
        return format_number(token.value)
    if isinstance(token, Symbol):
        return token.text
    if isinstance(token, float):
        return format_number(token)
    return str(token)


def is_number(token: Any) -> bool:
    """True iff the token's textual form parses as a finite real number."""
    if isinstance(token, Number):
        return math.isfinite(token.value)
    if isinstance(token, Symbol):
        token = token.text
    if isinstance(token, bool):
        return False
    try:
        if isinstance(token, (int, float)):
            return math.isfinite(token)
        if not isinstance(token, str) or "_" in token:
            return False
        return math.isfinite(float(token))
    except (ValueError, OverflowError):
        return False


def to_token(raw: Any) -> Token:
    """Classify a raw formula entry as a ``Number`` or a ``Symbol``.

    A ``Symbol`` whose text is numeric (``"-3"``, ``".5"``) becomes a
    ``Number`` too.
    """
    if isinstance(raw, Number):
        return raw
    if is_number(raw):
        return Number(value=float(token_text(raw)))
    if isinstance(raw, Symbol):
        return raw
    return Symbol(text=token_text(raw))
