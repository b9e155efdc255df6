"""Recursive-descent evaluator for flat arithmetic token sequences.

Grammar (single forward cursor, no backtracking)::

    expression := term ( ('+' | '-') term )*
    term       := factor ( ('*' | '/') factor )*
    factor     := NUMBER | '(' expression ')'

Operators are left-associative and ``*``/``/`` bind tighter than
``+``/``-``.  Failures are returned as ``ExpressionResult`` values
carrying a catalog error string; nothing is raised for bad input.

Division by an exactly-zero divisor does not fail here.  The term takes
the ``DIVISION_BY_ZERO`` sentinel (IEEE ``+inf``) and the sentinel flows
through the enclosing arithmetic like any other float.  Classifying it
is left to the caller.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from cellcalc.formulas.errors import ErrorMessages
from cellcalc.formulas.tokens import Number, Symbol, Token, token_text

DIVISION_BY_ZERO = math.inf

_NUMERIC_CHAR_RE = re.compile(r"[0-9.]")
_DIGIT_START_RE = re.compile(r"[0-9]")

# Leading float prefix, as far as it parses (``"3-2"`` -> ``3``).
_FLOAT_PREFIX_RE = re.compile(
    r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?",
    re.ASCII,
)


class ExpressionResult(BaseModel):
    """Outcome of one grammar rule: a value, or a classified error."""

    model_config = ConfigDict(frozen=True)

    value: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def divided_by_zero(self) -> bool:
        """True when the value is the division-by-zero sentinel."""
        return self.ok and self.value == DIVISION_BY_ZERO


def _failure(error: str) -> ExpressionResult:
    return ExpressionResult(error=error)


def parse_float_prefix(text: str) -> float | None:
    """Parse the longest leading float literal of *text*, or ``None``."""
    m = _FLOAT_PREFIX_RE.match(text)
    if not m:
        return None
    return float(m.group(0))


def _operator(token: Token | None) -> str | None:
    if isinstance(token, Symbol):
        return token.text
    return None


class _ExpressionParser:
    """Cursor over a token sequence plus the three grammar rules."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens = list(tokens)
        self._index = 0

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def _next(self) -> Token | None:
        """Return the token under the cursor (``None`` past the end) and advance."""
        token = self._tokens[self._index] if self._index < len(self._tokens) else None
        self._index += 1
        return token

    def _back(self) -> None:
        self._index -= 1

    def _at_numeric_fragment(self) -> bool:
        if self._index >= len(self._tokens):
            return False
        return bool(_NUMERIC_CHAR_RE.search(token_text(self._tokens[self._index])))

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def parse(self) -> ExpressionResult:
        result = self._expression()
        if not result.ok:
            return result
        if self._index != len(self._tokens):
            return _failure(ErrorMessages.INVALID_FORMULA)
        return result

    def _expression(self) -> ExpressionResult:
        left = self._term()
        if not left.ok:
            return left
        value = left.value
        op = _operator(self._next())
        while op in ("+", "-"):
            right = self._term()
            if not right.ok:
                return right
            if op == "+":
                value += right.value
            else:
                value -= right.value
            op = _operator(self._next())
        # Hand the operator back to the enclosing rule
        self._back()
        return ExpressionResult(value=value)

    def _term(self) -> ExpressionResult:
        left = self._factor()
        if not left.ok:
            return left
        value = left.value
        divided_by_zero = False
        op = _operator(self._next())
        while op in ("*", "/"):
            right = self._factor()
            if not right.ok:
                return right
            if divided_by_zero:
                # Remaining factors are parsed but the term stays at the sentinel
                pass
            elif op == "*":
                value *= right.value
            elif right.value == 0:
                value = DIVISION_BY_ZERO
                divided_by_zero = True
            else:
                value /= right.value
            op = _operator(self._next())
        self._back()
        return ExpressionResult(value=value)

    def _factor(self) -> ExpressionResult:
        token = self._next()

        if isinstance(token, Symbol) and token.text == "(":
            inner = self._expression()
            if not inner.ok:
                return inner
            if _operator(self._next()) != ")":
                return _failure(ErrorMessages.MISSING_PARENTHESES)
            return inner

        if isinstance(token, Number):
            if not self._at_numeric_fragment():
                return ExpressionResult(value=token.value)
        elif not (isinstance(token, Symbol) and _DIGIT_START_RE.match(token.text)):
            return _failure(ErrorMessages.INVALID_FORMULA)

        # Literal split across adjacent tokens: glue the text back together
        literal = token_text(token)
        while self._at_numeric_fragment():
            literal += token_text(self._next())
        value = parse_float_prefix(literal)
        if value is None:
            return _failure(ErrorMessages.INVALID_FORMULA)
        return ExpressionResult(value=value)


def evaluate_expression(tokens: Sequence[Token]) -> ExpressionResult:
    """Evaluate a substituted token sequence.

    Args:
        tokens: ``Number`` and ``Symbol`` tokens with no cell references.

    Returns:
        An ``ExpressionResult`` with the value, or with one of
        ``INVALID_FORMULA`` / ``MISSING_PARENTHESES`` as its error.
    """
    try:
        return _ExpressionParser(tokens).parse()
    except RecursionError:
        logging.getLogger(__name__).debug(
            "Expression nesting exceeded the interpreter recursion limit (%d tokens)",
            len(tokens),
        )
        return _failure(ErrorMessages.INVALID_FORMULA)
