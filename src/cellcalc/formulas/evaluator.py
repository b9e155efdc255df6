"""Formula evaluation: cell substitution, trailing repair, and error policy.

A formula is an ordered sequence of raw tokens (numbers, operator and
parenthesis strings, cell labels).  ``evaluate_formula`` runs it through
these steps, each of which may overwrite the reported error (last write
wins):

1. empty formula short-circuit
2. substitution of numbers and cell references
3. removal of a trailing run of operators / open parentheses
4. expression evaluation
5. remap of an infinite result to divide-by-zero
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Protocol

from pydantic import BaseModel, ConfigDict

from cellcalc.formulas.errors import ErrorMessages
from cellcalc.formulas.expression import DIVISION_BY_ZERO, evaluate_expression
from cellcalc.formulas.tokens import (
    SYNTAX_SYMBOLS,
    Number,
    Symbol,
    Token,
    format_number,
    is_number,
    to_token,
    token_text,
)
from cellcalc.labels import is_valid_cell_label
from cellcalc.logging.events import EventType, config_flag, emit_info, emit_warning

logger = logging.getLogger(__name__)

# An operator or open parenthesis cannot end an expression
_TRAILING_SYMBOLS = SYNTAX_SYMBOLS - {")"}


# ---------------------------------------------------------------------------
# Resolver protocol
# ---------------------------------------------------------------------------


class CellResolver(Protocol):
    """Protocol for resolving a cell label to its current value."""

    def resolve_cell(self, label: str) -> tuple[float, str]:
        """Return ``(value, error)`` for the referenced cell.

        ``(0, error)`` when the cell holds an error other than
        empty-formula, ``(0, INVALID_CELL)`` when its formula is empty,
        otherwise ``(value, "")``.
        """
        ...


class EvaluationOutcome(BaseModel):
    """Result/error pair produced by one evaluation.

    ``result`` is always set, even when ``error`` is not empty.
    """

    model_config = ConfigDict(frozen=True)

    result: float = 0.0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.error == ""


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def substitute_tokens(
    formula: Iterable[Any],
    resolver: CellResolver | None = None,
    is_cell_label: Callable[[Any], bool] = is_valid_cell_label,
) -> tuple[list[Token], str]:
    """Replace numbers and cell references with ``Number`` tokens.

    Returns:
        Tuple of (tokens, error) where error is the one returned with the
        last resolved cell reference ("" when there was none).
    """
    error = ""
    tokens: list[Token] = []
    for raw in formula:
        if is_number(raw):
            tokens.append(to_token(raw))
            continue
        text = raw.text if isinstance(raw, Symbol) else raw
        if is_cell_label(text):
            value, error = _resolve(resolver, text)
            tokens.append(Number(value=value))
        else:
            tokens.append(to_token(raw))
    return tokens, error


def _resolve(resolver: CellResolver | None, label: str) -> tuple[float, str]:
    if resolver is None:
        return 0.0, ErrorMessages.INVALID_CELL
    value, error = resolver.resolve_cell(label)
    if error:
        emit_info(
            EventType.cell_error_propagated,
            f"Cell {label} carries error {error}",
            {"label": label},
        )
    return float(value), error


def trim_trailing(tokens: list[Token]) -> tuple[list[Token], bool]:
    """Drop a trailing run of ``+ - * / (`` tokens.

    Returns:
        Tuple of (kept tokens, whether anything was dropped).
    """
    end = len(tokens)
    while end > 0 and isinstance(tokens[end - 1], Symbol) and tokens[end - 1].text in _TRAILING_SYMBOLS:
        end -= 1
    return tokens[:end], end != len(tokens)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def evaluate_formula(
    formula: Iterable[Any],
    resolver: CellResolver | None = None,
    *,
    is_cell_label: Callable[[Any], bool] = is_valid_cell_label,
    previous_result: float = 0.0,
) -> EvaluationOutcome:
    """Evaluate a pre-tokenized formula.

    Never raises for formula content: every failure is reported in the
    ``error`` field of the outcome.

    Args:
        formula: Raw tokens, e.g. ``["A1", "+", "5"]`` or ``[3, "*", 2]``.
        resolver: Source of referenced cell values.  Without one, every
            cell reference resolves to ``(0, INVALID_CELL)``.
        is_cell_label: Predicate classifying a token as a cell reference.
        previous_result: Result reported when the expression itself
            fails to evaluate.

    Returns:
        The ``EvaluationOutcome`` of this call.
    """
    raw_tokens = list(formula)

    if not raw_tokens:
        outcome = EvaluationOutcome(result=0.0, error=ErrorMessages.EMPTY_FORMULA)
        _report(raw_tokens, outcome)
        return outcome

    tokens, error = substitute_tokens(raw_tokens, resolver, is_cell_label)

    tokens, trimmed = trim_trailing(tokens)
    if trimmed:
        error = ErrorMessages.INVALID_FORMULA

    evaluation = evaluate_expression(tokens)
    if evaluation.ok:
        result = evaluation.value
    else:
        result = previous_result
        error = evaluation.error
        logger.debug("Expression failed with %s; keeping result %r", error, result)

    if result == DIVISION_BY_ZERO:
        error = ErrorMessages.DIVIDE_BY_ZERO

    outcome = EvaluationOutcome(result=result, error=error)
    _report(raw_tokens, outcome)
    return outcome


def _report(raw_tokens: list[Any], outcome: EvaluationOutcome) -> None:
    context = {
        "formula": [token_text(t) for t in raw_tokens],
        "result": format_number(outcome.result),
    }
    if outcome.error:
        emit_warning(
            EventType.formula_error,
            f"Formula evaluated with error {outcome.error}",
            context,
            error_code=outcome.error,
        )
    elif config_flag("log_successful_evaluations"):
        emit_info(EventType.formula_evaluated, "Formula evaluated", context)


class FormulaEvaluator:
    """Evaluator bound to a cell store, keeping the last outcome.

    Usage::

        evaluator = FormulaEvaluator(memory)
        evaluator.evaluate(["A1", "+", "5"])
        evaluator.result, evaluator.error

    Each ``evaluate`` call replaces the stored outcome.  When the
    expression fails to evaluate, the previous call's result is kept
    alongside the new error.
    """

    def __init__(self, memory: CellResolver | None) -> None:
        self._memory = memory
        self._outcome = EvaluationOutcome()

    def evaluate(self, formula: Iterable[Any]) -> None:
        """Evaluate *formula* and store its ``(result, error)``."""
        self._outcome = evaluate_formula(
            formula,
            self._memory,
            is_cell_label=self.is_cell_reference,
            previous_result=self._outcome.result,
        )

    @property
    def outcome(self) -> EvaluationOutcome:
        return self._outcome

    @property
    def result(self) -> float:
        return self._outcome.result

    @property
    def error(self) -> str:
        return self._outcome.error

    @staticmethod
    def is_number(token: Any) -> bool:
        """True if the token can be parsed to a finite number."""
        return is_number(token)

    @staticmethod
    def is_cell_reference(token: Any) -> bool:
        """True if the token is a cell label."""
        return is_valid_cell_label(token)

    def get_cell_value(self, label: str) -> tuple[float, str]:
        """Return ``(value, error)`` for *label* from the bound cell store."""
        return _resolve(self._memory, label)
