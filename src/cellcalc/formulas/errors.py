"""Error catalog and exception types for formula evaluation."""

from __future__ import annotations


class ErrorMessages:
    """Fixed catalog of error strings reported alongside a result.

    The strings are opaque to the evaluator: they are stored and compared
    by value, never parsed.
    """

    EMPTY_FORMULA = "#EMPTY!"
    INVALID_FORMULA = "#ERR"
    INVALID_CELL = "#REF!"
    MISSING_PARENTHESES = "#PAREN!"
    DIVIDE_BY_ZERO = "#DIV/0!"

    ALL = frozenset({
        EMPTY_FORMULA,
        INVALID_FORMULA,
        INVALID_CELL,
        MISSING_PARENTHESES,
        DIVIDE_BY_ZERO,
    })


class FormulaError(Exception):
    """Base class for errors raised outside of formula evaluation."""


class CellLabelError(FormulaError):
    """A cell label that does not match the A1 label syntax.

    Attributes:
        label: The rejected label.
    """

    def __init__(self, label: object) -> None:
        self.label = label
        super().__init__(f"Invalid cell label: {label!r}")


class SheetFileError(FormulaError):
    """Malformed sheet file.

    Attributes:
        path: File that failed to load, if known.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        full = message if path is None else f"{path}: {message}"
        super().__init__(full)
