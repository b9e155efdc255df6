"""Pre-tokenized spreadsheet formula evaluation.

Public API::

    from cellcalc.formulas import evaluate_formula, FormulaEvaluator
"""

from cellcalc.formulas.errors import (
    CellLabelError,
    ErrorMessages,
    FormulaError,
    SheetFileError,
)
from cellcalc.formulas.evaluator import (
    CellResolver,
    EvaluationOutcome,
    FormulaEvaluator,
    evaluate_formula,
    substitute_tokens,
    trim_trailing,
)
from cellcalc.formulas.expression import (
    DIVISION_BY_ZERO,
    ExpressionResult,
    evaluate_expression,
)
from cellcalc.formulas.tokens import Number, Symbol, Token, is_number, to_token

__all__ = [
    "CellLabelError",
    "CellResolver",
    "DIVISION_BY_ZERO",
    "ErrorMessages",
    "EvaluationOutcome",
    "ExpressionResult",
    "FormulaError",
    "FormulaEvaluator",
    "Number",
    "SheetFileError",
    "Symbol",
    "Token",
    "evaluate_expression",
    "evaluate_formula",
    "is_number",
    "substitute_tokens",
    "to_token",
    "trim_trailing",
]
