"""In-memory cell store implementing the ``CellResolver`` protocol.

A ``SheetMemory`` maps A1 labels to ``Cell`` objects.  Each cell keeps
its formula (raw tokens), its last computed value, and its error.
Cells are created on first access, so referencing an untouched cell
yields an empty formula.

Sheet files are YAML::

    cells:
      A1: {formula: ["10"], value: 10}
      A2: {formula: ["A1", "*", "2"]}
      A3: {formula: [], error: "#EMPTY!"}

Values are taken as stored; nothing is recomputed when a cell changes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from cellcalc.formulas.errors import CellLabelError, ErrorMessages, SheetFileError
from cellcalc.formulas.evaluator import EvaluationOutcome, evaluate_formula
from cellcalc.labels import is_valid_cell_label, parse_label
from cellcalc.logging.events import EventType, emit_error, emit_info


class Cell:
    """A single sheet cell."""

    def __init__(self, label: str) -> None:
        self.label = label
        self.formula: list[Any] = []
        self.value: float = 0.0
        self.error: str = ""

    def set_formula(self, formula: list[Any]) -> None:
        self.formula = list(formula)

    def set_result(self, outcome: EvaluationOutcome) -> None:
        self.value = outcome.result
        self.error = outcome.error

    def to_dict(self) -> dict[str, Any]:
        return {"formula": list(self.formula), "value": self.value, "error": self.error}

    def __repr__(self) -> str:
        return f"Cell({self.label!r}, formula={self.formula!r}, value={self.value!r}, error={self.error!r})"


class SheetMemory:
    """Label -> ``Cell`` store used to resolve cell references."""

    def __init__(self) -> None:
        self._cells: dict[str, Cell] = {}

    def get_cell_by_label(self, label: str) -> Cell:
        """Return the cell for *label*, creating an empty one if needed.

        Raises:
            CellLabelError: If *label* is not a valid A1 label.
        """
        if not is_valid_cell_label(label):
            raise CellLabelError(label)
        cell = self._cells.get(label)
        if cell is None:
            cell = Cell(label)
            self._cells[label] = cell
        return cell

    def set_cell(
        self,
        label: str,
        formula: list[Any],
        value: float = 0.0,
        error: str = "",
    ) -> Cell:
        """Store a cell's formula together with its computed value and error."""
        cell = self.get_cell_by_label(label)
        cell.set_formula(formula)
        cell.value = float(value)
        cell.error = error
        return cell

    def labels(self) -> list[str]:
        """Cell labels in row-major order (``B1`` before ``A2`` before ``A10``)."""
        return sorted(self._cells, key=parse_label)

    def resolve_cell(self, label: str) -> tuple[float, str]:
        """Resolve a referenced cell to ``(value, error)``.

        - a stored error other than empty-formula: ``(0, error)``
        - an empty formula: ``(0, INVALID_CELL)``
        - otherwise: ``(value, "")``
        """
        cell = self.get_cell_by_label(label)
        if cell.error not in ("", ErrorMessages.EMPTY_FORMULA):
            return 0.0, cell.error
        if len(cell.formula) == 0:
            return 0.0, ErrorMessages.INVALID_CELL
        return cell.value, ""

    def evaluate_cell(self, label: str) -> EvaluationOutcome:
        """Evaluate the formula stored in *label* and store its outcome.

        When the formula fails to evaluate, the cell keeps its previous
        value alongside the new error.  Only this cell is updated; cells
        that reference it keep their stored values.
        """
        cell = self.get_cell_by_label(label)
        outcome = evaluate_formula(cell.formula, self, previous_result=cell.value)
        cell.set_result(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SheetMemory:
        """Build a sheet from ``{"cells": {label: {...}}}``.

        Raises:
            SheetFileError: If the structure is malformed.
            CellLabelError: If a label is not a valid A1 label.
        """
        if not isinstance(data, dict):
            raise SheetFileError("sheet must be a mapping")
        cells = data.get("cells") or {}
        if not isinstance(cells, dict):
            raise SheetFileError("'cells' must be a mapping of label to cell")

        memory = cls()
        for label, spec in cells.items():
            if spec is None:
                spec = {}
            if not isinstance(spec, dict):
                raise SheetFileError(f"cell {label!r} must be a mapping")
            formula = spec.get("formula") or []
            if not isinstance(formula, list):
                raise SheetFileError(f"cell {label!r}: 'formula' must be a list of tokens")
            try:
                value = float(spec.get("value", 0.0))
            except (TypeError, ValueError) as exc:
                raise SheetFileError(f"cell {label!r}: 'value' must be a number") from exc
            memory.set_cell(str(label), formula, value, str(spec.get("error", "")))
        return memory

    def to_dict(self) -> dict[str, Any]:
        return {"cells": {label: self._cells[label].to_dict() for label in self.labels()}}


def load_sheet(path: Path) -> SheetMemory:
    """Load a YAML sheet file.

    Raises:
        SheetFileError: If the file is not valid YAML or is malformed.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text()) or {}
        memory = SheetMemory.from_dict(data)
    except yaml.YAMLError as exc:
        _report_load_failure(path, "invalid YAML")
        raise SheetFileError(f"invalid YAML: {exc}", path=str(path)) from exc
    except SheetFileError as exc:
        _report_load_failure(path, str(exc))
        raise SheetFileError(str(exc), path=str(path)) from exc
    emit_info(
        EventType.sheet_loaded,
        f"Loaded sheet {path.name}",
        {"path": str(path), "cells": len(memory.labels())},
    )
    return memory


def _report_load_failure(path: Path, reason: str) -> None:
    emit_error(
        EventType.sheet_load_failed,
        f"Failed to load sheet {path.name}: {reason}",
        {"path": str(path)},
    )
