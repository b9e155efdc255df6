"""Tests for the in-memory cell store and A1 label helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from cellcalc.formulas import (
    CellLabelError,
    ErrorMessages,
    EvaluationOutcome,
    FormulaEvaluator,
    SheetFileError,
)
from cellcalc.labels import col_letter_to_index, is_valid_cell_label, parse_label
from cellcalc.sheet import SheetMemory, load_sheet


@pytest.fixture
def memory() -> SheetMemory:
    m = SheetMemory()
    m.set_cell("A1", ["10"], 10)
    m.set_cell("A2", ["A1", "*", "2"], 20)
    m.set_cell("A3", ["8", "/", "0"], float("inf"), ErrorMessages.DIVIDE_BY_ZERO)
    return m


# ────────────────────────────────────────────────────────────────
# Resolver policy
# ────────────────────────────────────────────────────────────────


class TestResolveCell:
    def test_value(self, memory: SheetMemory) -> None:
        assert memory.resolve_cell("A1") == (10.0, "")

    def test_stored_error_propagates(self, memory: SheetMemory) -> None:
        assert memory.resolve_cell("A3") == (0.0, ErrorMessages.DIVIDE_BY_ZERO)

    def test_empty_formula_is_invalid_cell(self, memory: SheetMemory) -> None:
        assert memory.resolve_cell("Z9") == (0.0, ErrorMessages.INVALID_CELL)

    def test_empty_formula_error_is_not_propagated(self) -> None:
        m = SheetMemory()
        m.set_cell("B1", [], 0, ErrorMessages.EMPTY_FORMULA)
        assert m.resolve_cell("B1") == (0.0, ErrorMessages.INVALID_CELL)

    def test_empty_formula_error_with_formula_uses_value(self) -> None:
        m = SheetMemory()
        m.set_cell("B1", ["4"], 4, ErrorMessages.EMPTY_FORMULA)
        assert m.resolve_cell("B1") == (4.0, "")

    def test_cells_created_on_access(self) -> None:
        m = SheetMemory()
        cell = m.get_cell_by_label("C3")
        assert cell.formula == []
        assert cell.value == 0
        assert cell.error == ""
        assert m.labels() == ["C3"]

    def test_labels_row_major(self) -> None:
        m = SheetMemory()
        for label in ("A10", "B1", "A2"):
            m.get_cell_by_label(label)
        assert m.labels() == ["B1", "A2", "A10"]

    def test_invalid_label(self) -> None:
        with pytest.raises(CellLabelError, match="Invalid cell label"):
            SheetMemory().get_cell_by_label("a1")


# ────────────────────────────────────────────────────────────────
# Evaluation against the store
# ────────────────────────────────────────────────────────────────


class TestEvaluateAgainstSheet:
    def test_reference_chain(self, memory: SheetMemory) -> None:
        evaluator = FormulaEvaluator(memory)
        evaluator.evaluate(["A2", "+", "A1"])
        assert evaluator.result == 30
        assert evaluator.error == ""

    def test_reference_to_error_cell(self, memory: SheetMemory) -> None:
        evaluator = FormulaEvaluator(memory)
        evaluator.evaluate(["A3", "+", "1"])
        assert evaluator.result == 1
        assert evaluator.error == ErrorMessages.DIVIDE_BY_ZERO

    def test_evaluate_cell_stores_outcome(self) -> None:
        m = SheetMemory()
        m.set_cell("A1", ["10"])
        outcome = m.evaluate_cell("A1")
        assert outcome.result == 10
        assert m.get_cell_by_label("A1").value == 10

        m.set_cell("A2", ["A1", "*", "2"])
        assert m.evaluate_cell("A2").result == 20

    def test_failed_cell_keeps_previous_value(self) -> None:
        m = SheetMemory()
        m.set_cell("A1", ["(", "1"], value=7)
        outcome = m.evaluate_cell("A1")
        assert outcome == EvaluationOutcome(result=7, error=ErrorMessages.MISSING_PARENTHESES)
        assert m.get_cell_by_label("A1").value == 7

    def test_evaluate_empty_cell(self) -> None:
        m = SheetMemory()
        outcome = m.evaluate_cell("B2")
        assert outcome.error == ErrorMessages.EMPTY_FORMULA
        assert m.get_cell_by_label("B2").error == ErrorMessages.EMPTY_FORMULA
        # Referencing it reports the empty formula, not the stored error
        assert m.resolve_cell("B2") == (0.0, ErrorMessages.INVALID_CELL)

    def test_dependents_not_recomputed(self) -> None:
        m = SheetMemory()
        m.set_cell("A1", ["1"])
        m.evaluate_cell("A1")
        m.set_cell("A2", ["A1", "+", "1"])
        m.evaluate_cell("A2")
        m.set_cell("A1", ["5"])
        m.evaluate_cell("A1")
        assert m.get_cell_by_label("A2").value == 2


# ────────────────────────────────────────────────────────────────
# Sheet files
# ────────────────────────────────────────────────────────────────


class TestSheetFiles:
    def test_load_sheet(self, tmp_path: Path) -> None:
        path = tmp_path / "sheet.yaml"
        path.write_text(yaml.dump({
            "cells": {
                "A1": {"formula": ["10"], "value": 10},
                "A2": {"formula": ["A1", "+", "1"], "value": 11},
                "A3": {"formula": [], "error": "#EMPTY!"},
            }
        }))
        m = load_sheet(path)
        assert m.labels() == ["A1", "A2", "A3"]
        assert m.resolve_cell("A2") == (11.0, "")
        assert m.resolve_cell("A3") == (0.0, ErrorMessages.INVALID_CELL)

    def test_round_trip_dict(self, memory: SheetMemory) -> None:
        again = SheetMemory.from_dict(memory.to_dict())
        assert again.to_dict() == memory.to_dict()

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_sheet(path).labels() == []

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cells: [unclosed")
        with pytest.raises(SheetFileError, match="invalid YAML"):
            load_sheet(path)

    def test_cells_not_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cells:\n  - A1\n")
        with pytest.raises(SheetFileError, match="'cells' must be a mapping"):
            load_sheet(path)

    def test_load_failure_logged(self, tmp_path: Path) -> None:
        from cellcalc.logging.events import set_project_dir
        from cellcalc.logging.sink import EventSink

        set_project_dir(tmp_path)
        path = tmp_path / "bad.yaml"
        path.write_text("cells:\n  - A1\n")
        with pytest.raises(SheetFileError):
            load_sheet(path)

        events = EventSink(tmp_path).read_global(event_type="sheet_load_failed")
        assert len(events) == 1
        assert events[0]["level"] == "error"
        assert events[0]["context"] == {"path": str(path)}

    def test_formula_not_list(self) -> None:
        with pytest.raises(SheetFileError, match="must be a list"):
            SheetMemory.from_dict({"cells": {"A1": {"formula": "1 + 2"}}})

    def test_bad_value(self) -> None:
        with pytest.raises(SheetFileError, match="must be a number"):
            SheetMemory.from_dict({"cells": {"A1": {"formula": ["1"], "value": "one"}}})

    def test_bad_label(self) -> None:
        with pytest.raises(CellLabelError):
            SheetMemory.from_dict({"cells": {"a1": {"formula": ["1"]}}})


# ────────────────────────────────────────────────────────────────
# Label helpers
# ────────────────────────────────────────────────────────────────


class TestLabels:
    def test_col_letters(self) -> None:
        assert col_letter_to_index("A") == 0
        assert col_letter_to_index("Z") == 25
        assert col_letter_to_index("AA") == 26

    def test_parse(self) -> None:
        assert parse_label("B3") == (2, 1)
        assert parse_label("AA10") == (9, 26)

    def test_parse_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_label("B0")

    def test_non_string_is_not_a_label(self) -> None:
        assert not is_valid_cell_label(None)
        assert not is_valid_cell_label(11)
