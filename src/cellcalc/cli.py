"""Command-line interface for cellcalc."""

from __future__ import annotations

import json
import math
from pathlib import Path

import click

from cellcalc import __version__
from cellcalc.formulas.errors import FormulaError
from cellcalc.formulas.evaluator import EvaluationOutcome, evaluate_formula
from cellcalc.formulas.tokens import format_number
from cellcalc.sheet import SheetMemory, load_sheet


@click.group()
@click.version_option(version=__version__, prog_name="cellcalc")
def main() -> None:
    """cellcalc -- evaluate pre-tokenized spreadsheet cell formulas."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_overrides(overrides: tuple[str, ...]) -> dict[str, str]:
    cells: dict[str, str] = {}
    for item in overrides:
        if "=" not in item:
            raise click.ClickException(f"Invalid --set format: {item!r}. Use LABEL=value.")
        k, v = item.split("=", 1)
        cells[k.strip()] = v.strip()
    return cells


def _load_memory(sheet_path: str | None, overrides: tuple[str, ...]) -> SheetMemory:
    try:
        memory = load_sheet(Path(sheet_path)) if sheet_path else SheetMemory()
        for label, raw in _parse_overrides(overrides).items():
            try:
                value = float(raw)
            except ValueError:
                raise click.ClickException(f"--set {label}: {raw!r} is not a number") from None
            memory.set_cell(label, [raw], value)
    except FormulaError as exc:
        raise click.ClickException(str(exc)) from exc
    return memory


def _configure_logging(project: str | None) -> None:
    if project:
        from cellcalc.logging.events import set_project_dir

        set_project_dir(Path(project))


def _echo_outcome(outcome: EvaluationOutcome, as_json: bool) -> None:
    if as_json:
        result: float | str = outcome.result
        if not math.isfinite(outcome.result):
            result = format_number(outcome.result)
        click.echo(json.dumps({"result": result, "error": outcome.error}, sort_keys=True))
        return
    line = format_number(outcome.result)
    if outcome.error:
        line += f"  ({outcome.error})"
    click.echo(line)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@main.command("eval", context_settings={"ignore_unknown_options": True})
@click.argument("tokens", nargs=-1)
@click.option("--sheet", "sheet_path", default=None, type=click.Path(exists=True), help="YAML sheet file with referenced cells.")
@click.option("--set", "overrides", multiple=True, help="Set a cell value as LABEL=value.")
@click.option("--project", default=None, type=click.Path(exists=True, file_okay=False), help="Project directory for the event log.")
@click.option("--json", "as_json", is_flag=True, help="Output the outcome as JSON.")
def eval_cmd(
    tokens: tuple[str, ...],
    sheet_path: str | None,
    overrides: tuple[str, ...],
    project: str | None,
    as_json: bool,
) -> None:
    """Evaluate a formula given as separate TOKENS.

    Example: cellcalc eval A1 + 5 --set A1=10
    Negative numbers are accepted as tokens: cellcalc eval -3 + 5
    """
    _configure_logging(project)
    memory = _load_memory(sheet_path, overrides)
    outcome = evaluate_formula(list(tokens), memory)
    _echo_outcome(outcome, as_json)


@main.command("cell")
@click.argument("label")
@click.option("--sheet", "sheet_path", required=True, type=click.Path(exists=True), help="YAML sheet file.")
@click.option("--project", default=None, type=click.Path(exists=True, file_okay=False), help="Project directory for the event log.")
@click.option("--json", "as_json", is_flag=True, help="Output the outcome as JSON.")
def cell_cmd(label: str, sheet_path: str, project: str | None, as_json: bool) -> None:
    """Evaluate the formula stored in cell LABEL of a sheet file."""
    _configure_logging(project)
    memory = _load_memory(sheet_path, ())
    try:
        outcome = memory.evaluate_cell(label)
    except FormulaError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_outcome(outcome, as_json)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(directory: str, level: str | None, event_type: str | None, limit: int) -> None:
    """Show structured event log for DIRECTORY."""
    from cellcalc.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_global(level=level, event_type=event_type, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)
