"""Structured event logging for cellcalc.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from cellcalc.logging.events import (
    CalcEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    set_project_dir,
)
from cellcalc.logging.sink import EventSink

__all__ = [
    "CalcEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "set_project_dir",
]
