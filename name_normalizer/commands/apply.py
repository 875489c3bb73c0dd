from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..prompt_io import ConsolePromptIO, PromptIO
from ..services import ApplyResult, NormalizationService
from .output import error, log_progress, ok, parse_selection, read_suggestions, value, warning


def run(
    service: NormalizationService,
    source: Path,
    *,
    accept: str = "all",
    record_declines: bool = True,
    io: Optional[PromptIO] = None,
) -> ApplyResult:
    """Apply a saved suggestion file without prompting."""
    io = io or ConsolePromptIO()
    suggestions = read_suggestions(source)
    flags = parse_selection(accept, len(suggestions))
    result = service.apply_suggestions(
        suggestions,
        flags,
        on_progress=log_progress,
        record_declines=record_declines,
    )
    io.print(ok("Applied", f"{result.applied} of {result.total} suggestion(s)"))
    io.print(value("Items updated", result.updated_records))
    if result.declined_recorded:
        io.print(value("Remembered as distinct", result.declined_recorded))
    if result.errors:
        io.print(warning("Failures", f"{result.errors} item(s)"))
        for item_id, message in result.failures:
            io.print(error(f"  item {item_id}", message))
    return result
