from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from ..prompt_io import ConsolePromptIO, PromptIO
from ..services import AnalysisResult, NormalizationService
from .output import log_progress, suggestion_lines, value, write_suggestions


def run(
    service: NormalizationService,
    *,
    out: Optional[Path] = None,
    json_output: bool = False,
    io: Optional[PromptIO] = None,
) -> AnalysisResult:
    io = io or ConsolePromptIO()
    result = service.collect_and_analyze(on_progress=log_progress)
    if out is not None:
        saved = write_suggestions(out, result.suggestions)
        if not json_output:
            io.print(f"Saved {saved} suggestion(s) to {out}")
    if json_output:
        io.print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return result

    io.print(value("Names analyzed", result.total_records))
    io.print(value("Distinct surnames", result.total_unique_surnames))
    io.print(value("Variant groups", result.total_variant_groups))
    if result.skipped_records:
        io.print(value("Skipped (no surname)", result.skipped_records))
    if result.suppressed_groups:
        io.print(value("Hidden (marked distinct)", result.suppressed_groups))
    if not result.suggestions:
        io.print("No name variants found.")
        return result
    io.print(f"\n{len(result.suggestions)} suggestion(s):")
    for index, suggestion in enumerate(result.suggestions, 1):
        for line in suggestion_lines(index, suggestion, evidence=False):
            io.print(line)
    return result
