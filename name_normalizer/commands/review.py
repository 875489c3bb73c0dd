from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core.identity.planner import Suggestion
from ..prompt_io import ConsolePromptIO, PromptIO, choose
from ..services import ApplyResult, NormalizationService
from .output import error, log_progress, ok, read_suggestions, suggestion_lines, value, warning

ACCEPT = "accept"
DECLINE = "decline"
SKIP = "skip"
QUIT = "quit"
CHOICES = {"a": ACCEPT, "d": DECLINE, "s": SKIP, "q": QUIT}


def _ask(io: PromptIO, suggestion: Suggestion) -> Optional[str]:
    # Learned suggestions repeat an earlier acceptance, so accepting is the default.
    decision = choose(io, CHOICES, default="a" if suggestion.learned else "s")
    return None if decision == QUIT else decision


def run(
    service: NormalizationService,
    *,
    source: Optional[Path] = None,
    assume_yes: bool = False,
    io: Optional[PromptIO] = None,
) -> Optional[ApplyResult]:
    """
    Walk through suggestions one by one, then commit the accepted ones.

    Declined suggestions are remembered as distinct people. Skipped ones are
    left for a later run. With assume_yes every suggestion is accepted.
    """
    io = io or ConsolePromptIO()
    if source is not None:
        suggestions = read_suggestions(source)
    else:
        suggestions = service.collect_and_analyze(on_progress=log_progress).suggestions
    if not suggestions:
        io.print("No name variants to review.")
        return None

    decisions: list[str] = []
    total = len(suggestions)
    for index, suggestion in enumerate(suggestions, 1):
        if assume_yes:
            decisions.append(ACCEPT)
            continue
        io.print(f"\n[{index}/{total}]")
        for line in suggestion_lines(index, suggestion)[1:]:
            io.print(line)
        io.print(f"  → {suggestion.canonical}")
        decision = _ask(io, suggestion)
        if decision is None:
            io.print("Stopping review.")
            break
        decisions.append(decision)

    reviewed = suggestions[: len(decisions)]
    chosen = [(s, d) for s, d in zip(reviewed, decisions) if d != SKIP]
    if not chosen:
        io.print("Nothing to apply.")
        return None
    result = service.apply_suggestions(
        [s for s, _ in chosen],
        [d == ACCEPT for _, d in chosen],
        on_progress=log_progress,
    )
    io.print("")
    io.print(ok("Applied", f"{result.applied} suggestion(s), {result.updated_records} item(s) updated"))
    if result.declined_recorded:
        io.print(value("Remembered as distinct", result.declined_recorded))
    if result.errors:
        io.print(warning("Failures", f"{result.errors} item(s)"))
        for item_id, message in result.failures:
            io.print(error(f"  item {item_id}", message))
    return result
