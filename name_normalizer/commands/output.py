from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..core.identity.planner import Suggestion
from ..models import InputError, ProgressEvent

logger = logging.getLogger(__name__)

SUGGESTION_FILE_VERSION = "1.0"
EVIDENCE_PREVIEW = 3


@dataclass(frozen=True, slots=True)
class CheckLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def ok(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "OK", detail).render()


def warning(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "WARNING", detail).render()


def error(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "ERROR", detail).render()


def value(label: str, amount: object, detail: Optional[str] = None) -> str:
    return CheckLine(label, str(amount), detail).render()


def suggestion_lines(index: int, suggestion: Suggestion, *, evidence: bool = True) -> list[str]:
    """Human-readable block for one suggestion, numbered from 1."""
    marker = " [learned]" if suggestion.learned else ""
    lines = [f"[{index}] {suggestion.kind}: {suggestion.canonical}{marker} (similarity {suggestion.similarity:.2f})"]
    for member in suggestion.members:
        flag = "*" if member.text in (suggestion.canonical, suggestion.canonical_last_name) else " "
        lines.append(f"  {flag} {member.text} ({member.frequency})")
        if not evidence:
            continue
        for ref in member.evidence[:EVIDENCE_PREVIEW]:
            year = f" ({ref.year})" if ref.year else ""
            lines.append(f"      - {ref.title or ref.key or ref.id}{year}")
        hidden = len(member.item_ids) - min(len(member.evidence), EVIDENCE_PREVIEW)
        if hidden > 0:
            lines.append(f"      ... {hidden} more item(s)")
    return lines


def log_progress(event: ProgressEvent) -> None:
    if event.percent is None:
        logger.debug("%s", event.stage)
        return
    logger.debug("%s: %s/%s (%d%%)", event.stage, event.processed, event.total, event.percent)


def write_suggestions(path: Path, suggestions: Iterable[Suggestion]) -> int:
    items = [suggestion.to_dict() for suggestion in suggestions]
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump({"version": SUGGESTION_FILE_VERSION, "suggestions": items}, fh, ensure_ascii=False, indent=2)
        fh.write("\n")
    return len(items)


def read_suggestions(path: Path) -> list[Suggestion]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise InputError(f"Suggestion file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Suggestion file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or data.get("version") != SUGGESTION_FILE_VERSION:
        raise InputError(f"Unsupported suggestion file: {path}")
    try:
        return [Suggestion.from_dict(item) for item in data.get("suggestions", [])]
    except (KeyError, TypeError, ValueError) as exc:
        raise InputError(f"Malformed suggestion in {path}: {exc}") from exc


def parse_selection(text: str, count: int) -> list[bool]:
    """
    Flags for a selection such as "all", "none", "1,3" or "2-4" (1-based).

    Raises:
        InputError: An index is out of range or not a number
    """
    cleaned = text.strip().lower()
    if cleaned == "all":
        return [True] * count
    if cleaned in {"", "none"}:
        return [False] * count
    flags = [False] * count
    for part in cleaned.split(","):
        part = part.strip()
        if not part:
            continue
        start_text, _, end_text = part.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if end_text else start
        except ValueError as exc:
            raise InputError(f"Invalid selection: {part!r}") from exc
        if start < 1 or end > count or start > end:
            raise InputError(f"Selection {part!r} out of range 1-{count}")
        for index in range(start, end + 1):
            flags[index - 1] = True
    return flags
