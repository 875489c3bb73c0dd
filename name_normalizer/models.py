from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

_YEAR = re.compile(r"(\d{4})")


class NormalizerError(Exception):
    """Base class for errors raised by the normalizer."""


class InputError(NormalizerError):
    """A name record is malformed or missing required fields."""


class StoreError(NormalizerError):
    """The persisted key-value store could not be read or written."""


class ExportFormatError(NormalizerError):
    """Imported mapping data is missing or carries an unsupported version."""


class ExternalCollaboratorError(NormalizerError):
    """The item store rejected a read or an update."""


class CancellationSignal(NormalizerError):
    """Raised when the caller's cancel check asks a long-running pass to stop."""


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    stage: str
    processed: Optional[int] = None
    total: Optional[int] = None
    percent: Optional[int] = None
    detail: Optional[dict[str, Any]] = None


ProgressCallback = Callable[[ProgressEvent], None]
CancelCheck = Callable[[], bool]


def percent_of(processed: int, total: int, scale: int = 100) -> int:
    if total <= 0:
        return scale
    return round(processed / total * scale)


def emit_progress(
    callback: Optional[ProgressCallback],
    stage: str,
    processed: Optional[int] = None,
    total: Optional[int] = None,
    percent: Optional[int] = None,
    **detail: Any,
) -> None:
    if callback is None:
        return
    if percent is None and processed is not None and total is not None:
        percent = percent_of(processed, total)
    callback(ProgressEvent(stage, processed, total, percent, detail or None))


def check_cancelled(should_cancel: Optional[CancelCheck], stage: str) -> None:
    if should_cancel is not None and should_cancel():
        raise CancellationSignal(f"Cancelled during {stage}")


def parse_year(value: object) -> Optional[str]:
    """First four-digit run in a date value ("2019-03-01" → "2019")."""
    if value is None:
        return None
    match = _YEAR.search(str(value))
    return match.group(1) if match else None
