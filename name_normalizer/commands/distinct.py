from __future__ import annotations

from typing import Optional

from ..mapping_store import MappingStore
from ..models import InputError
from ..prompt_io import ConsolePromptIO, PromptIO
from .output import ok, warning


def run(
    store: MappingStore,
    action: str,
    *,
    names: Optional[list[str]] = None,
    scope: Optional[str] = None,
    io: Optional[PromptIO] = None,
) -> None:
    io = io or ConsolePromptIO()
    if action == "list":
        pairs = store.list_distinct_pairs()
        if not pairs:
            io.print("No distinct pairs recorded.")
            return
        for pair in pairs:
            io.print(f"[{pair.scope}] {pair.name_a} ≠ {pair.name_b}")
        return
    if action == "clear":
        if not names:
            io.print(ok("Cleared", f"{store.clear_distinct_pairs()} pair(s)"))
            return
        if len(names) != 2:
            raise InputError("clear needs exactly two names, or none to clear every pair")
        name_a, name_b = names
        if store.clear_distinct_pair(name_a, name_b, scope):
            io.print(ok("Cleared", f"{name_a} / {name_b}"))
        else:
            io.print(warning(f"{name_a} / {name_b}", "not recorded as distinct"))
        return
    raise InputError(f"Unknown distinct action: {action}")
