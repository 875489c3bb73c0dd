from __future__ import annotations

import json
from typing import Optional

from ..core.identity.given_names import normalize_given_name
from ..core.identity.parser import NameTokenizer
from ..prompt_io import ConsolePromptIO, PromptIO

FIELDS = ("first_name", "middle_name", "prefix", "last_name", "suffix")


def run(
    tokenizer: NameTokenizer,
    names: list[str],
    *,
    json_output: bool = False,
    io: Optional[PromptIO] = None,
) -> None:
    io = io or ConsolePromptIO()
    parsed = tokenizer.parse_many(names)
    if json_output:
        rows = [
            {**{name: getattr(item, name) for name in FIELDS}, "original": item.original,
             "given_key": normalize_given_name(item.given_name)}
            for item in parsed
        ]
        io.print(json.dumps(rows, ensure_ascii=False, indent=2))
        return
    for item in parsed:
        io.print(f"{item.original} → {item.display()}")
        for name in FIELDS:
            part = getattr(item, name)
            if part:
                io.print(f"  {name}: {part}")
        key = normalize_given_name(item.given_name)
        if key:
            io.print(f"  given_key: {key}")
