from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from ..mapping_store import MappingStore
from ..models import InputError
from ..prompt_io import ConsolePromptIO, PromptIO
from .output import ok, value, warning


def run(
    store: MappingStore,
    action: str,
    *,
    name: Optional[str] = None,
    path: Optional[Path] = None,
    merge: bool = False,
    io: Optional[PromptIO] = None,
) -> None:
    io = io or ConsolePromptIO()
    match action:
        case "list":
            entries = store.all_mappings()
            if not entries:
                io.print("No learned mappings.")
                return
            for key in sorted(entries):
                entry = entries[key]
                io.print(f"{entry.raw} → {entry.normalized} (used {entry.usage_count}x, confidence {entry.confidence:.2f})")
            scopes = store.available_scopes()
            for scope in scopes:
                io.print(value(f"Scope {scope['id']}", scope["count"], ", ".join(scope["field_types"])))
        case "stats":
            stats = store.statistics()
            io.print(value("Mappings", stats["total_mappings"]))
            io.print(value("Total usage", stats["total_usage"]))
            io.print(value("Average usage", f"{stats['average_usage']:.2f}"))
            io.print(value("Average confidence", f"{stats['average_confidence']:.2f}"))
            scoped = store.scoped_statistics()
            io.print(value("Scoped mappings", scoped["total_scoped_mappings"], f"{scoped['scopes']} scope(s)"))
            io.print(value("Distinct pairs", len(store.list_distinct_pairs())))
        case "lookup":
            if not name:
                raise InputError("lookup needs a name")
            normalized = store.lookup(name)
            if normalized is not None:
                io.print(ok(name, normalized))
                return
            similar = store.find_similar(name)
            if not similar:
                io.print(warning(name, "no mapping"))
                return
            io.print(f"No exact mapping for {name}; similar:")
            for match in similar:
                io.print(f"  {match.raw} → {match.normalized} ({match.similarity:.2f})")
        case "remove":
            if not name:
                raise InputError("remove needs a name")
            if store.remove(name):
                io.print(ok("Removed", name))
            else:
                io.print(warning(name, "no mapping"))
        case "clear":
            count = len(store.all_mappings())
            store.clear()
            io.print(ok("Cleared", f"{count} mapping(s)"))
        case "export":
            if path is None:
                raise InputError("export needs a file")
            data = store.export()
            with path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
                fh.write("\n")
            io.print(ok("Exported", f"{len(data['mappings'])} mapping(s) to {path}"))
        case "import":
            if path is None:
                raise InputError("import needs a file")
            try:
                with path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                raise InputError(f"Cannot read {path}: {exc}") from exc
            imported = store.import_data(data, merge=merge)
            io.print(ok("Imported", f"{imported} mapping(s)"))
        case _:
            raise InputError(f"Unknown mappings action: {action}")
