"""
Item store collaborator.

The normalizer only needs three things from the host library: a search that
returns item ids, a batched record fetch, and per-record creator get/set and
save. JsonLibrary implements that contract on a JSON file so the command
line tool can run against an exported library.

File layout::

    {"items": [{"id": 1, "key": "ABCD1234", "title": "...", "date": "2019",
                "itemType": "journalArticle", "collections": ["thesis"],
                "creators": [{"firstName": "Jane", "lastName": "Doe",
                              "creatorType": "author"}]}]}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Optional, Protocol, Sequence

from .models import ExternalCollaboratorError, InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ItemFilter:
    collection: Optional[str] = None
    item_type: Optional[str] = None


class ItemRecord(Protocol):
    id: Any

    def get_creators(self) -> list[dict]: ...

    def set_creators(self, creators: list[dict]) -> None: ...

    def save(self) -> None: ...


class ItemStore(Protocol):
    def search(self, item_filter: Optional[ItemFilter] = None) -> list[Any]: ...

    def get_records(self, ids: Sequence[Any]) -> list[ItemRecord]: ...


def _clean_creator(creator: Any) -> dict:
    if not isinstance(creator, dict):
        raise InputError(f"Creator must be an object, got {type(creator).__name__}")
    cleaned = dict(creator)
    if "name" in cleaned and "lastName" not in cleaned:
        # Single-field creators (institutions) carry the whole name in "name".
        cleaned["lastName"] = cleaned.pop("name")
    cleaned.setdefault("firstName", "")
    cleaned.setdefault("lastName", "")
    cleaned.setdefault("creatorType", "author")
    return cleaned


class JsonRecord:
    """One item of a JsonLibrary; changes reach disk on save()."""

    def __init__(self, library: "JsonLibrary", data: dict) -> None:
        self._library = library
        self._data = data
        self._pending: Optional[list[dict]] = None

    @property
    def id(self) -> Any:
        return self._data.get("id")

    @property
    def key(self) -> str:
        return str(self._data.get("key") or "")

    @property
    def title(self) -> str:
        return str(self._data.get("title") or "")

    @property
    def date(self) -> str:
        return str(self._data.get("date") or "")

    @property
    def item_type(self) -> str:
        return str(self._data.get("itemType") or "")

    def get_creators(self) -> list[dict]:
        creators = self._pending if self._pending is not None else self._data.get("creators") or []
        return [_clean_creator(creator) for creator in creators]

    def set_creators(self, creators: list[dict]) -> None:
        self._pending = [_clean_creator(creator) for creator in creators]

    def save(self) -> None:
        if self._pending is None:
            return
        self._library.update_creators(self.id, self._pending)
        self._data["creators"] = self._pending
        self._pending = None


class JsonLibrary:
    """File-backed ItemStore."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()
        self._items: dict[Any, dict] = {}
        self._order: list[Any] = []
        self._load()

    def _load(self) -> None:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except FileNotFoundError as exc:
            raise InputError(f"Library file not found: {self.path}") from exc
        except json.JSONDecodeError as exc:
            raise InputError(f"Library file {self.path} is not valid JSON: {exc}") from exc
        items = raw.get("items") if isinstance(raw, dict) else raw
        if not isinstance(items, list):
            raise InputError(f"Library file {self.path} must contain an 'items' list")
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning("Skipping library entry %d: not an object", position)
                continue
            item_id = item.get("id", position + 1)
            item["id"] = item_id
            if item_id in self._items:
                logger.warning("Duplicate item id %s in %s; keeping the first", item_id, self.path)
                continue
            self._items[item_id] = item
            self._order.append(item_id)
        logger.debug("Loaded %d item(s) from %s", len(self._order), self.path)

    def __len__(self) -> int:
        return len(self._order)

    def search(self, item_filter: Optional[ItemFilter] = None) -> list[Any]:
        if item_filter is None:
            return list(self._order)
        matches: list[Any] = []
        for item_id in self._order:
            item = self._items[item_id]
            if item_filter.collection and item_filter.collection not in (item.get("collections") or []):
                continue
            if item_filter.item_type and item.get("itemType") != item_filter.item_type:
                continue
            matches.append(item_id)
        return matches

    def get_records(self, ids: Sequence[Any]) -> list[JsonRecord]:
        records: list[JsonRecord] = []
        for item_id in ids:
            item = self._items.get(item_id)
            if item is None:
                logger.warning("Item %s not found in %s", item_id, self.path)
                continue
            records.append(JsonRecord(self, item))
        return records

    def update_creators(self, item_id: Any, creators: list[dict]) -> None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise ExternalCollaboratorError(f"Item {item_id} no longer exists")
            previous = item.get("creators")
            item["creators"] = creators
            try:
                self._write()
            except OSError as exc:
                item["creators"] = previous
                raise ExternalCollaboratorError(f"Failed to save item {item_id}: {exc}") from exc

    def _write(self) -> None:
        payload = {"items": [self._items[item_id] for item_id in self._order]}
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
            fh.write("\n")
        os.replace(tmp_path, self.path)
