"""
Persisted raw → canonical name mappings.

MappingStore keeps three collections, each serialized as JSON under its own
key of a KeyValueStore:
- global mappings keyed by a canonical form of the raw name
- scoped mappings keyed by "<scope>::<field type>::<canonical key>"
- distinct pairs: name pairs the user said are different people

Everything is loaded once at construction and written back on every
mutating call. A write that fails leaves the in-memory state as it was.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any, Callable, Optional

from .core.identity.similarity import PhoneticIndex, name_similarity
from .models import ExportFormatError, StoreError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
GLOBAL_SCOPE = "global"
DEFAULT_NAMESPACE = "name_normalizer"
DEFAULT_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_MAX_SUGGESTIONS = 5
DEFAULT_FULL_SCAN_LIMIT = 5000

_PUNCTUATION = re.compile(r"[.,]")
_WHITESPACE = re.compile(r"\s+")


def canonical_key(name: Optional[str]) -> str:
    """Lookup key: trimmed, lowercased, "." and "," removed, whitespace collapsed."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", _PUNCTUATION.sub("", name.strip().lower())).strip()


@dataclass
class MappingEntry:
    raw: str
    normalized: str
    confidence: float = 1.0
    created_at: float = 0.0
    last_used_at: float = 0.0
    usage_count: int = 1
    context: dict[str, Any] = field(default_factory=dict)
    scope: str = GLOBAL_SCOPE
    field_type: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MappingEntry":
        return cls(
            raw=str(data.get("raw", "")),
            normalized=str(data.get("normalized", "")),
            confidence=float(data.get("confidence", 1.0)),
            created_at=float(data.get("created_at", 0.0)),
            last_used_at=float(data.get("last_used_at", 0.0)),
            usage_count=int(data.get("usage_count", 0)),
            context=dict(data.get("context") or {}),
            scope=str(data.get("scope") or GLOBAL_SCOPE),
            field_type=str(data.get("field_type") or ""),
        )


def _copy_entry(entry: MappingEntry) -> MappingEntry:
    return MappingEntry.from_dict(entry.to_dict())


@dataclass(frozen=True, slots=True)
class SimilarMapping:
    raw: str
    normalized: str
    similarity: float
    usage_count: int
    scope: str = GLOBAL_SCOPE
    is_scoped: bool = False


@dataclass(frozen=True, slots=True)
class DistinctPair:
    scope: str
    name_a: str
    name_b: str
    recorded_at: float


class MappingStore:
    """
    Learned name mappings and distinct-pair feedback.

    Args:
        store: Byte storage the collections are persisted to
        namespace: Prefix of the three persisted keys
        confidence_threshold: Minimum similarity reported by find_similar
        max_suggestions: Maximum number of find_similar results
        full_scan_limit: Above this many keys, find_similar only scores
            keys sharing the query's phonetic bucket
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
        full_scan_limit: int = DEFAULT_FULL_SCAN_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._kv = store
        self.namespace = namespace
        self.confidence_threshold = confidence_threshold
        self.max_suggestions = max_suggestions
        self.full_scan_limit = full_scan_limit
        self._clock = clock
        self._lock = Lock()
        self.mappings_key = f"{namespace}_mappings"
        self.scoped_key = f"{namespace}_scoped_mappings"
        self.distinct_key = f"{namespace}_distinct_pairs"

        self._mappings: dict[str, MappingEntry] = {
            key: MappingEntry.from_dict(value) for key, value in self._load(self.mappings_key).items()
        }
        self._scoped: dict[str, MappingEntry] = {
            key: MappingEntry.from_dict(value) for key, value in self._load(self.scoped_key).items()
        }
        self._distinct: dict[str, dict] = self._load(self.distinct_key)
        self._index = PhoneticIndex(self._mappings)

    # Persistence

    def _load(self, key: str) -> dict[str, Any]:
        try:
            payload = self._kv.get(key)
        except Exception as exc:
            logger.warning("Could not read %s, starting empty: %s", key, exc)
            return {}
        if not payload:
            return {}
        try:
            data = json.loads(payload.decode("utf-8") if isinstance(payload, bytes) else payload)
            entries = data["entries"] if isinstance(data, dict) else data
            loaded = {str(k): v for k, v in entries}
            if not all(isinstance(value, dict) for value in loaded.values()):
                raise ValueError("entries must be objects")
            return loaded
        except (ValueError, TypeError, KeyError, UnicodeDecodeError) as exc:
            logger.warning("Discarding corrupt data under %s: %s", key, exc)
            return {}

    def _save(self, key: str, entries: dict[str, Any]) -> None:
        payload = json.dumps(
            {"version": EXPORT_VERSION, "entries": [[k, v] for k, v in entries.items()]},
            ensure_ascii=False,
        )
        try:
            self._kv.set(key, payload.encode("utf-8"))
        except Exception as exc:
            logger.warning("Failed to persist %s: %s", key, exc)
            raise StoreError(f"Failed to persist {key}: {exc}") from exc

    def _save_mappings(self) -> None:
        self._save(self.mappings_key, {k: v.to_dict() for k, v in self._mappings.items()})

    def _save_scoped(self) -> None:
        self._save(self.scoped_key, {k: v.to_dict() for k, v in self._scoped.items()})

    def _save_distinct(self) -> None:
        self._save(self.distinct_key, self._distinct)

    # Global mappings

    def store(
        self,
        raw: str,
        normalized: str,
        confidence: float = 1.0,
        context: Optional[dict] = None,
    ) -> None:
        """Upsert a mapping, keeping the higher confidence and counting the use."""
        key = canonical_key(raw)
        if not key:
            return
        now = self._clock()
        with self._lock:
            existing = self._mappings.get(key)
            previous = _copy_entry(existing) if existing else None
            if existing is None:
                self._mappings[key] = MappingEntry(
                    raw=raw,
                    normalized=normalized,
                    confidence=confidence,
                    created_at=now,
                    last_used_at=now,
                    usage_count=1,
                    context=dict(context or {}),
                )
                self._index.add(key)
            else:
                existing.normalized = normalized
                existing.confidence = max(existing.confidence, confidence)
                existing.last_used_at = now
                existing.usage_count += 1
                existing.context.update(context or {})
            try:
                self._save_mappings()
            except StoreError:
                self._restore_mapping(key, previous)
                raise
        logger.debug("Stored mapping %r -> %r", raw, normalized)

    def _restore_mapping(self, key: str, previous: Optional[MappingEntry]) -> None:
        """Put the in-memory entry for key back to what it was before a failed write."""
        if previous is None:
            self._mappings.pop(key, None)
            self._index.discard(key)
        else:
            self._mappings[key] = previous
            self._index.add(key)

    def lookup(self, raw: str) -> Optional[str]:
        """Exact canonical-key hit; counts the use."""
        entry = self._touch(canonical_key(raw))
        return entry.normalized if entry else None

    def get_details(self, raw: str) -> Optional[MappingEntry]:
        entry = self._touch(canonical_key(raw))
        return MappingEntry.from_dict(entry.to_dict()) if entry else None

    def peek(self, raw: str) -> Optional[MappingEntry]:
        """Like get_details but leaves usage statistics alone."""
        return self._mappings.get(canonical_key(raw))

    def has_mapping(self, raw: str) -> bool:
        return canonical_key(raw) in self._mappings

    def _touch(self, key: str) -> Optional[MappingEntry]:
        with self._lock:
            entry = self._mappings.get(key)
            if entry is None:
                return None
            previous = _copy_entry(entry)
            entry.last_used_at = self._clock()
            entry.usage_count += 1
            try:
                self._save_mappings()
            except StoreError:
                self._mappings[key] = previous
                raise
            return entry

    def remove(self, raw: str) -> bool:
        key = canonical_key(raw)
        with self._lock:
            removed = self._mappings.pop(key, None)
            if removed is None:
                return False
            self._index.discard(key)
            try:
                self._save_mappings()
            except StoreError:
                self._restore_mapping(key, removed)
                raise
        return True

    def clear(self) -> None:
        with self._lock:
            previous = dict(self._mappings)
            self._mappings.clear()
            self._index.clear()
            try:
                self._save_mappings()
            except StoreError:
                self._mappings.update(previous)
                self._index = PhoneticIndex(self._mappings)
                raise

    def all_mappings(self) -> dict[str, MappingEntry]:
        return dict(self._mappings)

    def _similarity_candidates(self, query: str) -> list[str]:
        if len(self._mappings) <= self.full_scan_limit:
            return list(self._mappings)
        return sorted(self._index.candidates(query))

    def find_similar(self, raw: str) -> list[SimilarMapping]:
        """
        Stored mappings whose key resembles raw.

        Results are filtered to the confidence threshold, sorted by
        similarity then usage (both descending) and truncated to
        max_suggestions.
        """
        query = canonical_key(raw)
        if not query:
            return []
        results: list[SimilarMapping] = []
        for key in self._similarity_candidates(query):
            similarity = name_similarity(query, key)
            if similarity < self.confidence_threshold:
                continue
            entry = self._mappings[key]
            results.append(SimilarMapping(entry.raw, entry.normalized, similarity, entry.usage_count))
        results.sort(key=lambda r: (-r.similarity, -r.usage_count))
        return results[: self.max_suggestions]

    def statistics(self) -> dict[str, float]:
        total = len(self._mappings)
        usage = sum(entry.usage_count for entry in self._mappings.values())
        confidence = sum(entry.confidence for entry in self._mappings.values())
        return {
            "total_mappings": total,
            "total_usage": usage,
            "average_usage": usage / total if total else 0,
            "average_confidence": confidence / total if total else 0,
        }

    # Scoped mappings

    @staticmethod
    def scoped_key_for(raw: str, field_type: str, scope: Optional[str] = None) -> str:
        return f"{scope or GLOBAL_SCOPE}::{field_type}::{canonical_key(raw)}"

    def store_scoped(
        self,
        raw: str,
        normalized: str,
        scope: Optional[str],
        field_type: str = "name",
        confidence: float = 1.0,
        context: Optional[dict] = None,
    ) -> None:
        """Store under the scope and, as a fallback, globally."""
        if not canonical_key(raw):
            return
        merged_context = dict(context or {})
        merged_context.update({"field_type": field_type, "scope": scope or GLOBAL_SCOPE})
        self.store(raw, normalized, confidence, merged_context)
        now = self._clock()
        key = self.scoped_key_for(raw, field_type, scope)
        with self._lock:
            previous = self._scoped.get(key)
            self._scoped[key] = MappingEntry(
                raw=raw,
                normalized=normalized,
                confidence=confidence,
                created_at=now,
                last_used_at=now,
                usage_count=1,
                context=dict(context or {}),
                scope=scope or GLOBAL_SCOPE,
                field_type=field_type,
            )
            try:
                self._save_scoped()
            except StoreError:
                if previous is None:
                    del self._scoped[key]
                else:
                    self._scoped[key] = previous
                raise

    def lookup_scoped(self, raw: str, scope: Optional[str], field_type: str = "name") -> Optional[dict]:
        """Scoped entry first, then the global mapping."""
        key = self.scoped_key_for(raw, field_type, scope)
        with self._lock:
            entry = self._scoped.get(key)
            if entry is not None:
                previous = _copy_entry(entry)
                entry.last_used_at = self._clock()
                entry.usage_count += 1
                try:
                    self._save_scoped()
                except StoreError:
                    self._scoped[key] = previous
                    raise
                return {
                    "normalized": entry.normalized,
                    "confidence": entry.confidence,
                    "scope": entry.scope,
                    "is_scoped": True,
                }
        normalized = self.lookup(raw)
        if normalized is None:
            return None
        return {"normalized": normalized, "confidence": 1.0, "scope": GLOBAL_SCOPE, "is_scoped": False}

    def find_similar_scoped(self, raw: str, scope: Optional[str], field_type: str = "name") -> list[SimilarMapping]:
        query = canonical_key(raw)
        if not query:
            return []
        prefix = f"{scope or GLOBAL_SCOPE}::{field_type}::"
        results: list[SimilarMapping] = []
        for key, entry in self._scoped.items():
            if not key.startswith(prefix):
                continue
            similarity = name_similarity(query, key[len(prefix):])
            if similarity >= self.confidence_threshold:
                results.append(
                    SimilarMapping(entry.raw, entry.normalized, similarity, entry.usage_count, entry.scope, True)
                )
        seen = {result.normalized for result in results}
        for key in self._similarity_candidates(query):
            entry = self._mappings[key]
            if entry.context.get("field_type") != field_type or entry.normalized in seen:
                continue
            similarity = name_similarity(query, key)
            if similarity >= self.confidence_threshold:
                seen.add(entry.normalized)
                results.append(SimilarMapping(entry.raw, entry.normalized, similarity, entry.usage_count))
        results.sort(key=lambda r: (-r.similarity, -r.usage_count))
        return results[: self.max_suggestions]

    def available_scopes(self) -> list[dict]:
        scopes: dict[str, dict] = {}
        for entry in self._scoped.values():
            info = scopes.setdefault(entry.scope, {"id": entry.scope, "count": 0, "field_types": []})
            info["count"] += 1
            if entry.field_type not in info["field_types"]:
                info["field_types"].append(entry.field_type)
        return list(scopes.values())

    def clear_scope(self, scope: str) -> int:
        with self._lock:
            doomed = {key: entry for key, entry in self._scoped.items() if entry.scope == scope}
            for key in doomed:
                del self._scoped[key]
            if doomed:
                try:
                    self._save_scoped()
                except StoreError:
                    self._scoped.update(doomed)
                    raise
        return len(doomed)

    def scoped_statistics(self) -> dict:
        scopes = self.available_scopes()
        return {
            "total_scoped_mappings": len(self._scoped),
            "scopes": len(scopes),
            "scope_details": scopes,
        }

    # Distinct pairs

    @staticmethod
    def pair_key(name_a: str, name_b: str, scope: Optional[str] = None) -> Optional[str]:
        key_a, key_b = canonical_key(name_a), canonical_key(name_b)
        if not key_a or not key_b:
            return None
        first, second = sorted((key_a, key_b))
        return f"{scope or GLOBAL_SCOPE}::{first}|{second}"

    def record_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        """Mark two names as different people; True when newly recorded."""
        key = self.pair_key(name_a, name_b, scope)
        if key is None:
            return False
        with self._lock:
            if key in self._distinct:
                return False
            self._distinct[key] = {"scope": scope or GLOBAL_SCOPE, "timestamp": self._clock()}
            try:
                self._save_distinct()
            except StoreError:
                del self._distinct[key]
                raise
        return True

    def is_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        key = self.pair_key(name_a, name_b, scope)
        return key is not None and key in self._distinct

    def clear_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        key = self.pair_key(name_a, name_b, scope)
        if key is None:
            return False
        with self._lock:
            removed = self._distinct.pop(key, None)
            if removed is None:
                return False
            try:
                self._save_distinct()
            except StoreError:
                self._distinct[key] = removed
                raise
        return True

    def list_distinct_pairs(self) -> list[DistinctPair]:
        pairs: list[DistinctPair] = []
        for key, info in sorted(self._distinct.items()):
            scope, _, names = key.rpartition("::")
            name_a, _, name_b = names.partition("|")
            pairs.append(DistinctPair(scope or GLOBAL_SCOPE, name_a, name_b, float(info.get("timestamp", 0))))
        return pairs

    def clear_distinct_pairs(self) -> int:
        with self._lock:
            previous = dict(self._distinct)
            self._distinct.clear()
            try:
                self._save_distinct()
            except StoreError:
                self._distinct.update(previous)
                raise
        return len(previous)

    # Export / import

    def export(self) -> dict:
        return {
            "version": EXPORT_VERSION,
            "timestamp": self._clock(),
            "mappings": [[k, v.to_dict()] for k, v in self._mappings.items()],
            "scoped_mappings": [[k, v.to_dict()] for k, v in self._scoped.items()],
            "distinct_pairs": [[k, dict(v)] for k, v in self._distinct.items()],
        }

    def import_data(self, data: dict, merge: bool = False) -> int:
        """
        Load exported data, replacing everything unless merge is set.

        Raises:
            ExportFormatError: The data is not an export or has another version
        """
        if not isinstance(data, dict) or data.get("version") != EXPORT_VERSION:
            version = data.get("version") if isinstance(data, dict) else None
            raise ExportFormatError(f"Unsupported import data version: {version!r}")
        try:
            mappings = {str(k): MappingEntry.from_dict(v) for k, v in data.get("mappings", [])}
            scoped = {str(k): MappingEntry.from_dict(v) for k, v in data.get("scoped_mappings", [])}
            distinct = {str(k): dict(v) for k, v in data.get("distinct_pairs", [])}
        except (TypeError, ValueError, AttributeError) as exc:
            raise ExportFormatError(f"Malformed import data: {exc}") from exc
        with self._lock:
            previous = (dict(self._mappings), dict(self._scoped), dict(self._distinct))
            if not merge:
                self._mappings.clear()
                self._scoped.clear()
                self._distinct.clear()
            self._mappings.update(mappings)
            self._scoped.update(scoped)
            self._distinct.update(distinct)
            self._index = PhoneticIndex(self._mappings)
            try:
                self._save_mappings()
                self._save_scoped()
                self._save_distinct()
            except StoreError:
                # Collections written before the failure keep the imported
                # data on disk until the next successful write.
                self._mappings, self._scoped, self._distinct = previous
                self._index = PhoneticIndex(self._mappings)
                raise
        logger.info("Imported %d mapping(s), %d scoped, %d distinct pair(s)", len(mappings), len(scoped), len(distinct))
        return len(mappings)
