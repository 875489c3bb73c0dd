from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import Settings
from .core.identity.parser import NameTokenizer
from .core.identity.planner import SuggestionPlanner
from .core.identity.resolver import VariantResolver
from .item_store import ItemFilter, JsonLibrary
from .mapping_store import MappingStore
from .models import InputError
from .services import NormalizationService
from .storage import SqliteKeyValueStore


@dataclass
class NormalizerApp:
    settings: Settings
    kv_store: SqliteKeyValueStore
    mappings: MappingStore
    tokenizer: NameTokenizer
    _library: JsonLibrary | None = None
    _service: NormalizationService | None = None

    @classmethod
    def create(cls, settings: Settings) -> "NormalizerApp":
        kv_store = SqliteKeyValueStore(settings.store.path)
        mappings = MappingStore(
            kv_store,
            namespace=settings.store.namespace,
            confidence_threshold=settings.matching.confidence_threshold,
            max_suggestions=settings.matching.max_suggestions,
            full_scan_limit=settings.matching.full_scan_limit,
        )
        return cls(settings=settings, kv_store=kv_store, mappings=mappings, tokenizer=NameTokenizer())

    def get_library(self, path: Optional[Path] = None) -> JsonLibrary:
        if self._library is None:
            library_path = path or self.settings.library.path
            if library_path is None:
                raise InputError("No library configured - set library.path or pass --library.")
            self._library = JsonLibrary(library_path)
        return self._library

    def get_service(self, library_path: Optional[Path] = None) -> NormalizationService:
        if self._service is None:
            matching = self.settings.matching
            resolver = VariantResolver(
                self.tokenizer,
                self.mappings,
                evidence_cap=matching.evidence_cap,
                progress_interval=matching.progress_interval,
            )
            planner = SuggestionPlanner(
                self.mappings,
                learning_enabled=self.settings.learning.enabled,
                auto_apply_learned=self.settings.learning.auto_apply_learned,
                evidence_cap=matching.evidence_cap,
                batch_size=self.settings.library.batch_size,
            )
            collection = self.settings.library.collection
            self._service = NormalizationService(
                self.get_library(library_path),
                resolver,
                planner,
                item_filter=ItemFilter(collection=collection) if collection else None,
                scope=collection,
                batch_size=self.settings.library.batch_size,
            )
        return self._service

    def close(self) -> None:
        self.kv_store.close()
