"""
Produced API of the normalizer.

NormalizationService ties the pipeline together:
collect → resolve → suggest → (user confirmation) → commit → learn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from .collector import DEFAULT_BATCH_SIZE, fetch_person_records
from .core.identity.models import PersonRecord
from .core.identity.planner import Suggestion, SuggestionPlanner
from .core.identity.resolver import VariantResolver
from .item_store import ItemFilter, ItemStore
from .models import CancelCheck, InputError, ProgressCallback, check_cancelled, emit_progress

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    suggestions: list[Suggestion] = field(default_factory=list)
    surname_frequencies: dict[str, int] = field(default_factory=dict)
    total_records: int = 0
    total_unique_surnames: int = 0
    total_variant_groups: int = 0
    skipped_records: int = 0
    suppressed_groups: int = 0

    def to_dict(self) -> dict:
        return {
            "total_records": self.total_records,
            "total_unique_surnames": self.total_unique_surnames,
            "total_variant_groups": self.total_variant_groups,
            "skipped_records": self.skipped_records,
            "suppressed_groups": self.suppressed_groups,
            "surname_frequencies": dict(self.surname_frequencies),
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
        }


@dataclass
class ApplyResult:
    total: int = 0
    applied: int = 0
    skipped: int = 0
    errors: int = 0
    updated_records: int = 0
    declined_recorded: int = 0
    failures: list[tuple[Any, str]] = field(default_factory=list)


class NormalizationService:
    """
    Analyze and apply name normalizations.

    Args:
        items: Item store the names come from and updates go to
        resolver: Variant detection
        planner: Suggestion building, commit and learning
        item_filter: Restricts collection to matching items
        scope: Learning scope for accepted mappings (usually the collection)
    """

    def __init__(
        self,
        items: ItemStore,
        resolver: VariantResolver,
        planner: SuggestionPlanner,
        *,
        item_filter: Optional[ItemFilter] = None,
        scope: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.items = items
        self.resolver = resolver
        self.planner = planner
        self.item_filter = item_filter
        self.scope = scope
        self.batch_size = batch_size

    def analyze(
        self,
        records: Iterable[PersonRecord],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> AnalysisResult:
        """
        Resolve variant groups for already-collected records and turn them
        into suggestions. Read-only: nothing is written anywhere.

        Raises:
            CancellationSignal: should_cancel asked to stop
        """
        records = list(records)
        resolved = self.resolver.resolve(records, on_progress, should_cancel)
        check_cancelled(should_cancel, "generating_suggestions")
        emit_progress(on_progress, "generating_suggestions", 0, len(resolved.groups))
        suggestions = self.planner.build_suggestions(resolved.groups)
        emit_progress(on_progress, "generating_suggestions", len(resolved.groups), len(resolved.groups))
        result = AnalysisResult(
            suggestions=suggestions,
            surname_frequencies=resolved.surname_frequencies,
            total_records=len(records),
            total_unique_surnames=resolved.total_unique_surnames,
            total_variant_groups=len(resolved.groups),
            skipped_records=resolved.skipped_records,
            suppressed_groups=resolved.suppressed_groups,
        )
        emit_progress(on_progress, "complete", 100, 100, suggestions=len(suggestions))
        return result

    def collect_and_analyze(
        self,
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> AnalysisResult:
        records = fetch_person_records(
            self.items,
            self.item_filter,
            batch_size=self.batch_size,
            on_progress=on_progress,
            should_cancel=should_cancel,
        )
        return self.analyze(records, on_progress, should_cancel)

    def apply_suggestions(
        self,
        suggestions: Sequence[Suggestion],
        confirmed: Sequence[bool],
        on_progress: Optional[ProgressCallback] = None,
        *,
        record_declines: bool = True,
    ) -> ApplyResult:
        """
        Commit the confirmed suggestions and learn from the rest.

        confirmed holds one flag per suggestion. Unconfirmed suggestions are
        recorded as distinct pairs unless record_declines is False.
        """
        if len(confirmed) != len(suggestions):
            raise InputError(
                f"Got {len(confirmed)} confirmation flag(s) for {len(suggestions)} suggestion(s)"
            )
        accepted = [s for s, flag in zip(suggestions, confirmed) if flag]
        declined = [s for s, flag in zip(suggestions, confirmed) if not flag]
        result = ApplyResult(total=len(suggestions))

        if accepted:
            outcome = self.planner.commit(accepted, self.items, on_progress, scope=self.scope)
            result.updated_records = outcome.updated_records
            result.failures = list(outcome.failures)
            result.errors = len(outcome.failures)
            result.applied = outcome.applied
            result.skipped += len(accepted) - result.applied
        if declined:
            result.skipped += len(declined)
            if record_declines:
                result.declined_recorded = self.planner.decline(declined)
        emit_progress(on_progress, "complete", 100, 100, applied=result.applied, errors=result.errors)
        logger.info(
            "Applied %d of %d suggestion(s); %d item(s) updated, %d error(s)",
            result.applied,
            result.total,
            result.updated_records,
            result.errors,
        )
        return result
