"""
Suggestion planning and commit.

Turns resolver groups into a de-duplicated suggestion list, compiles an
accepted suggestion into per-creator update operations, applies those
operations through the item store, and feeds accept/decline decisions back
into the learning store.

The learning store is consumed through the protocol below; items come from
any ItemStore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol, Sequence

from ...item_store import ItemRecord, ItemStore
from ...models import ExternalCollaboratorError, ProgressCallback, emit_progress
from .models import (
    SURNAME,
    ItemRef,
    NameForm,
    VariantGroup,
    VariantKind,
    VariantMember,
    VariantPair,
    pair_scope,
    pairwise,
)
from .resolver import DEFAULT_EVIDENCE_CAP, choose_canonical_spelling, merge_evidence

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_BATCH_SIZE = 200


class LearningSink(Protocol):
    """The parts of the mapping store the planner writes to."""

    def store(self, raw: str, normalized: str, confidence: float = 1.0, context: Optional[dict] = None) -> None:
        ...

    def store_scoped(
        self,
        raw: str,
        normalized: str,
        scope: str,
        field_type: str = "name",
        confidence: float = 1.0,
        context: Optional[dict] = None,
    ) -> None:
        ...

    def peek(self, raw: str) -> Optional[Any]:
        ...

    def record_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        ...

    def clear_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        ...


@dataclass
class Suggestion:
    """A proposed normalization shown to the user for confirmation."""
    kind: VariantKind
    canonical: str
    members: list[VariantMember]
    similarity: float = 1.0
    surname_key: str = ""
    given_key: str = ""
    canonical_first_name: str = ""
    canonical_last_name: str = ""
    learned: bool = False
    """Every non-canonical variant already maps to the canonical form"""

    @classmethod
    def from_group(cls, group: VariantGroup) -> "Suggestion":
        return cls(
            kind=group.kind,
            canonical=group.canonical,
            members=[_copy_member(member) for member in group.members],
            similarity=group.similarity,
            surname_key=group.surname_key,
            given_key=group.given_key,
            canonical_first_name=group.canonical_first_name,
            canonical_last_name=group.canonical_last_name,
        )

    @property
    def scope(self) -> str:
        return pair_scope(self.kind, self.surname_key)

    @property
    def total_frequency(self) -> int:
        return sum(member.frequency for member in self.members)

    def variant_names(self) -> list[str]:
        return [member.text for member in self.members]

    def variant_pairs(self) -> list[VariantPair]:
        return pairwise(self.variant_names(), self.scope)

    def describe(self) -> str:
        variants = ", ".join(f"{member.text} ({member.frequency})" for member in self.members)
        return f"[{self.kind}] {variants} -> {self.canonical}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "canonical": self.canonical,
            "similarity": self.similarity,
            "surname_key": self.surname_key,
            "given_key": self.given_key,
            "canonical_first_name": self.canonical_first_name,
            "canonical_last_name": self.canonical_last_name,
            "learned": self.learned,
            "members": [
                {
                    "text": member.text,
                    "frequency": member.frequency,
                    "first_name": member.first_name,
                    "last_name": member.last_name,
                    "forms": [[form.first_name, form.last_name] for form in member.forms],
                    "item_ids": list(member.item_ids),
                    "evidence": [ref.to_dict() for ref in member.evidence],
                }
                for member in self.members
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Suggestion":
        members = [
            VariantMember(
                text=entry["text"],
                frequency=int(entry.get("frequency", 0)),
                evidence=[ItemRef.from_dict(ref) for ref in entry.get("evidence", [])],
                forms=[NameForm(first, last) for first, last in entry.get("forms", [])],
                item_ids=list(entry.get("item_ids", [])),
                first_name=entry.get("first_name", ""),
                last_name=entry.get("last_name", ""),
            )
            for entry in data.get("members", [])
        ]
        return cls(
            kind=data["kind"],
            canonical=data["canonical"],
            members=members,
            similarity=float(data.get("similarity", 1.0)),
            surname_key=data.get("surname_key", ""),
            given_key=data.get("given_key", ""),
            canonical_first_name=data.get("canonical_first_name", ""),
            canonical_last_name=data.get("canonical_last_name", ""),
            learned=bool(data.get("learned", False)),
        )


@dataclass(frozen=True, slots=True)
class Operation:
    """Rewrite every creator spelled exactly (from_first, from_last) on the affected items."""
    kind: VariantKind
    from_first: str
    from_last: str
    to_first: str
    to_last: str
    affected_item_ids: tuple = ()

    @property
    def from_name(self) -> str:
        return NameForm(self.from_first, self.from_last).full_name

    @property
    def to_name(self) -> str:
        return NameForm(self.to_first, self.to_last).full_name

    def matches(self, creator: dict, original: Optional[NameForm] = None) -> bool:
        """
        Whether this operation rewrites `creator`.

        The field being changed must still hold the source spelling. The
        other field may hold its source value either now or in `original`,
        the creator as it was before any operation of this commit ran.
        """
        first = (creator.get("firstName") or "").strip()
        last = (creator.get("lastName") or "").strip()
        if self.kind == SURNAME:
            earlier = original.first_name if original else first
            return last == self.from_last and self.from_first in (first, earlier)
        earlier = original.last_name if original else last
        return first == self.from_first and self.from_last in (last, earlier)

    def apply(self, creator: dict) -> dict:
        """Rewrite only the field this operation changes."""
        updated = dict(creator)
        if self.kind == SURNAME:
            updated["lastName"] = self.to_last
        else:
            updated["firstName"] = self.to_first
        return updated

    def describe(self) -> str:
        if self.kind == SURNAME:
            return f"{self.from_last} → {self.to_last}"
        return f"{self.from_name} → {self.to_name}"


@dataclass
class OperationPlan:
    suggestion: Suggestion
    normalized_value: str
    operations: list[Operation] = field(default_factory=list)
    variant_pairs: list[VariantPair] = field(default_factory=list)


@dataclass
class CommitOutcome:
    plans: list[OperationPlan] = field(default_factory=list)
    updated_records: int = 0
    failures: list[tuple[Any, str]] = field(default_factory=list)
    fired: set[Operation] = field(default_factory=set)
    """Operations that rewrote at least one saved creator."""

    def was_applied(self, plan: OperationPlan) -> bool:
        return any(operation in self.fired for operation in plan.operations)

    @property
    def applied(self) -> int:
        return sum(1 for plan in self.plans if self.was_applied(plan))


def _copy_member(member: VariantMember) -> VariantMember:
    return VariantMember(
        text=member.text,
        frequency=member.frequency,
        evidence=list(member.evidence),
        forms=list(member.forms),
        item_ids=list(member.item_ids),
        first_name=member.first_name,
        last_name=member.last_name,
    )


def _merge_members(
    existing: list[VariantMember], incoming: Iterable[VariantMember], evidence_cap: int
) -> list[VariantMember]:
    by_text: dict[str, VariantMember] = {member.text.lower(): member for member in existing}
    for member in incoming:
        current = by_text.get(member.text.lower())
        if current is None:
            by_text[member.text.lower()] = _copy_member(member)
            continue
        current.frequency += member.frequency
        current.evidence = merge_evidence(current.evidence, member.evidence, evidence_cap)
        current.forms.extend(form for form in member.forms if form not in current.forms)
        known = set(current.item_ids)
        current.item_ids.extend(item_id for item_id in member.item_ids if item_id not in known)
    return sorted(by_text.values(), key=lambda m: (-m.frequency, m.text))


class SuggestionPlanner:
    """
    Builds suggestions, operation plans and commits.

    Args:
        learning: Store receiving accepted mappings and distinct pairs
        learning_enabled: When False, commit and decline leave the store untouched
        auto_apply_learned: Flag suggestions already fully covered by stored mappings
    """

    def __init__(
        self,
        learning: Optional[LearningSink] = None,
        *,
        learning_enabled: bool = True,
        auto_apply_learned: bool = True,
        evidence_cap: int = DEFAULT_EVIDENCE_CAP,
        batch_size: int = DEFAULT_COMMIT_BATCH_SIZE,
    ) -> None:
        self.learning = learning
        self.learning_enabled = learning_enabled
        self.auto_apply_learned = auto_apply_learned
        self.evidence_cap = evidence_cap
        self.batch_size = max(1, batch_size)

    def build_suggestions(self, groups: Iterable[VariantGroup]) -> list[Suggestion]:
        """
        Flatten groups into suggestions.

        Surname groups with the same set of spellings (seen for different
        people) become one suggestion. Given-name groups merge only when they
        share surname, normalized key and recommended first name, so
        unrelated clusters under one surname stay apart.
        """
        suggestions: list[Suggestion] = []
        surname_index: dict[frozenset[str], Suggestion] = {}
        given_index: dict[tuple[str, str, str], Suggestion] = {}
        for group in groups:
            if len(group.members) < 2:
                continue
            if group.kind == SURNAME:
                key = frozenset(member.text for member in group.members)
                existing = surname_index.get(key)
                if existing is None:
                    surname_index[key] = suggestion = Suggestion.from_group(group)
                    suggestions.append(suggestion)
                    continue
                existing.members = _merge_members(existing.members, group.members, self.evidence_cap)
                existing.canonical = choose_canonical_spelling(
                    {member.text: member.frequency for member in existing.members}
                )
                existing.canonical_last_name = existing.canonical
                existing.surname_key = existing.canonical.lower()
            else:
                key = (group.surname_key, group.given_key, group.canonical_first_name)
                existing = given_index.get(key)
                if existing is None:
                    given_index[key] = suggestion = Suggestion.from_group(group)
                    suggestions.append(suggestion)
                    continue
                existing.members = _merge_members(existing.members, group.members, self.evidence_cap)
                existing.similarity = min(existing.similarity, group.similarity)

        for suggestion in suggestions:
            suggestion.learned = self._is_learned(suggestion)
        logger.info("Built %d suggestion(s)", len(suggestions))
        return suggestions

    def _is_learned(self, suggestion: Suggestion) -> bool:
        if not self.auto_apply_learned or self.learning is None:
            return False
        target = suggestion.canonical_last_name if suggestion.kind == SURNAME else suggestion.canonical
        pending = [member.text for member in suggestion.members if member.text != target]
        if not pending:
            return False
        for text in pending:
            entry = self.learning.peek(text)
            if entry is None or getattr(entry, "normalized", None) != target:
                return False
        return True

    def build_operation_plan(self, suggestion: Suggestion) -> OperationPlan:
        """
        Compile a suggestion into update operations.

        One operation per distinct raw spelling; spellings already equal to
        the target are skipped, which keeps a second commit a no-op.
        """
        plan = OperationPlan(
            suggestion=suggestion,
            normalized_value=suggestion.canonical.strip(),
            variant_pairs=suggestion.variant_pairs(),
        )
        seen: set[tuple[str, str]] = set()
        for member in suggestion.members:
            for form in member.forms:
                if (form.first_name, form.last_name) in seen:
                    continue
                seen.add((form.first_name, form.last_name))
                if suggestion.kind == SURNAME:
                    target = NameForm(form.first_name, suggestion.canonical_last_name or suggestion.canonical)
                else:
                    target = NameForm(suggestion.canonical_first_name, form.last_name)
                if target == form:
                    continue
                plan.operations.append(
                    Operation(
                        kind=suggestion.kind,
                        from_first=form.first_name,
                        from_last=form.last_name,
                        to_first=target.first_name,
                        to_last=target.last_name,
                        affected_item_ids=tuple(member.item_ids),
                    )
                )
        return plan

    def commit(
        self,
        suggestions: Sequence[Suggestion],
        items: ItemStore,
        on_progress: Optional[ProgressCallback] = None,
        scope: Optional[str] = None,
    ) -> CommitOutcome:
        """
        Apply confirmed suggestions to the item store, then learn from them.

        Items are fetched in sequential batches. A failing item is recorded
        and skipped; the rest of the batch still runs.
        """
        outcome = CommitOutcome(plans=[self.build_operation_plan(s) for s in suggestions])
        operations_by_item: dict[Any, list[Operation]] = {}
        for plan in outcome.plans:
            for operation in plan.operations:
                for item_id in operation.affected_item_ids:
                    operations_by_item.setdefault(item_id, []).append(operation)
        item_ids = list(operations_by_item)
        total = len(item_ids)
        emit_progress(
            on_progress,
            "operations-planned",
            0,
            total,
            operations=sum(len(plan.operations) for plan in outcome.plans),
            suggestions=len(suggestions),
        )

        processed = 0
        for start in range(0, total, self.batch_size):
            batch = item_ids[start:start + self.batch_size]
            try:
                records = items.get_records(batch)
            except Exception as exc:
                logger.warning("Failed to load %d item(s) for update: %s", len(batch), exc)
                outcome.failures.extend((item_id, str(exc)) for item_id in batch)
                processed += len(batch)
                continue
            for record in records:
                processed += 1
                try:
                    fired = self._apply_to_record(record, operations_by_item.get(record.id, []))
                    if fired:
                        outcome.updated_records += 1
                        outcome.fired.update(fired)
                except Exception as exc:
                    error = exc if isinstance(exc, ExternalCollaboratorError) else ExternalCollaboratorError(str(exc))
                    logger.warning("Failed to update item %s: %s", record.id, error)
                    outcome.failures.append((record.id, str(error)))
                emit_progress(on_progress, "operation-complete", processed, total, item_id=record.id)

        if self.learning_enabled and self.learning is not None:
            for plan in outcome.plans:
                self._learn_accepted(plan, outcome.fired, scope)
        logger.info(
            "Committed %d suggestion(s): %d item(s) updated, %d failure(s)",
            len(suggestions),
            outcome.updated_records,
            len(outcome.failures),
        )
        return outcome

    @staticmethod
    def _apply_to_record(record: ItemRecord, operations: list[Operation]) -> set[Operation]:
        """
        Run every matching operation on each creator and save once.

        A surname and a given-name operation can both hit one creator; each
        rewrites only its own field and fires at most once per creator.
        Passes repeat until nothing else matches, so the result does not
        depend on operation order. Returns the operations that fired.
        """
        fired: set[Operation] = set()
        if not operations:
            return fired
        rewritten: list[dict] = []
        for creator in record.get_creators():
            original = NameForm(
                (creator.get("firstName") or "").strip(),
                (creator.get("lastName") or "").strip(),
            )
            pending = list(operations)
            progressed = True
            while progressed:
                progressed = False
                for operation in list(pending):
                    if operation.matches(creator, original):
                        creator = operation.apply(creator)
                        fired.add(operation)
                        pending.remove(operation)
                        progressed = True
            rewritten.append(creator)
        if fired:
            record.set_creators(rewritten)
            record.save()
        return fired

    def _learn_accepted(self, plan: OperationPlan, fired: set[Operation], scope: Optional[str]) -> None:
        suggestion = plan.suggestion
        target = suggestion.canonical_last_name if suggestion.kind == SURNAME else plan.normalized_value
        context = {"kind": suggestion.kind, "surname_key": suggestion.surname_key}
        applied_forms = {
            (operation.from_first, operation.from_last) for operation in plan.operations if operation in fired
        }
        for member in suggestion.members:
            if member.text == target:
                continue
            if not any((form.first_name, form.last_name) in applied_forms for form in member.forms):
                continue
            if scope:
                self.learning.store_scoped(member.text, target, scope, suggestion.kind, suggestion.similarity, context)
            else:
                self.learning.store(member.text, target, suggestion.similarity, context)
        for pair in plan.variant_pairs:
            self.learning.clear_distinct_pair(pair.name_a, pair.name_b, pair.scope)
            self.learning.clear_distinct_pair(pair.name_a, pair.name_b, None)

    def decline(self, suggestions: Iterable[Suggestion]) -> int:
        """Record every variant pair of the declined suggestions as distinct people."""
        if not self.learning_enabled or self.learning is None:
            return 0
        recorded = 0
        for suggestion in suggestions:
            for pair in suggestion.variant_pairs():
                if self.learning.record_distinct_pair(pair.name_a, pair.name_b, pair.scope):
                    recorded += 1
        logger.info("Recorded %d distinct pair(s) from declined suggestions", recorded)
        return recorded
