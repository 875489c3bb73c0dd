"""
Variant detection over a batch of person records.

Two passes run over the same observations:

1. Surname variants. Records are grouped by identity (normalized given
   name + core surname). Inside one identity, raw surname spellings that
   fold to the same diacritic-invariant form ("Müller", "Mueller",
   "MÜLLER") form a surname group. Different given names never share an
   identity, so "Alex Martin" and "Andrea Martin" are never compared.

2. Given-name variants. Inside one surname, given names are bucketed by
   their normalized key ("Bill" and "William" share "william"). Each
   bucket's realizations are clustered by token signature so that
   "Michael K." and "Michael W." never end up together.

Groups whose variants were previously marked distinct are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Sequence

from ...models import CancelCheck, ProgressCallback, check_cancelled, emit_progress
from .disjoint_set import DisjointSet
from .given_names import (
    compose_given_name,
    extract_token_signature,
    find_initial_destination,
    is_initial_key,
    normalize_given_name,
    parse_given_name_tokens,
    recommend_given_name,
    select_canonical_given_name,
)
from .models import (
    GIVEN_NAME,
    SURNAME,
    IdentityKey,
    ItemRef,
    NameForm,
    PersonRecord,
    TokenSignature,
    VariantGroup,
    VariantMember,
    pair_scope,
    pairwise,
)
from .parser import NameTokenizer
from .similarity import diacritic_invariant_form, name_similarity

logger = logging.getLogger(__name__)

DEFAULT_EVIDENCE_CAP = 25
DEFAULT_PROGRESS_INTERVAL = 50


class DistinctPairOracle(Protocol):
    """Answers whether two names were marked as different people."""

    def is_distinct_pair(self, name_a: str, name_b: str, scope: Optional[str] = None) -> bool:
        ...


def merge_evidence(existing: Sequence[ItemRef], incoming: Iterable[ItemRef], cap: int = DEFAULT_EVIDENCE_CAP) -> list[ItemRef]:
    """Union of two evidence lists, de-duplicated by key or id, keeping order, capped."""
    merged: list[ItemRef] = []
    seen: set[str] = set()
    for ref in list(existing) + list(incoming):
        if len(merged) >= cap:
            break
        if ref is None or ref.dedupe_key in seen:
            continue
        seen.add(ref.dedupe_key)
        merged.append(ref)
    return merged


def _unique_ids(refs: Iterable[ItemRef]) -> list[int | str]:
    ids: list[int | str] = []
    seen: set = set()
    for ref in refs:
        if ref is not None and ref.id not in seen:
            seen.add(ref.id)
            ids.append(ref.id)
    return ids


def _unique_ids_from(observations: Iterable["_Observation"]) -> list[int | str]:
    ids: list[int | str] = []
    seen: set = set()
    for observation in observations:
        for item_id in observation.item_ids:
            if item_id not in seen:
                seen.add(item_id)
                ids.append(item_id)
    return ids


def _spelling_rank(text: str, count: int) -> tuple:
    has_punctuation = any(not (char.isalnum() or char.isspace()) for char in text)
    letters = sum(1 for char in text if char.isalpha())
    return (-count, has_punctuation, -letters, text)


def choose_canonical_spelling(counts: dict[str, int]) -> str:
    """
    Frequency vote with a deterministic tie-break.

    Highest count wins; ties prefer no punctuation, then more letters,
    then lexicographic order.
    """
    if not counts:
        return ""
    return min(counts.items(), key=lambda item: _spelling_rank(item[0], item[1]))[0]


def cluster_by_signature(signatures: Sequence[TokenSignature], frequencies: Sequence[int]) -> list[list[int]]:
    """
    Cluster realizations whose signatures share an initial or an extra word.

    Realizations without any signature token are not joined to each other;
    they go to the cluster with the highest total frequency. When no
    realization has a signature token, everything is one cluster.

    Returns:
        Lists of indexes into signatures
    """
    size = len(signatures)
    if size <= 1:
        return [list(range(size))]
    connected = [i for i in range(size) if signatures[i].has_connectors]
    if not connected:
        return [list(range(size))]

    disjoint = DisjointSet(size)
    for position, i in enumerate(connected):
        for j in connected[position + 1:]:
            if signatures[i].overlaps(signatures[j]):
                disjoint.union(i, j)
    clusters = disjoint.groups(connected)

    connectorless = [i for i in range(size) if not signatures[i].has_connectors]
    if connectorless:
        totals = [sum(frequencies[i] for i in cluster) for cluster in clusters]
        dominant = totals.index(max(totals))
        clusters[dominant].extend(connectorless)
    return clusters


@dataclass
class _Observation:
    first_name: str
    last_name: str
    count: int
    evidence: list[ItemRef]
    item_ids: list[int | str]
    given_key: str
    core_surname: str

    @property
    def form(self) -> NameForm:
        return NameForm(self.first_name, self.last_name)


@dataclass
class _GivenVariant:
    display_first: str
    frequency: int = 0
    signature: TokenSignature = field(default_factory=TokenSignature)
    evidence: list[ItemRef] = field(default_factory=list)
    observations: list[_Observation] = field(default_factory=list)


@dataclass
class ResolverResult:
    surname_groups: list[VariantGroup] = field(default_factory=list)
    given_name_groups: list[VariantGroup] = field(default_factory=list)
    surname_frequencies: dict[str, int] = field(default_factory=dict)
    skipped_records: int = 0
    suppressed_groups: int = 0

    @property
    def total_unique_surnames(self) -> int:
        return len(self.surname_frequencies)

    @property
    def groups(self) -> list[VariantGroup]:
        return self.surname_groups + self.given_name_groups


class VariantResolver:
    """
    Finds surname and given-name variant groups.

    Collaborators are passed in: the tokenizer that extracts core surnames
    and an optional distinct-pair oracle (normally the MappingStore).
    """

    def __init__(
        self,
        tokenizer: Optional[NameTokenizer] = None,
        distinct_pairs: Optional[DistinctPairOracle] = None,
        *,
        evidence_cap: int = DEFAULT_EVIDENCE_CAP,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.tokenizer = tokenizer or NameTokenizer()
        self.distinct_pairs = distinct_pairs
        self.evidence_cap = evidence_cap
        self.progress_interval = max(1, progress_interval)

    def resolve(
        self,
        records: Iterable[PersonRecord],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ResolverResult:
        result = ResolverResult()
        observations = self._observe(records, result)
        for observation in observations:
            key = observation.last_name.lower()
            result.surname_frequencies[key] = result.surname_frequencies.get(key, 0) + observation.count

        identities = self.group_identities(observations)
        surname_groups = self.find_surname_variants(identities, on_progress, should_cancel)
        given_groups = self.find_given_name_variants(observations, on_progress, should_cancel)

        for group in surname_groups + given_groups:
            if self._is_suppressed(group):
                result.suppressed_groups += 1
                continue
            if group.kind == SURNAME:
                result.surname_groups.append(group)
            else:
                result.given_name_groups.append(group)
        logger.info(
            "Resolved %d surname group(s) and %d given-name group(s) from %d observation(s)",
            len(result.surname_groups),
            len(result.given_name_groups),
            len(observations),
        )
        return result

    def _observe(self, records: Iterable[PersonRecord], result: ResolverResult) -> list[_Observation]:
        observations: list[_Observation] = []
        for record in records:
            last = (getattr(record, "last_name", None) or "").strip()
            if not last:
                result.skipped_records += 1
                logger.debug("Skipping record without a surname: %r", record)
                continue
            first = (record.first_name or "").strip()
            observations.append(
                _Observation(
                    first_name=first,
                    last_name=last,
                    count=max(int(record.occurrence_count or 0), 1),
                    evidence=merge_evidence([], record.evidence or [], self.evidence_cap),
                    item_ids=_unique_ids(record.evidence or []),
                    given_key=normalize_given_name(first),
                    core_surname=self._core_surname(first, last),
                )
            )
        return observations

    def _core_surname(self, first: str, last: str) -> str:
        parsed = self.tokenizer.parse(f"{first} {last}" if first else last)
        return diacritic_invariant_form(parsed.last_name or last)

    def group_identities(self, observations: Sequence[_Observation]) -> dict[IdentityKey, list[_Observation]]:
        """
        Partition observations into identities.

        Initial-only given names join the single full-name identity with the
        same surname whose key starts with the initial; when several
        identities qualify the initial stays on its own.
        """
        identities: dict[IdentityKey, list[_Observation]] = {}
        pending_initials: list[_Observation] = []
        for observation in observations:
            if is_initial_key(observation.given_key):
                pending_initials.append(observation)
                continue
            identities.setdefault(IdentityKey(observation.given_key, observation.core_surname), []).append(observation)

        full_keys_by_surname: dict[str, list[str]] = {}
        for key in identities:
            full_keys_by_surname.setdefault(key.surname, []).append(key.given)
        for observation in pending_initials:
            destination = find_initial_destination(
                observation.given_key, full_keys_by_surname.get(observation.core_surname, [])
            )
            given = destination if destination is not None else observation.given_key
            identities.setdefault(IdentityKey(given, observation.core_surname), []).append(observation)
        return identities

    def find_surname_variants(
        self,
        identities: dict[IdentityKey, list[_Observation]],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> list[VariantGroup]:
        groups: list[VariantGroup] = []
        total = len(identities)
        for index, (identity, observations) in enumerate(identities.items()):
            if index % self.progress_interval == 0:
                check_cancelled(should_cancel, "analyzing_surnames")
                emit_progress(on_progress, "analyzing_surnames", index, total)

            spellings: dict[str, list[_Observation]] = {}
            for observation in observations:
                spellings.setdefault(observation.last_name, []).append(observation)
            if len(spellings) < 2:
                continue

            by_form: dict[str, list[str]] = {}
            for spelling in spellings:
                by_form.setdefault(diacritic_invariant_form(spelling), []).append(spelling)
            for variants in by_form.values():
                if len(variants) < 2:
                    continue
                groups.append(self._surname_group(identity, variants, spellings))
        emit_progress(on_progress, "analyzing_surnames", total, total)
        return groups

    def _surname_group(
        self,
        identity: IdentityKey,
        variants: list[str],
        spellings: dict[str, list[_Observation]],
    ) -> VariantGroup:
        counts = {spelling: sum(o.count for o in spellings[spelling]) for spelling in variants}
        canonical = choose_canonical_spelling(counts)
        first_names: dict[str, int] = {}
        members: list[VariantMember] = []
        for spelling in sorted(variants, key=lambda s: _spelling_rank(s, counts[s])):
            evidence: list[ItemRef] = []
            forms: list[NameForm] = []
            for observation in spellings[spelling]:
                evidence = merge_evidence(evidence, observation.evidence, self.evidence_cap)
                if observation.form not in forms:
                    forms.append(observation.form)
                first_names[observation.first_name] = first_names.get(observation.first_name, 0) + observation.count
            members.append(
                VariantMember(
                    text=spelling,
                    frequency=counts[spelling],
                    evidence=evidence,
                    forms=forms,
                    item_ids=_unique_ids_from(spellings[spelling]),
                    last_name=spelling,
                )
            )
        logger.debug("Surname variants for %s: %s -> %s", identity, variants, canonical)
        return VariantGroup(
            kind=SURNAME,
            canonical=canonical,
            members=members,
            similarity=1.0,
            surname_key=canonical.lower(),
            given_key=identity.given,
            canonical_first_name=choose_canonical_spelling(first_names),
            canonical_last_name=canonical,
        )

    def find_given_name_variants(
        self,
        observations: Sequence[_Observation],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> list[VariantGroup]:
        by_surname: dict[str, list[_Observation]] = {}
        for observation in observations:
            by_surname.setdefault(observation.last_name.lower(), []).append(observation)

        groups: list[VariantGroup] = []
        total = len(by_surname)
        for index, (surname_key, members) in enumerate(by_surname.items()):
            if index % self.progress_interval == 0:
                check_cancelled(should_cancel, "analyzing_given_names")
                emit_progress(on_progress, "analyzing_given_names", index, total)
            groups.extend(self._given_name_groups_for_surname(surname_key, members))
        emit_progress(on_progress, "analyzing_given_names", total, total)
        return groups

    def _given_name_groups_for_surname(self, surname_key: str, observations: list[_Observation]) -> list[VariantGroup]:
        buckets: dict[str, list[_Observation]] = {}
        for observation in observations:
            if not observation.given_key:
                continue
            buckets.setdefault(observation.given_key, []).append(observation)
        full_keys = [key for key in buckets if not is_initial_key(key)]
        for key in [key for key in buckets if is_initial_key(key)]:
            destination = find_initial_destination(key, full_keys)
            if destination is not None:
                buckets[destination].extend(buckets.pop(key))

        last_counts: dict[str, int] = {}
        for observation in observations:
            last_counts[observation.last_name] = last_counts.get(observation.last_name, 0) + observation.count
        display_last = choose_canonical_spelling(last_counts)

        groups: list[VariantGroup] = []
        for normalized_key, bucket in buckets.items():
            if len(bucket) < 2:
                continue
            canonical = select_canonical_given_name(((o.first_name, o.count) for o in bucket), normalized_key)
            variants: dict[str, _GivenVariant] = {}
            for observation in bucket:
                tokens = parse_given_name_tokens(observation.first_name)
                display_first = (
                    compose_given_name(tokens, canonical) or canonical.base_word or observation.first_name
                )
                variant = variants.setdefault(display_first.lower(), _GivenVariant(display_first))
                variant.frequency += observation.count
                variant.signature = variant.signature.merge(extract_token_signature(tokens))
                variant.evidence = merge_evidence(variant.evidence, observation.evidence, self.evidence_cap)
                variant.observations.append(observation)
            if len(variants) < 2:
                continue

            realized = list(variants.values())
            clusters = cluster_by_signature(
                [variant.signature for variant in realized],
                [variant.frequency for variant in realized],
            )
            for indexes in clusters:
                if len(indexes) < 2:
                    continue
                cluster = [realized[i] for i in indexes]
                groups.append(self._given_name_group(surname_key, normalized_key, display_last, cluster))
        return groups

    def _given_name_group(
        self,
        surname_key: str,
        normalized_key: str,
        display_last: str,
        cluster: list[_GivenVariant],
    ) -> VariantGroup:
        cluster_canonical = select_canonical_given_name(
            ((o.first_name, o.count) for variant in cluster for o in variant.observations),
            normalized_key,
        )
        recommended_first = recommend_given_name([variant.display_first for variant in cluster], cluster_canonical)
        canonical_full = f"{recommended_first} {display_last}".strip()
        cluster = sorted(cluster, key=lambda v: (-v.frequency, v.display_first))
        members = [
            VariantMember(
                text=f"{variant.display_first} {display_last}".strip(),
                frequency=variant.frequency,
                evidence=variant.evidence,
                forms=[o.form for o in variant.observations],
                item_ids=_unique_ids_from(variant.observations),
                first_name=variant.display_first,
                last_name=display_last,
            )
            for variant in cluster
        ]
        similarity = min(name_similarity(member.text, canonical_full) for member in members)
        logger.debug(
            "Given-name cluster %s/%s: %s -> %s",
            surname_key,
            normalized_key,
            [member.text for member in members],
            canonical_full,
        )
        return VariantGroup(
            kind=GIVEN_NAME,
            canonical=canonical_full,
            members=members,
            similarity=round(similarity, 4),
            surname_key=surname_key,
            given_key=normalized_key,
            canonical_first_name=recommended_first,
            canonical_last_name=display_last,
        )

    def _is_suppressed(self, group: VariantGroup) -> bool:
        if self.distinct_pairs is None:
            return False
        scope = pair_scope(group.kind, group.surname_key)
        for pair in pairwise([member.text for member in group.members], scope):
            if self.distinct_pairs.is_distinct_pair(pair.name_a, pair.name_b, pair.scope) or (
                self.distinct_pairs.is_distinct_pair(pair.name_a, pair.name_b, None)
            ):
                logger.debug("Suppressed %s group %s: %s marked distinct", group.kind, group.canonical, pair)
                return True
        return False
