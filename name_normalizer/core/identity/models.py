"""
Domain models for name identities and variant groups.

These are pure data models with no dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, NamedTuple, Optional

SURNAME = "surname"
GIVEN_NAME = "given-name"

VariantKind = Literal["surname", "given-name"]


@dataclass(frozen=True, slots=True)
class ParsedName:
    """
    A raw personal name split into its parts.

    Example:
        "Maria del Carmen Rodriguez" parses to:
        - first_name: "Maria"
        - prefix: "del Carmen"
        - last_name: "Rodriguez"
    """
    prefix: str = ""
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    suffix: str = ""
    original: str = ""

    @property
    def given_name(self) -> str:
        """First and middle names joined, as stored in a creator's first-name field."""
        return " ".join(part for part in (self.first_name, self.middle_name) if part)

    def is_empty(self) -> bool:
        return not (self.prefix or self.first_name or self.middle_name or self.last_name or self.suffix)

    def display(self) -> str:
        parts = (self.first_name, self.middle_name, self.prefix, self.last_name, self.suffix)
        return " ".join(part for part in parts if part)


@dataclass(frozen=True, slots=True)
class ItemRef:
    """Provenance for one observation of a name: the item it was found on."""
    id: int | str
    key: str = ""
    title: str = ""
    year: Optional[str] = None
    display_author: str = ""
    item_type: str = ""

    @property
    def dedupe_key(self) -> str:
        return self.key or str(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "title": self.title,
            "year": self.year,
            "display_author": self.display_author,
            "item_type": self.item_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ItemRef":
        return cls(
            id=data["id"],
            key=data.get("key") or "",
            title=data.get("title") or "",
            year=data.get("year"),
            display_author=data.get("display_author") or "",
            item_type=data.get("item_type") or "",
        )


@dataclass
class PersonRecord:
    """
    One observed creator spelling, aggregated over the items it appears on.

    Rebuilt on every analysis pass and never persisted.
    """
    first_name: str
    last_name: str
    occurrence_count: int = 1
    evidence: list[ItemRef] = field(default_factory=list)


class IdentityKey(NamedTuple):
    """The (given name, surname) pair treated as one person."""
    given: str
    surname: str


@dataclass(frozen=True, slots=True)
class NameForm:
    """An exact (first name, last name) spelling as stored on items."""
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass
class VariantMember:
    """One spelling inside a variant group."""
    text: str
    """Displayed variant: the surname for surname groups, the full name otherwise"""

    frequency: int
    """Total occurrences across every form folded into this member"""

    evidence: list[ItemRef] = field(default_factory=list)
    """Items carrying this spelling, de-duplicated and capped"""

    forms: list[NameForm] = field(default_factory=list)
    """Raw spellings as stored on items; operations rewrite these"""

    item_ids: list[int | str] = field(default_factory=list)
    """Every item carrying one of the forms, uncapped"""

    first_name: str = ""
    last_name: str = ""


@dataclass
class VariantGroup:
    """
    Differently-spelled observations believed to denote the same surname
    or the same given name of one identity.
    """
    kind: VariantKind
    canonical: str
    """Recommended spelling: the surname, or the full name for given-name groups"""

    members: list[VariantMember]
    similarity: float = 1.0

    surname_key: str = ""
    """Lowercased surname the group belongs to"""

    given_key: str = ""
    """Normalized given-name key (see normalize_given_name)"""

    canonical_first_name: str = ""
    canonical_last_name: str = ""

    @property
    def total_frequency(self) -> int:
        return sum(member.frequency for member in self.members)


@dataclass(frozen=True, slots=True)
class GivenNameToken:
    """A word or a single-letter initial from a given name."""
    kind: Literal["word", "initial"]
    value: str

    @property
    def is_word(self) -> bool:
        return self.kind == "word"

    @property
    def is_initial(self) -> bool:
        return self.kind == "initial"


@dataclass(frozen=True, slots=True)
class TokenSignature:
    """
    Initials and extra words of a given-name realization.

    The first word is the base word and is not part of the signature. Two
    realizations may cluster only when their signatures share a token.
    """
    initials: frozenset[str] = frozenset()
    extra_words: frozenset[str] = frozenset()

    @property
    def has_connectors(self) -> bool:
        return bool(self.initials or self.extra_words)

    def overlaps(self, other: "TokenSignature") -> bool:
        return bool(self.initials & other.initials or self.extra_words & other.extra_words)

    def merge(self, other: "TokenSignature") -> "TokenSignature":
        return TokenSignature(
            initials=self.initials | other.initials,
            extra_words=self.extra_words | other.extra_words,
        )


@dataclass(frozen=True, slots=True)
class GivenNameCanonical:
    """Best-supported token breakdown of a given name within a bucket or cluster."""
    base_word: str = ""
    extra_words: tuple[str, ...] = ()
    initials: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class VariantPair:
    """Two variant spellings and the scope their same/distinct decision applies to."""
    name_a: str
    name_b: str
    scope: str


def pair_scope(kind: str, surname_key: str) -> str:
    """Decision scope: "surname", or "given:<surname>" for given-name groups."""
    if kind == SURNAME:
        return SURNAME
    return f"given:{surname_key}"


def pairwise(names: list[str], scope: str) -> list[VariantPair]:
    """Every unordered pair of non-blank names, in input order."""
    cleaned = [name.strip() for name in names if name and name.strip()]
    pairs: list[VariantPair] = []
    for i, name_a in enumerate(cleaned):
        for name_b in cleaned[i + 1:]:
            pairs.append(VariantPair(name_a, name_b, scope))
    return pairs
