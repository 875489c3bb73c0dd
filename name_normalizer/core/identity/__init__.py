"""
Name identity domain logic.

This module handles:
- Name parsing (prefixes, suffixes, "Last, First" inversion)
- String and name similarity, diacritic folding, phonetic keys
- Given-name normalization and canonical composition
- Variant detection for surnames and given names
- Suggestion building and commit planning

All logic is pure business logic; storage and item access come in through
protocols.
"""

from __future__ import annotations

from .disjoint_set import DisjointSet
from .given_names import normalize_given_name, recommend_given_name
from .models import (
    GIVEN_NAME,
    SURNAME,
    IdentityKey,
    ItemRef,
    NameForm,
    ParsedName,
    PersonRecord,
    VariantGroup,
    VariantMember,
    VariantPair,
)
from .parser import NameTokenizer
from .planner import Operation, OperationPlan, Suggestion, SuggestionPlanner
from .resolver import ResolverResult, VariantResolver
from .similarity import (
    PhoneticIndex,
    diacritic_invariant_form,
    is_diacritic_only_variant,
    name_similarity,
    soundex_code,
)

__all__ = [
    "DisjointSet",
    "GIVEN_NAME",
    "IdentityKey",
    "ItemRef",
    "NameForm",
    "NameTokenizer",
    "Operation",
    "OperationPlan",
    "ParsedName",
    "PersonRecord",
    "PhoneticIndex",
    "ResolverResult",
    "SURNAME",
    "Suggestion",
    "SuggestionPlanner",
    "VariantGroup",
    "VariantMember",
    "VariantPair",
    "VariantResolver",
    "diacritic_invariant_form",
    "is_diacritic_only_variant",
    "name_similarity",
    "normalize_given_name",
    "recommend_given_name",
    "soundex_code",
]
