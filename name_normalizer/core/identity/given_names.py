"""
Given-name tokens, normalization keys and canonical composition.

A given name such as "Michael K." or "J.R.R." is broken into word and
initial tokens. Tokens drive three decisions:
- the normalized key that buckets realizations of one given name
- the token signature that decides which realizations may cluster
- the recommended spelling for a cluster

All functions are pure and have no I/O dependencies.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from .constants import GIVEN_NAME_EQUIVALENTS
from .models import GivenNameCanonical, GivenNameToken, TokenSignature
from .similarity import diacritic_invariant_form

INITIAL_KEY_PREFIX = "initial:"

_SPLIT_GIVEN = re.compile(r"[\s-]+")
_VOWELS = set("AEIOUY")


def _letters(value: str) -> str:
    return "".join(char for char in value if char.isalpha())


def to_title_case(word: str) -> str:
    """
    Title-case a word written entirely in upper or lower case.

    Mixed-case words ("DeShawn", "McKenzie") are already deliberate and are
    returned unchanged.
    """
    if not word:
        return word
    if word.isupper() or word.islower():
        return "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))
    return word


def is_likely_initial_sequence(cleaned: str, original_token: str = "") -> bool:
    """
    Whether a 2-4 letter token is really a run of initials.

    Examples:
        ("JR", "J.R.") → True   (written with periods)
        ("JRR", "JRR") → True   (no vowel)
        ("Ann", "Ann") → False
    """
    if not cleaned or not cleaned.isalpha():
        return False
    if not 2 <= len(cleaned) <= 4:
        return False
    if "." in original_token:
        return True
    folded = diacritic_invariant_form(cleaned).upper()
    return not any(char in _VOWELS for char in folded)


def normalize_given_name(first_name: Optional[str]) -> str:
    """
    Bucket key for a given name.

    Process:
    1. Split on whitespace and hyphens, drop periods
    2. Only single letters → "initial:<LETTERS>"
    3. One token that is a run of initials → "initial:<LETTERS>"
    4. Nickname table hit on the first token → its canonical name
    5. Otherwise the first token, lowercased and accent-folded

    Examples:
        "J." → "initial:J"
        "J. R." → "initial:JR"
        "Bill" → "william"
        "Michael K." → "michael"

    Returns:
        The key, or "" for a blank given name
    """
    trimmed = (first_name or "").strip()
    if not trimmed:
        return ""
    tokens = [token for token in _SPLIT_GIVEN.split(trimmed) if token]
    cleaned = [token.replace(".", "") for token in tokens]
    pairs = [(c, t) for c, t in zip(cleaned, tokens) if c]
    if not pairs:
        return ""
    if all(len(c) == 1 for c, _ in pairs):
        return INITIAL_KEY_PREFIX + "".join(c for c, _ in pairs).upper()
    if len(pairs) == 1 and is_likely_initial_sequence(pairs[0][0], pairs[0][1]):
        return INITIAL_KEY_PREFIX + pairs[0][0].upper()
    primary = diacritic_invariant_form(pairs[0][0])
    return GIVEN_NAME_EQUIVALENTS.get(primary, primary)


def is_initial_key(key: str) -> bool:
    return key.startswith(INITIAL_KEY_PREFIX)


def find_initial_destination(initial_key: str, full_keys: Iterable[str]) -> Optional[str]:
    """
    The one full-name key an initial-only key should join.

    Multi-letter initials first look for keys starting with all the
    letters, then fall back to the first letter. The initial joins only
    when exactly one key qualifies, so "J." next to both "john" and "jane"
    stays on its own.
    """
    letters = initial_key[len(INITIAL_KEY_PREFIX):].lower()
    if not letters:
        return None
    keys = [key for key in full_keys if key and not is_initial_key(key)]
    candidates: list[str] = []
    if len(letters) > 1:
        candidates = [key for key in keys if key.startswith(letters)]
    if not candidates:
        candidates = [key for key in keys if key[:1] == letters[0]]
    if len(candidates) == 1:
        return candidates[0]
    return None


def parse_given_name_tokens(name: Optional[str]) -> list[GivenNameToken]:
    """
    Break a given name into word and initial tokens.

    Examples:
        "Michael K." → [word Michael, initial K]
        "J.R.R." → [initial J, initial R, initial R]
        "jean-pierre" → [word Jean-Pierre]
    """
    trimmed = (name or "").strip()
    if not trimmed:
        return []
    parsed: list[GivenNameToken] = []
    for token in trimmed.split():
        cleaned = _letters(token)
        if not cleaned:
            continue
        if is_likely_initial_sequence(cleaned, token):
            parsed.extend(GivenNameToken("initial", letter) for letter in cleaned.upper())
        elif len(cleaned) == 1:
            parsed.append(GivenNameToken("initial", cleaned.upper()))
        else:
            word = "".join(char for char in token if char.isalpha() or char == "-").strip("-")
            parsed.append(GivenNameToken("word", to_title_case(word)))
    return parsed


def extract_token_signature(tokens: Sequence[GivenNameToken]) -> TokenSignature:
    """Initials plus every word after the first (the base word is excluded)."""
    initials: set[str] = set()
    extra_words: set[str] = set()
    base_seen = False
    for token in tokens:
        if token.is_word:
            if not base_seen:
                base_seen = True
                continue
            extra_words.add(token.value.lower())
        else:
            initials.add(token.value.upper())
    return TokenSignature(frozenset(initials), frozenset(extra_words))


def select_canonical_given_name(
    realizations: Iterable[tuple[str, int]], normalized_key: str = ""
) -> GivenNameCanonical:
    """
    Token breakdown of the most word-like realization.

    Each (given name, count) is weighted by count plus token count, with a
    large bonus when it contains a real word, so a full name always beats a
    bare initial. The first realization wins ties.
    """
    fallback_base = ""
    if normalized_key and not is_initial_key(normalized_key):
        fallback_base = to_title_case(normalized_key)

    best_tokens: list[GivenNameToken] = []
    best_weight: Optional[int] = None
    for raw, count in realizations:
        tokens = parse_given_name_tokens(raw)
        if not tokens:
            continue
        weight = max(count, 1) + len(tokens)
        if any(token.is_word for token in tokens):
            weight += 1000
        if best_weight is None or weight > best_weight:
            best_tokens = tokens
            best_weight = weight

    base_token = next((token for token in best_tokens if token.is_word), None)
    base_word = base_token.value if base_token else fallback_base
    extra_words: list[str] = []
    initials: list[str] = []
    base_consumed = False
    for token in best_tokens:
        if token.is_word:
            if not base_consumed and (base_token is None or token.value == base_token.value):
                base_consumed = True
                continue
            if token.value not in extra_words:
                extra_words.append(token.value)
        elif token.value.upper() not in initials:
            initials.append(token.value.upper())
    return GivenNameCanonical(base_word, tuple(extra_words), tuple(initials))


def compose_given_name(tokens: Sequence[GivenNameToken], canonical: GivenNameCanonical) -> str:
    """
    Display form of one realization, completed from the canonical breakdown.

    A realization made only of initials borrows the canonical base word,
    extra words and initials ("M." → "Michael K." when the canonical is
    "Michael K."). Realizations with a word keep their own tokens. The base
    word's own initial is never repeated.
    """
    base = ""
    additional: list[str] = []
    ordered_initials: list[str] = []
    has_word = False
    for token in tokens:
        if token.is_word:
            has_word = True
            if not base:
                base = token.value
            elif token.value not in additional:
                additional.append(token.value)
        else:
            letter = token.value.upper()
            if letter not in ordered_initials:
                ordered_initials.append(letter)
    initial_only = not has_word and bool(ordered_initials)

    if not base and canonical.base_word:
        base = canonical.base_word
    base_initial = base[:1].upper()
    if not base and ordered_initials:
        base = f"{ordered_initials.pop(0)}."

    if initial_only:
        for word in canonical.extra_words:
            if word and word not in additional and word != base:
                additional.append(word)

    combined: list[str] = []
    seen: set[str] = set()

    def append_initial(letter: str) -> None:
        upper = letter.upper()
        if upper in seen:
            return
        seen.add(upper)
        if upper != base_initial:
            combined.append(f"{upper}.")

    for letter in ordered_initials:
        append_initial(letter)
    if initial_only:
        for letter in canonical.initials:
            append_initial(letter)

    parts = ([base] if base else []) + additional + combined
    return " ".join(parts).strip()


def recommend_given_name(variant_first_names: Sequence[str], canonical: GivenNameCanonical) -> str:
    """
    Recommended given name for a cluster.

    Base word first, then every distinct extra word, then initials as "X.".
    Initials are dropped entirely when any variant is a plain word with no
    initial, so "Fred" never turns into "Fred R. E. D.".
    """
    if not variant_first_names:
        return ""

    def push_unique(collection: list[str], value: str) -> None:
        if value and value not in collection:
            collection.append(value)

    base = to_title_case(canonical.base_word) if canonical.base_word else ""
    extra_words: list[str] = []
    initials: list[str] = []
    has_plain_word_variant = False
    for first_name in variant_first_names:
        tokens = parse_given_name_tokens(first_name)
        has_word = any(token.is_word for token in tokens)
        has_initial = any(token.is_initial for token in tokens)
        if has_word and not has_initial:
            has_plain_word_variant = True
        word_seen = False
        for token in tokens:
            if token.is_word:
                if not word_seen:
                    word_seen = True
                    if not base:
                        base = token.value
                else:
                    push_unique(extra_words, token.value)
            else:
                push_unique(initials, token.value.upper())

    for word in canonical.extra_words:
        push_unique(extra_words, word)
    if not has_plain_word_variant:
        for letter in canonical.initials:
            push_unique(initials, letter.upper())

    if not base:
        fallback = parse_given_name_tokens(variant_first_names[0])
        word = next((token for token in fallback if token.is_word), None)
        if word is not None:
            base = word.value
        else:
            initial = next((token for token in fallback if token.is_initial), None)
            if initial is not None:
                base = f"{initial.value}."
                if initial.value in initials:
                    initials.remove(initial.value)

    base_initial = base[:1].upper()
    if base_initial in initials:
        initials.remove(base_initial)
    if has_plain_word_variant:
        initials.clear()

    # Extra words already in the base are not repeated.
    extra_words = [word for word in extra_words if word != base]
    parts = ([base] if base else []) + extra_words + [f"{letter}." for letter in initials]
    return " ".join(parts).strip()
