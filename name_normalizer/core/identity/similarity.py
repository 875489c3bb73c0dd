"""
String similarity for personal names.

This module provides the scoring primitives used across the engine:
- Edit distance and its length-normalized similarity
- Jaro-Winkler similarity (prefix and transposition aware)
- Word overlap that understands initials and nicknames
- A blended name similarity built from the three above
- Soundex codes and bucket keys for coarse candidate bucketing
- Diacritic-invariant forms for surname variant detection

Only diacritic-invariant equality may merge two surnames. The fuzzy
scores rank candidates; they never decide a merge by themselves.

All functions are pure and have no I/O dependencies.
"""

from __future__ import annotations

import unicodedata
from collections import defaultdict
from typing import Iterable

from .constants import ABBREVIATION_LINKS, DIGRAPH_SUBSTITUTIONS, GIVEN_NAME_EQUIVALENTS, SOUNDEX_CODES

JARO_WINKLER_PREFIX_SCALE = 0.1
JARO_WINKLER_MAX_PREFIX = 4

NAME_SIMILARITY_WEIGHTS = (0.5, 0.3, 0.2)


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance: minimum single-character insertions, deletions
    and substitutions turning a into b.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def normalized_edit_similarity(a: str, b: str) -> float:
    """
    Edit distance scaled to [0, 1].

    Examples:
        ("", "") → 1.0
        ("", "abc") → 0.0
        ("kitten", "sitting") → 1 - 3/7

    Returns:
        1 - distance / max(len(a), len(b))
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - edit_distance(a, b) / max(len(a), len(b))


def jaro_winkler(s1: str, s2: str) -> float:
    """
    Jaro-Winkler similarity.

    Characters match when equal and within half the longer length of each
    other; half the out-of-order matches count as transpositions. A shared
    prefix of up to four characters boosts the score.
    """
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    len1, len2 = len(s1), len(s2)
    window = max(0, max(len1, len2) // 2 - 1)
    matched1 = [False] * len1
    matched2 = [False] * len2
    matches = 0
    for i, char in enumerate(s1):
        start = max(0, i - window)
        end = min(i + window + 1, len2)
        for j in range(start, end):
            if matched2[j] or s2[j] != char:
                continue
            matched1[i] = matched2[j] = True
            matches += 1
            break
    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i in range(len1):
        if not matched1[i]:
            continue
        while not matched2[k]:
            k += 1
        if s1[i] != s2[k]:
            transpositions += 1
        k += 1

    jaro = (matches / len1 + matches / len2 + (matches - transpositions / 2) / matches) / 3

    prefix = 0
    for char1, char2 in zip(s1[:JARO_WINKLER_MAX_PREFIX], s2[:JARO_WINKLER_MAX_PREFIX]):
        if char1 != char2:
            break
        prefix += 1
    return jaro + JARO_WINKLER_PREFIX_SCALE * prefix * (1 - jaro)


def are_nickname_equivalents(word1: str, word2: str) -> bool:
    """True when the two lowercase words are linked by the nickname tables."""
    canonical1 = GIVEN_NAME_EQUIVALENTS.get(word1)
    if canonical1 is not None and canonical1 == GIVEN_NAME_EQUIVALENTS.get(word2):
        return True
    return ABBREVIATION_LINKS.get(word1) == word2 or ABBREVIATION_LINKS.get(word2) == word1


def is_similar_word(word1: str, word2: str) -> bool:
    """
    Whether two name words may denote the same name.

    Matches when the words are equal ignoring periods and case, when one
    is a single-letter initial of the other, or when the nickname tables
    link them (in either direction).

    Examples:
        ("J.", "John") → True
        ("Bill", "William") → True
        ("Jane", "John") → False
    """
    w1 = word1.replace(".", "").lower()
    w2 = word2.replace(".", "").lower()
    if not w1 or not w2:
        return False
    if w1 == w2:
        return True
    if (len(w1) == 1 and w2.startswith(w1)) or (len(w2) == 1 and w1.startswith(w2)):
        return True
    return are_nickname_equivalents(w1, w2)


def word_overlap_similarity(s1: str, s2: str) -> float:
    """Share of words in the longer name that have a similar word in the other."""
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0
    words1 = s1.split()
    words2 = s2.split()
    total = max(len(words1), len(words2))
    if total == 0:
        return 0.0
    matches = sum(1 for w1 in words1 if any(is_similar_word(w1, w2) for w2 in words2))
    return matches / total


def compare_name_parts(part1: str, part2: str) -> float:
    """
    Score two single name words: 1.0 when equal, 0.8 for an initial against
    a word starting with it, Jaro-Winkler otherwise.
    """
    if not part1 or not part2:
        return 0.0
    if part1.lower() == part2.lower():
        return 1.0
    clean1 = part1.replace(".", "").lower()
    clean2 = part2.replace(".", "").lower()
    if len(clean1) == 1 and clean2.startswith(clean1):
        return 0.8
    if len(clean2) == 1 and clean1.startswith(clean2):
        return 0.8
    return jaro_winkler(clean1, clean2)


def initial_matching_similarity(s1: str, s2: str) -> float:
    """Average of first-word and last-word comparisons."""
    words1 = s1.split()
    words2 = s2.split()
    if not words1 or not words2:
        return 0.0
    first = compare_name_parts(words1[0], words2[0])
    last = compare_name_parts(words1[-1], words2[-1])
    return (first + last) / 2


def name_similarity(a: str, b: str) -> float:
    """
    Blended similarity of two full names, compared case-insensitively.

    50% Jaro-Winkler over the whole string, 30% word overlap, 20% the
    first/last word comparison.

    Examples:
        ("John Smith", "john smith") → 1.0
        ("J. Smith", "John Smith") → high (initial matches)
        ("Jane Smith", "John Smith") → lower than the above

    Returns:
        Score in [0, 1]
    """
    s1 = " ".join(a.lower().split())
    s2 = " ".join(b.lower().split())
    w_jw, w_overlap, w_initial = NAME_SIMILARITY_WEIGHTS
    return (
        w_jw * jaro_winkler(s1, s2)
        + w_overlap * word_overlap_similarity(s1, s2)
        + w_initial * initial_matching_similarity(s1, s2)
    )


def diacritic_invariant_form(value: str) -> str:
    """
    Fold a name so spellings that differ only by accents compare equal.

    Lowercases, rewrites ä/ö/ü/ł to their conventional ASCII spellings, then
    decomposes (NFD) and drops combining marks.

    Examples:
        "Müller" → "mueller"
        "Mueller" → "mueller"
        "Dvořák" → "dvorak"
        "Łukasz" → "lukasz"
    """
    if not value:
        return ""
    lowered = value.strip().lower()
    for source, target in DIGRAPH_SUBSTITUTIONS.items():
        lowered = lowered.replace(source, target)
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def is_diacritic_only_variant(a: str, b: str) -> bool:
    """True when a and b are the same name up to accents and case."""
    return diacritic_invariant_form(a) == diacritic_invariant_form(b)


def soundex_code(value: str) -> str:
    """
    Classic four-character Soundex code.

    First letter, then up to three consonant-class digits. Vowels are
    skipped but separate repeated codes; h and w are skipped without
    separating them. Padded with zeros.

    Examples:
        "Robert" → "R163"
        "Rupert" → "R163"
        "Tymczak" → "T522"
        "Pfister" → "P236"
    """
    letters = [char for char in diacritic_invariant_form(value) if "a" <= char <= "z"]
    if not letters:
        return ""
    first = letters[0]
    code = first.upper()
    last_digit = SOUNDEX_CODES.get(first, "")
    for char in letters[1:]:
        if len(code) == 4:
            break
        digit = SOUNDEX_CODES.get(char)
        if digit is None:
            if char not in "hw":
                last_digit = ""
            continue
        if digit != last_digit:
            code += digit
        last_digit = digit
    return code.ljust(4, "0")


def phonetic_key(value: str) -> str:
    """Lowercase first letter followed by the Soundex code."""
    code = soundex_code(value)
    if not code:
        return ""
    return f"{code[0].lower()}{code}"


def phonetic_bucket_key(value: str) -> str:
    """
    First letter plus a length class: T (≤3), S (≤6), M (≤10), L (longer).
    """
    text = value.strip() if value else ""
    if not text:
        return ""
    length = len(text)
    if length <= 3:
        category = "T"
    elif length <= 6:
        category = "S"
    elif length <= 10:
        category = "M"
    else:
        category = "L"
    return f"{text[0].upper()}{category}"


class PhoneticIndex:
    """
    Buckets keys by the phonetic key of their last word.

    Used to narrow fuzzy comparisons when there are too many stored names to
    score every one. A bucket hit is a candidate, never a match.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._buckets: dict[str, set[str]] = defaultdict(set)
        for key in keys:
            self.add(key)

    @staticmethod
    def _bucket_for(name: str) -> str:
        words = name.split()
        return phonetic_key(words[-1]) if words else ""

    def add(self, key: str) -> None:
        self._buckets[self._bucket_for(key)].add(key)

    def discard(self, key: str) -> None:
        bucket = self._bucket_for(key)
        members = self._buckets.get(bucket)
        if members is None:
            return
        members.discard(key)
        if not members:
            del self._buckets[bucket]

    def candidates(self, name: str) -> set[str]:
        return set(self._buckets.get(self._bucket_for(name), ()))

    def clear(self) -> None:
        self._buckets.clear()

    def __len__(self) -> int:
        return sum(len(members) for members in self._buckets.values())
