"""
Rule-based tokenizer for personal names.

Splits a raw name into prefix, first, middle, last and suffix parts. The
rules are deliberately simple and predictable:

- "Last, First Middle" is inverted before parsing
- the first token is always the first name
- particles between the first and the last name form the prefix
- titles and generational markers at the end form the suffix
- the last remaining token is the last name, anything between is middle

All functions are pure and have no I/O dependencies.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .constants import COMPOUND_PREFIXES, NAME_PREFIXES, NAME_SUFFIXES
from .models import ParsedName

_TRAILING_PUNCT = re.compile(r"[,\s]+$")
_CAPITALIZED_WORD = re.compile(r"^[A-Z][a-zA-Z]+$")
_LETTER = re.compile(r"[^\W\d_]")
_VOWEL = re.compile(r"[AEIOUYaeiouy]")


def strip_trailing_period_if_name(value: str) -> str:
    """
    Drop a trailing period that follows a full word.

    A period after an initial ("K.") is an abbreviation mark and is kept;
    a period after a real word ("Smith.") is stray punctuation.

    Examples:
        "Smith." → "Smith"
        "K." → "K."
        "Ph.D." → "Ph.D."
        "Wm." → "Wm."  (no vowel, treated as an abbreviation)

    Args:
        value: A single name field

    Returns:
        The field, without the trailing period when it qualifies
    """
    if not value or not value.endswith("."):
        return value
    core = value[:-1]
    if len(core) < 2 or "." in core:
        return value
    if not _LETTER.search(core) or not _VOWEL.search(core):
        return value
    return core


def _invert_comma_form(text: str, suffixes: frozenset[str] = NAME_SUFFIXES) -> str:
    segments = [segment.strip() for segment in text.split(",")]
    segments = [segment for segment in segments if segment]
    if len(segments) < 2:
        return text
    head = segments[0]
    rest = segments[1:]
    trailing_suffix: Optional[str] = None
    if len(rest) > 1 and _is_suffix(rest[-1], suffixes):
        trailing_suffix = rest.pop()
    given = " ".join(rest)
    if not (_LETTER.search(head) and _LETTER.search(given)):
        return text
    inverted = f"{given} {head}"
    if trailing_suffix:
        inverted = f"{inverted} {trailing_suffix}"
    return inverted


def _is_prefix(token: str, prefixes: frozenset[str] = NAME_PREFIXES) -> bool:
    lowered = token.lower()
    if lowered.endswith(".") and len(lowered) > 1:
        lowered = lowered[:-1]
    # A capital letter on its own is an initial ("D." in "John D. Smith").
    if len(lowered) == 1 and token[:1].isupper():
        return False
    return lowered in prefixes


def _is_suffix(token: str, suffixes: frozenset[str] = NAME_SUFFIXES) -> bool:
    lowered = token.lower()
    if lowered.endswith("."):
        lowered = lowered[:-1]
    return lowered in suffixes


class NameTokenizer:
    """
    Parses raw name strings into ParsedName values.

    parse() never raises: empty or missing input yields an empty ParsedName
    that still carries the original text.
    """

    def __init__(
        self,
        prefixes: Optional[Iterable[str]] = None,
        suffixes: Optional[Iterable[str]] = None,
    ) -> None:
        self.prefixes = frozenset(p.lower() for p in prefixes) if prefixes is not None else NAME_PREFIXES
        self.suffixes = frozenset(s.lower().rstrip(".") for s in suffixes) if suffixes is not None else NAME_SUFFIXES

    def parse(self, raw: Optional[str]) -> ParsedName:
        original = raw or ""
        text = original.strip()
        if "," in text:
            text = _invert_comma_form(text, self.suffixes)
        text = _TRAILING_PUNCT.sub("", text)
        tokens = text.split()
        if not tokens:
            return ParsedName(original=original)

        if len(tokens) == 1:
            token = tokens[0]
            if _is_prefix(token, self.prefixes):
                return ParsedName(prefix=token, original=original)
            return ParsedName(last_name=strip_trailing_period_if_name(token), original=original)

        first = tokens[0]
        end = len(tokens) - 1
        while end > 1 and _is_suffix(tokens[end], self.suffixes):
            end -= 1

        # Particles anywhere between the first and the last name form the
        # prefix; the last name itself is never consumed.
        prefix_tokens: list[str] = []
        middle_tokens: list[str] = []
        index = 1
        while index < end:
            token = tokens[index]
            if not _is_prefix(token, self.prefixes):
                middle_tokens.append(strip_trailing_period_if_name(token))
                index += 1
                continue
            prefix_tokens.append(token)
            index += 1
            if (
                token.lower() in COMPOUND_PREFIXES
                and index < end
                and _CAPITALIZED_WORD.match(tokens[index])
            ):
                prefix_tokens.append(tokens[index])
                index += 1

        return ParsedName(
            prefix=" ".join(prefix_tokens),
            first_name=strip_trailing_period_if_name(first),
            middle_name=" ".join(middle_tokens),
            last_name=strip_trailing_period_if_name(tokens[end]),
            suffix=" ".join(tokens[end + 1:]),
            original=original,
        )

    def parse_many(self, raws: Iterable[Optional[str]]) -> list[ParsedName]:
        return [self.parse(raw) for raw in raws]
