"""Regular expressions used by the cleaning passes.

Signature patterns live in the pattern library file; this module holds only the generic
script-boundary and normalization expressions.
"""

from __future__ import annotations

import re
from re import Pattern
from typing import Final

__all__: list[str] = [
    "CYRILLIC_RUN_PATTERN",
    "ENGLISH_FRAGMENT_PATTERN",
    "ENGLISH_FRAGMENTS",
    "EXCESS_NEWLINES_PATTERN",
    "HORIZONTAL_SPACE_PATTERN",
    "INVALID_CODEPOINT_PATTERN",
    "LATIN_LETTERS",
    "NEWLINE_PADDING_PATTERN",
    "ORPHAN_ARTICLE_PATTERN",
    "SPACE_BEFORE_PUNCTUATION_PATTERN",
    "TOKEN_PATTERN",
]

# Lone surrogates (only reachable through surrogateescape/surrogatepass decoding) and U+FFFD.
INVALID_CODEPOINT_PATTERN: Final[Pattern[str]] = re.compile(r"[\ud800-\udfff\ufffd]")

# Cyrillic, Cyrillic Supplement and the extended blocks.
CYRILLIC_RUN_PATTERN: Final[Pattern[str]] = re.compile(r"[\u0400-\u052f\u1c80-\u1c8f\u2de0-\u2dff\ua640-\ua69f]+")

# Basic Latin, Latin-1, Latin Extended-A/B and Latin Extended Additional letters, as a class body.
LATIN_LETTERS: Final[str] = r"A-Za-z\u00C0-\u024F\u1E00-\u1EFF"

# English words that leak from prompt templates into Arabic output.
ENGLISH_FRAGMENTS: Final[tuple[str, ...]] = (
    "Defined",
    "in",
    "the",
    "Article",
    "of",
    "Law",
    "Criminal",
    "Procedure",
    "Code",
    "Section",
    "Chapter",
    "Paragraph",
)
ENGLISH_FRAGMENT_PATTERN: Final[Pattern[str]] = re.compile(
    rf"(?<![{LATIN_LETTERS}])(?:" + "|".join(ENGLISH_FRAGMENTS) + rf")(?![{LATIN_LETTERS}])",
    re.IGNORECASE,
)

# Whitespace-free tokens, examined for script interleaving.
TOKEN_PATTERN: Final[Pattern[str]] = re.compile(r"\S+")

# Horizontal whitespace run (everything but the newline).
HORIZONTAL_SPACE_PATTERN: Final[Pattern[str]] = re.compile(r"[^\S\n]+")

# Horizontal whitespace on either side of a newline.
NEWLINE_PADDING_PATTERN: Final[Pattern[str]] = re.compile(r"[^\S\n]*\n[^\S\n]*")

# More than one blank line.
EXCESS_NEWLINES_PATTERN: Final[Pattern[str]] = re.compile(r"\n{3,}")

# Space before closing punctuation. French spacing before ; : ! ? is left alone.
SPACE_BEFORE_PUNCTUATION_PATTERN: Final[Pattern[str]] = re.compile(r"[^\S\n]+(?=[.,،؛؟)\]])")

# Arabic definite article left standing alone once the word it prefixed was removed.
ORPHAN_ARTICLE_PATTERN: Final[Pattern[str]] = re.compile(r"(?<!\S)ال(?!\S)")
