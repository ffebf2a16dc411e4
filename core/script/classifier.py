"""Unicode script classification.

Buckets every codepoint into a ScriptKind using general categories for digits, punctuation and
whitespace, and a sorted table of Unicode blocks for letters. Lookups use ``bisect`` over the block
starts, so classification is a single pass over the text.
"""

from __future__ import annotations

import unicodedata
from bisect import bisect_right
from collections import Counter
from functools import lru_cache
from typing import TYPE_CHECKING, Final

from models.script_models import LETTER_SCRIPTS, ScriptKind, TextSpan
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable

__all__: list[str] = ["ScriptClassifier", "classify_char"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# (first, last, kind), sorted and non-overlapping. Only letters and marks reach this table.
_SCRIPT_BLOCKS: Final[tuple[tuple[int, int, ScriptKind], ...]] = (
    (0x0041, 0x005A, ScriptKind.LATIN),  # Basic Latin uppercase
    (0x0061, 0x007A, ScriptKind.LATIN),  # Basic Latin lowercase
    (0x00AA, 0x00AA, ScriptKind.LATIN),  # Feminine ordinal
    (0x00BA, 0x00BA, ScriptKind.LATIN),  # Masculine ordinal
    (0x00C0, 0x024F, ScriptKind.LATIN),  # Latin-1 Supplement letters, Extended-A/B
    (0x0250, 0x02AF, ScriptKind.LATIN),  # IPA Extensions
    (0x0300, 0x036F, ScriptKind.LATIN),  # Combining diacritics (decomposed French accents)
    (0x0400, 0x052F, ScriptKind.CYRILLIC),  # Cyrillic, Cyrillic Supplement
    (0x0600, 0x06FF, ScriptKind.ARABIC),  # Arabic
    (0x0750, 0x077F, ScriptKind.ARABIC),  # Arabic Supplement
    (0x0870, 0x08FF, ScriptKind.ARABIC),  # Arabic Extended-B/A
    (0x1C80, 0x1C8F, ScriptKind.CYRILLIC),  # Cyrillic Extended-C
    (0x1E00, 0x1EFF, ScriptKind.LATIN),  # Latin Extended Additional
    (0x2C60, 0x2C7F, ScriptKind.LATIN),  # Latin Extended-C
    (0x2DE0, 0x2DFF, ScriptKind.CYRILLIC),  # Cyrillic Extended-A
    (0xA640, 0xA69F, ScriptKind.CYRILLIC),  # Cyrillic Extended-B
    (0xA720, 0xA7FF, ScriptKind.LATIN),  # Latin Extended-D
    (0xFB00, 0xFB06, ScriptKind.LATIN),  # Latin ligatures
    (0xFB50, 0xFDFF, ScriptKind.ARABIC),  # Arabic Presentation Forms-A
    (0xFE70, 0xFEFC, ScriptKind.ARABIC),  # Arabic Presentation Forms-B
)
_BLOCK_STARTS: Final[tuple[int, ...]] = tuple(block[0] for block in _SCRIPT_BLOCKS)

_REPLACEMENT_CHARACTER: Final[int] = 0xFFFD


@lru_cache(maxsize=4096)
def classify_char(char: str) -> ScriptKind:
    """Return the script bucket of a single codepoint.

    Whitespace, decimal digits (Arabic-Indic included) and punctuation or symbols (Arabic comma,
    semicolon and question mark included) are decided by general category before the block table
    is consulted. Lone surrogates and U+FFFD are OTHER.

    Args:
        char (str): A single character.

    Returns:
        ScriptKind: The script bucket.
    """
    codepoint: int = ord(char)
    if 0xD800 <= codepoint <= 0xDFFF or codepoint == _REPLACEMENT_CHARACTER:
        return ScriptKind.OTHER
    if char.isspace():
        return ScriptKind.WHITESPACE

    category: str = unicodedata.category(char)
    if category == "Nd":
        return ScriptKind.DIGIT
    if category[0] in ("P", "S"):
        return ScriptKind.PUNCTUATION

    index: int = bisect_right(_BLOCK_STARTS, codepoint) - 1
    if index >= 0:
        first, last, kind = _SCRIPT_BLOCKS[index]
        if first <= codepoint <= last:
            return kind
    return ScriptKind.OTHER


class ScriptClassifier:
    """Splits text into script runs and computes per-script ratios.

    The classifier is stateless; one instance can be shared by every component.
    """

    def classify(self, text: str) -> list[TextSpan]:
        """Split text into maximal runs of the same script.

        Args:
            text (str): Text to classify.

        Returns:
            list[TextSpan]: Spans covering the whole text in order. Empty for an empty string.
        """
        spans: list[TextSpan] = []
        if not text:
            return spans

        run_start: int = 0
        run_kind: ScriptKind = classify_char(text[0])
        for index in range(1, len(text)):
            kind: ScriptKind = classify_char(text[index])
            if kind is not run_kind:
                spans.append(TextSpan(run_start, index, text[run_start:index], run_kind))
                run_start, run_kind = index, kind
        spans.append(TextSpan(run_start, len(text), text[run_start:], run_kind))
        return spans

    def counts(self, text: str) -> Counter[ScriptKind]:
        """Count codepoints per script, whitespace excluded."""
        counter: Counter[ScriptKind] = Counter(classify_char(char) for char in text)
        counter.pop(ScriptKind.WHITESPACE, None)
        return counter

    def ratios(self, text: str, ignore: Iterable[ScriptKind] = ()) -> dict[ScriptKind, float]:
        """Compute the share of each script among non-whitespace codepoints.

        Kinds listed in ``ignore`` are removed from both the numerator and the denominator and
        report 0.0. When nothing is left to count, every ratio is 0.0 and the caller must treat the
        text as impossible to validate.

        Args:
            text (str): Text to measure.
            ignore (Iterable[ScriptKind]): Script kinds to leave out of the computation.

        Returns:
            dict[ScriptKind, float]: Ratio per script kind, whitespace excluded.
        """
        ignored: frozenset[ScriptKind] = frozenset(ignore)
        counter: Counter[ScriptKind] = self.counts(text)
        total: int = sum(count for kind, count in counter.items() if kind not in ignored)

        result: dict[ScriptKind, float] = {}
        for kind in ScriptKind:
            if kind is ScriptKind.WHITESPACE:
                continue
            if total == 0 or kind in ignored:
                result[kind] = 0.0
            else:
                result[kind] = counter.get(kind, 0) / total
        return result

    def letter_count(self, text: str) -> int:
        """Number of Arabic, Latin and Cyrillic codepoints."""
        counter: Counter[ScriptKind] = self.counts(text)
        return sum(counter.get(kind, 0) for kind in LETTER_SCRIPTS)

    def dominant_script(self, text: str) -> ScriptKind | None:
        """Return the letter script with the most codepoints.

        Ties resolve in the order Arabic, Latin, Cyrillic.

        Returns:
            ScriptKind | None: The dominant letter script, or None when the text has no letters.
        """
        counter: Counter[ScriptKind] = self.counts(text)
        best: ScriptKind | None = None
        best_count: int = 0
        for kind in LETTER_SCRIPTS:
            if counter.get(kind, 0) > best_count:
                best, best_count = kind, counter[kind]
        return best

    def dominant_kind(self, text: str) -> ScriptKind:
        """Return the most frequent non-whitespace kind, for labelling mixed spans."""
        counter: Counter[ScriptKind] = self.counts(text)
        if not counter:
            return ScriptKind.WHITESPACE if text else ScriptKind.OTHER
        # most_common keeps insertion order on ties, which follows the text.
        return counter.most_common(1)[0][0]
