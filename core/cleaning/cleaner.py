"""Multi-pass contamination cleaner.

Passes, in order, each reporting its edits in original offsets:

0. invalid encoding: lone surrogates and U+FFFD are dropped.
1. known signatures: UI glyphs, then the pattern library in library order.
2. Cyrillic: every Cyrillic run is removed, whatever the surrounding script.
3. English fragments (Arabic target only): leaked template words next to Arabic text are removed.
4. script interleaving: tokens that mix Arabic and Latin letters without whitespace are split or
   lose their minority-script runs, depending on the configured policy.
5. normalization: orphan articles, whitespace and spacing before punctuation.

The passes are repeated until the text no longer changes, which makes cleaning idempotent.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, ClassVar, Final

from core.cleaning.offsets import TrackedText
from core.script.classifier import ScriptClassifier, classify_char
from handlers.emoji import EmojiHandler
from models.cleaning_models import CleaningAction, CleaningResult
from models.re_models import (
    CYRILLIC_RUN_PATTERN,
    ENGLISH_FRAGMENT_PATTERN,
    EXCESS_NEWLINES_PATTERN,
    HORIZONTAL_SPACE_PATTERN,
    INVALID_CODEPOINT_PATTERN,
    NEWLINE_PADDING_PATTERN,
    ORPHAN_ARTICLE_PATTERN,
    SPACE_BEFORE_PUNCTUATION_PATTERN,
    TOKEN_PATTERN,
)
from models.script_models import ScriptKind, TextSpan
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from re import Match, Pattern

    from core.cleaning.patterns import PatternLibrary
    from models.config_models import Config

__all__: list[str] = ["INTERLEAVE_POLICIES", "ContentCleaner"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

INTERLEAVE_POLICIES: Final[tuple[str, ...]] = ("insert_separator", "drop_minority")

_TRIM_PATTERN: Final[Pattern[str]] = re.compile(r"\A\s+|\s+\Z")
_MIXABLE_SCRIPTS: Final[frozenset[ScriptKind]] = frozenset({ScriptKind.ARABIC, ScriptKind.LATIN})


class _CleaningRun:
    """Working state of one ``clean`` call: tracked text plus the edit ledger."""

    def __init__(self, text: str, classifier: ScriptClassifier) -> None:
        self.tracked: TrackedText = TrackedText(text)
        self.classifier: ScriptClassifier = classifier
        self.removed_spans: list[TextSpan] = []
        self.actions: list[CleaningAction] = []

    @property
    def text(self) -> str:
        return self.tracked.text

    def _span(self, start: int, end: int, kind: ScriptKind | None = None) -> TextSpan:
        content: str = self.tracked.original[start:end]
        return TextSpan(start, end, content, kind or self.classifier.dominant_kind(content))

    def replace(self, start: int, end: int, replacement: str, pattern_id: str, reason: str) -> None:
        """Replace a working range and record the edit.

        Deleted text that is only whitespace is recorded as an action but not as a removed span.
        Edits that only touch characters inserted by earlier passes leave no record.
        """
        removed: str = self.text[start:end]
        origin: tuple[int, int] | None = self.tracked.replace(start, end, replacement)
        if origin is None:
            return
        span: TextSpan = self._span(*origin)
        self.actions.append(CleaningAction(pattern_id=pattern_id, span=span, reason=reason, replacement=replacement))
        if removed.strip():
            self.removed_spans.append(span)

    def insert(self, position: int, text: str, pattern_id: str, reason: str) -> None:
        anchor: int = self.tracked.insert(position, text)
        span = TextSpan(anchor, anchor, "", ScriptKind.WHITESPACE)
        self.actions.append(CleaningAction(pattern_id=pattern_id, span=span, reason=reason, replacement=text))

    def apply(
        self,
        regex: Pattern[str],
        pattern_id: str,
        reason: str,
        substitute: Callable[[Match[str]], str | None],
    ) -> int:
        """Apply a substitution to every match of ``regex`` in the current text.

        Matches are applied from the end of the text backwards so that earlier match offsets stay
        valid. ``substitute`` returns None to leave a match untouched.

        Returns:
            int: Number of edits made.
        """
        edits: int = 0
        for match in reversed(list(regex.finditer(self.text))):
            if not match.group():
                continue
            replacement: str | None = substitute(match)
            if replacement is None or replacement == match.group():
                continue
            self.replace(match.start(), match.end(), replacement, pattern_id, reason)
            edits += 1
        return edits


def _between_letters(text: str, start: int, end: int) -> bool:
    """Whether removing ``text[start:end]`` would glue two letters together."""
    return 0 < start and end < len(text) and text[start - 1].isalpha() and text[end].isalpha()


def _separator_for(match: Match[str]) -> str:
    return " " if _between_letters(match.string, match.start(), match.end()) else ""


class ContentCleaner:
    """Strips contamination from generated legal text.

    Args:
        library (PatternLibrary): Known contamination signatures.
        classifier (ScriptClassifier | None): Script classifier. A new one is created when None.
        interleave_policy (str): ``insert_separator`` or ``drop_minority``.
        max_iterations (int): Upper bound of pipeline rounds per call.
        emoji_handler (EmojiHandler | None): Emoji finder. A new one is created when None.

    Raises:
        ValueError: If the interleave policy is unknown or max_iterations is below 1.
    """

    CONFIDENCE_STEPS: ClassVar[tuple[tuple[float, float], ...]] = ((0.2, 0.95), (0.5, 0.8))
    CONFIDENCE_FLOOR: ClassVar[float] = 0.6

    def __init__(
        self,
        library: PatternLibrary,
        classifier: ScriptClassifier | None = None,
        *,
        interleave_policy: str = "drop_minority",
        max_iterations: int = 8,
        emoji_handler: EmojiHandler | None = None,
    ) -> None:
        if interleave_policy not in INTERLEAVE_POLICIES:
            msg = f"Unknown interleave policy: '{interleave_policy}'"
            raise ValueError(msg)
        if max_iterations < 1:
            msg = f"max_iterations must be at least 1, got {max_iterations}"
            raise ValueError(msg)
        self.library: PatternLibrary = library
        self.classifier: ScriptClassifier = classifier or ScriptClassifier()
        self.interleave_policy: str = interleave_policy
        self.max_iterations: int = max_iterations
        self.emoji_handler: EmojiHandler = emoji_handler or EmojiHandler()

    @classmethod
    def from_config(
        cls, config: Config, library: PatternLibrary, classifier: ScriptClassifier | None = None
    ) -> ContentCleaner:
        return cls(
            library,
            classifier,
            interleave_policy=config.CLEANING.INTERLEAVE_POLICY,
            max_iterations=config.CLEANING.MAX_ITERATIONS,
        )

    def clean(self, text: str, target_lang: str | None = None) -> CleaningResult:
        """Clean a text.

        Never raises for string input; non-string input is converted with ``str``.

        Args:
            text (str): Text to clean, typically oracle output.
            target_lang (str | None): Target language code. The English fragment pass only runs
                for ``"ar"``; when None, script interleaving falls back to Latin as the minority.

        Returns:
            CleaningResult: Cleaned text, removed spans and applied actions in original offsets.
        """
        text = StringUtils.ensure_str(text)
        run = _CleaningRun(text, self.classifier)

        iterations: int = 0
        while True:
            iterations += 1
            before: str = run.text
            self._run_passes(run, target_lang)
            if run.text == before:
                break
            if iterations >= self.max_iterations:
                logger.warning(
                    "Cleaning did not settle after %d iterations: '%s'", iterations, StringUtils.preview(run.text)
                )
                break

        run.removed_spans.sort(key=lambda span: (span.start, span.end))
        result = CleaningResult(
            original_text=text,
            cleaned_text=run.text,
            removed_spans=run.removed_spans,
            actions_applied=run.actions,
            confidence=self._confidence(text, run.removed_spans),
            iterations=iterations,
        )
        if result.actions_applied:
            logger.debug(
                "Cleaned text with %d actions (%s), confidence %.2f",
                len(result.actions_applied),
                ", ".join(result.pattern_ids),
                result.confidence,
            )
        return result

    def _run_passes(self, run: _CleaningRun, target_lang: str | None) -> None:
        self._drop_invalid_codepoints(run)
        self._remove_ui_glyphs(run)
        self._apply_signatures(run)
        self._remove_cyrillic(run)
        if target_lang == "ar":
            self._remove_english_fragments(run)
        self._resolve_interleaving(run, target_lang)
        self._normalize(run)

    def _drop_invalid_codepoints(self, run: _CleaningRun) -> None:
        run.apply(INVALID_CODEPOINT_PATTERN, "invalid-encoding", "invalid encoding", lambda _match: "")

    def _remove_ui_glyphs(self, run: _CleaningRun) -> None:
        for found in reversed(self.emoji_handler.find(run.text)):
            run.replace(found.start, found.end, " ", "ui-glyph", "emoji or UI pictograph")

    def _apply_signatures(self, run: _CleaningRun) -> None:
        for compiled in self.library:
            run.apply(compiled.regex, compiled.id, compiled.pattern.description or compiled.id, compiled.substitute_for)

    def _remove_cyrillic(self, run: _CleaningRun) -> None:
        run.apply(CYRILLIC_RUN_PATTERN, "cyrillic-run", "cyrillic is never a valid output script", _separator_for)

    def _remove_english_fragments(self, run: _CleaningRun) -> None:
        # Removing one fragment can put the next one next to Arabic text, so rescan after each edit.
        while True:
            text: str = run.text
            victim: Match[str] | None = next(
                (
                    match
                    for match in ENGLISH_FRAGMENT_PATTERN.finditer(text)
                    if self._next_to_arabic(text, match.start(), match.end())
                ),
                None,
            )
            if victim is None:
                return
            run.replace(
                victim.start(),
                victim.end(),
                _separator_for(victim),
                "english-fragment",
                f"english fragment '{victim.group()}' next to arabic text",
            )

    @staticmethod
    def _next_to_arabic(text: str, start: int, end: int) -> bool:
        """Whether the nearest non-whitespace neighbour on either side is an Arabic letter."""
        left: int = start - 1
        while left >= 0 and text[left].isspace():
            left -= 1
        if left >= 0 and classify_char(text[left]) is ScriptKind.ARABIC:
            return True
        right: int = end
        while right < len(text) and text[right].isspace():
            right += 1
        return right < len(text) and classify_char(text[right]) is ScriptKind.ARABIC

    def _minority_script(self, text: str, target_lang: str | None) -> ScriptKind:
        counts = self.classifier.counts(text)
        arabic: int = counts.get(ScriptKind.ARABIC, 0)
        latin: int = counts.get(ScriptKind.LATIN, 0)
        if arabic > latin:
            return ScriptKind.LATIN
        if latin > arabic:
            return ScriptKind.ARABIC
        return ScriptKind.ARABIC if target_lang == "fr" else ScriptKind.LATIN

    def _resolve_interleaving(self, run: _CleaningRun, target_lang: str | None) -> None:
        text: str = run.text
        mixed_tokens: list[Match[str]] = []
        for token in TOKEN_PATTERN.finditer(text):
            kinds: set[ScriptKind] = {classify_char(char) for char in token.group()}
            if _MIXABLE_SCRIPTS <= kinds:
                mixed_tokens.append(token)
        if not mixed_tokens:
            return

        if self.interleave_policy == "insert_separator":
            for token in reversed(mixed_tokens):
                for position in reversed(self._script_boundaries(token.group())):
                    run.insert(token.start() + position, " ", "script-interleaving", "separator between scripts")
            return

        minority: ScriptKind = self._minority_script(text, target_lang)
        for token in reversed(mixed_tokens):
            content: str = token.group()
            runs: list[tuple[int, int]] = []
            index: int = 0
            while index < len(content):
                if classify_char(content[index]) is minority:
                    run_start: int = index
                    while index < len(content) and classify_char(content[index]) is minority:
                        index += 1
                    runs.append((run_start, index))
                else:
                    index += 1
            for run_start, run_end in reversed(runs):
                run.replace(
                    token.start() + run_start,
                    token.start() + run_end,
                    " ",
                    "script-interleaving",
                    f"{minority} run inside an interleaved token",
                )

    @staticmethod
    def _script_boundaries(token: str) -> list[int]:
        """Offsets in the token where a letter run follows a run of the other script."""
        boundaries: list[int] = []
        previous: ScriptKind | None = None
        for index, char in enumerate(token):
            kind: ScriptKind = classify_char(char)
            if kind not in _MIXABLE_SCRIPTS:
                continue
            if previous is not None and kind is not previous:
                boundaries.append(index)
            previous = kind
        return boundaries

    def _normalize(self, run: _CleaningRun) -> None:
        run.apply(ORPHAN_ARTICLE_PATTERN, "orphan-article", "definite article without its word", lambda _match: "")
        run.apply(HORIZONTAL_SPACE_PATTERN, "whitespace", "whitespace normalization", lambda _match: " ")
        run.apply(NEWLINE_PADDING_PATTERN, "whitespace", "whitespace normalization", lambda _match: "\n")
        run.apply(EXCESS_NEWLINES_PATTERN, "whitespace", "whitespace normalization", lambda _match: "\n\n")
        run.apply(
            SPACE_BEFORE_PUNCTUATION_PATTERN, "punctuation-spacing", "space before punctuation", lambda _match: ""
        )
        run.apply(_TRIM_PATTERN, "whitespace", "leading or trailing whitespace", lambda _match: "")

    def _confidence(self, original: str, removed_spans: list[TextSpan]) -> float:
        """Heuristic confidence from the removed fraction of the original length.

        1.0 when nothing was removed, 0.95 up to 20% removed, 0.8 up to 50%, 0.6 beyond.
        """
        if not removed_spans or not original:
            return 1.0
        removed: set[int] = set()
        for span in removed_spans:
            removed.update(range(span.start, span.end))
        fraction: float = len(removed) / len(original)
        for limit, confidence in self.CONFIDENCE_STEPS:
            if fraction <= limit:
                return confidence
        return self.CONFIDENCE_FLOOR
