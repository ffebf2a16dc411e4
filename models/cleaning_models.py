"""Models for contamination patterns and cleaning results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin, LetterCase, dataclass_json

from models.script_models import ScriptKind, TextSpan

__all__: list[str] = [
    "CleaningAction",
    "CleaningResult",
    "ContaminationPattern",
    "PatternAction",
    "PatternLibraryDocument",
]


class PatternAction(StrEnum):
    """What the cleaner does with a pattern match.

    REMOVE deletes the match, REPLACE substitutes the pattern replacement and SEPARATE substitutes
    a single space so that the neighbouring words do not fuse.
    """

    REMOVE = "remove"
    REPLACE = "replace"
    SEPARATE = "separate"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass(frozen=True)
class ContaminationPattern(DataClassJsonMixin):
    """A known contamination signature.

    Attributes:
        id (str): Unique identifier, reported in cleaning actions and logs.
        matcher (str): Literal text or regular expression source.
        is_regex (bool): Whether ``matcher`` is a regular expression.
        ignore_case (bool): Case-insensitive matching.
        scripts_involved (list[ScriptKind]): Scripts the signature is made of.
        action (PatternAction): What to do with a match.
        replacement (str): Substitution text for REPLACE.
        description (str): Human readable reason, copied into cleaning actions.
    """

    id: str
    matcher: str
    is_regex: bool = False
    ignore_case: bool = False
    scripts_involved: list[ScriptKind] = field(default_factory=list)
    action: PatternAction = PatternAction.REMOVE
    replacement: str = ""
    description: str = ""


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class PatternLibraryDocument(DataClassJsonMixin):
    """On-disk layout of the pattern library file."""

    version: str
    patterns: list[ContaminationPattern] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass(frozen=True)
class CleaningAction(DataClassJsonMixin):
    """One edit performed by the cleaner.

    Attributes:
        pattern_id (str): Pattern or pass that produced the edit.
        span (TextSpan): Affected range in original offsets. Zero-width for pure insertions.
        reason (str): Why the edit was made.
        replacement (str): Text written in place of the span.
    """

    pattern_id: str
    span: TextSpan
    reason: str = ""
    replacement: str = ""


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CleaningResult(DataClassJsonMixin):
    """Outcome of one cleaning invocation.

    ``confidence`` is a heuristic derived from the fraction of the original text that was removed.
    It is not a statistical trust score.

    Attributes:
        original_text (str): The input text.
        cleaned_text (str): The cleaned output.
        removed_spans (list[TextSpan]): Deleted text, in original offsets, ordered by start.
        actions_applied (list[CleaningAction]): Every edit, in the order applied.
        confidence (float): 1.0 when nothing was removed, lower as more was removed.
        iterations (int): Number of pipeline rounds needed to reach a stable text.
    """

    original_text: str
    cleaned_text: str
    removed_spans: list[TextSpan] = field(default_factory=list)
    actions_applied: list[CleaningAction] = field(default_factory=list)
    confidence: float = 1.0
    iterations: int = 1

    @property
    def pattern_ids(self) -> list[str]:
        """Distinct pattern ids in first-applied order."""
        return list(dict.fromkeys(action.pattern_id for action in self.actions_applied))

    @property
    def was_modified(self) -> bool:
        return self.cleaned_text != self.original_text
