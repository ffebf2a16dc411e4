"""Script classification models.

Defines the script buckets used by the classifier and the immutable span type that the classifier
produces and the cleaner reports removals with.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin, LetterCase, dataclass_json

__all__: list[str] = ["LETTER_SCRIPTS", "ScriptKind", "TextSpan"]


class ScriptKind(StrEnum):
    """Script bucket of a single codepoint.

    WHITESPACE exists so that spans partition the input; it never takes part in a ratio.
    """

    ARABIC = "arabic"
    LATIN = "latin"
    CYRILLIC = "cyrillic"
    DIGIT = "digit"
    PUNCTUATION = "punctuation"
    WHITESPACE = "whitespace"
    OTHER = "other"


LETTER_SCRIPTS: tuple[ScriptKind, ...] = (ScriptKind.ARABIC, ScriptKind.LATIN, ScriptKind.CYRILLIC)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass(frozen=True)
class TextSpan(DataClassJsonMixin):
    """A run of text between two offsets.

    Attributes:
        start (int): Start offset (inclusive).
        end (int): End offset (exclusive).
        content (str): The text between the offsets.
        script_kind (ScriptKind): Script of the run, or the dominant script for mixed removals.
    """

    start: int
    end: int
    content: str
    script_kind: ScriptKind

    @property
    def length(self) -> int:
        return self.end - self.start
