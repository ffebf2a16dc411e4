from __future__ import annotations

import pytest

from core.script.classifier import ScriptClassifier, classify_char
from models.script_models import ScriptKind, TextSpan


@pytest.fixture
def classifier() -> ScriptClassifier:
    return ScriptClassifier()


@pytest.mark.parametrize(
    ("char", "expected"),
    [
        ("ع", ScriptKind.ARABIC),
        ("ﻻ", ScriptKind.ARABIC),  # presentation form
        ("ـ", ScriptKind.ARABIC),  # tatweel
        ("é", ScriptKind.LATIN),
        ("Œ", ScriptKind.LATIN),
        ("ж", ScriptKind.CYRILLIC),
        ("7", ScriptKind.DIGIT),
        ("٣", ScriptKind.DIGIT),  # Arabic-Indic three
        ("،", ScriptKind.PUNCTUATION),  # Arabic comma
        ("؟", ScriptKind.PUNCTUATION),  # Arabic question mark
        ("«", ScriptKind.PUNCTUATION),
        (" ", ScriptKind.WHITESPACE),
        ("\n", ScriptKind.WHITESPACE),
        ("�", ScriptKind.OTHER),
        ("中", ScriptKind.OTHER),
    ],
)
def test_classify_char_buckets(char: str, expected: ScriptKind) -> None:
    assert classify_char(char) is expected


def test_classify_returns_runs_that_partition_the_text(classifier: ScriptClassifier) -> None:
    text = "قانون Code 12"

    spans: list[TextSpan] = classifier.classify(text)

    assert [span.script_kind for span in spans] == [
        ScriptKind.ARABIC,
        ScriptKind.WHITESPACE,
        ScriptKind.LATIN,
        ScriptKind.WHITESPACE,
        ScriptKind.DIGIT,
    ]
    assert "".join(span.content for span in spans) == text
    assert spans[0].start == 0
    assert spans[-1].end == len(text)
    for previous, current in zip(spans, spans[1:], strict=False):
        assert previous.end == current.start


def test_classify_empty_text(classifier: ScriptClassifier) -> None:
    assert classifier.classify("") == []


def test_ratios_exclude_whitespace(classifier: ScriptClassifier) -> None:
    ratios = classifier.ratios("عقد  ab")

    assert ratios[ScriptKind.ARABIC] == pytest.approx(3 / 5)
    assert ratios[ScriptKind.LATIN] == pytest.approx(2 / 5)
    assert ScriptKind.WHITESPACE not in ratios


def test_ratios_ignore_neutral_kinds(classifier: ScriptClassifier) -> None:
    ratios = classifier.ratios("عقد 2024.", ignore=(ScriptKind.DIGIT, ScriptKind.PUNCTUATION))

    assert ratios[ScriptKind.ARABIC] == pytest.approx(1.0)
    assert ratios[ScriptKind.DIGIT] == 0.0
    assert ratios[ScriptKind.PUNCTUATION] == 0.0


def test_ratios_of_empty_text_are_zero(classifier: ScriptClassifier) -> None:
    ratios = classifier.ratios("   ")

    assert all(value == 0.0 for value in ratios.values())


def test_letter_count_and_dominant_script(classifier: ScriptClassifier) -> None:
    text = "Le contrat عقد 3"

    assert classifier.letter_count(text) == 12
    assert classifier.dominant_script(text) is ScriptKind.LATIN
    assert classifier.dominant_script("123 !") is None


def test_dominant_script_tie_prefers_arabic(classifier: ScriptClassifier) -> None:
    assert classifier.dominant_script("ab عق") is ScriptKind.ARABIC


def test_dominant_kind_labels_mixed_text(classifier: ScriptClassifier) -> None:
    assert classifier.dominant_kind("😀😀a") is ScriptKind.PUNCTUATION
    assert classifier.dominant_kind("  ") is ScriptKind.WHITESPACE
    assert classifier.dominant_kind("") is ScriptKind.OTHER
