from __future__ import annotations

import pytest

from core.exceptions import InsufficientContentError, NotSupportedLanguageError, ValidationFailedError
from core.purity.validator import PurityValidator
from models.config_models import Config
from models.purity_models import PurityReport
from models.script_models import ScriptKind

PURE_ARABIC = "يعتبر العقد صحيحا بين الطرفين وفقا للقانون المدني"
PURE_FRENCH = "Le contrat est valide entre les parties selon le Code civil."


@pytest.fixture
def validator() -> PurityValidator:
    return PurityValidator(Config())


def test_pure_texts_pass(validator: PurityValidator) -> None:
    arabic: PurityReport = validator.validate(PURE_ARABIC, "ar")
    french: PurityReport = validator.validate(PURE_FRENCH, "fr")

    assert arabic.passed is True
    assert arabic.purity_score == pytest.approx(1.0)
    assert arabic.reason == "ok"
    assert french.passed is True
    assert french.script_ratios[ScriptKind.LATIN] == pytest.approx(1.0)


def test_wrong_target_fails(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate(PURE_FRENCH, "ar")

    assert report.passed is False
    assert report.purity_score == 0.0
    assert len(report.reasons) == 2


def test_mixed_text_fails_on_threshold_and_ceiling(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate("يعتبر العقد صحيحا بين الطرفين contract law", "ar")

    assert report.passed is False
    assert report.purity_score == pytest.approx(25 / 36)
    assert any("below threshold" in reason for reason in report.reasons)
    assert any("above ceiling" in reason for reason in report.reasons)


def test_single_cyrillic_codepoint_fails(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate(PURE_ARABIC + " ж", "ar")

    assert report.purity_score >= 0.95
    assert report.reasons == ["cyrillic codepoints present"]


def test_short_text_is_insufficient(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate("عقد", "ar")

    assert report.passed is False
    assert report.reasons == ["insufficient content"]
    assert report.content_length == 3


def test_empty_text_never_passes(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate("   ", "fr")

    assert report.passed is False
    assert report.purity_score == 0.0


def test_digits_and_punctuation_are_neutral(validator: PurityValidator) -> None:
    assert validator.validate("المادة 1234567890 من القانون.", "ar").passed is True


def test_neutral_kinds_count_when_configured() -> None:
    config = Config()
    config.PURITY.IGNORE_NEUTRAL = False

    validator = PurityValidator(config)

    assert validator.validate("المادة 1234567890 من القانون.", "ar").passed is False


def test_ratios_on_the_boundaries_pass() -> None:
    config = Config()
    config.PURITY.THRESHOLD = 0.8
    config.PURITY.CEILING = 0.2
    config.PURITY.MIN_CONTENT_LENGTH = 1

    validator = PurityValidator(config)

    assert validator.validate("عقدب a", "ar").passed is True


def test_unsupported_language_raises(validator: PurityValidator) -> None:
    with pytest.raises(NotSupportedLanguageError):
        validator.validate(PURE_FRENCH, "en")


def test_require_pure_returns_passing_report(validator: PurityValidator) -> None:
    assert validator.require_pure(PURE_ARABIC, "ar").passed is True


def test_require_pure_raises_with_report(validator: PurityValidator) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        validator.require_pure(PURE_FRENCH, "ar")

    assert not isinstance(exc_info.value, InsufficientContentError)
    assert exc_info.value.report.passed is False


def test_require_pure_raises_insufficient_content(validator: PurityValidator) -> None:
    with pytest.raises(InsufficientContentError):
        validator.require_pure("Oui.", "fr")


def test_describe_ratios_lists_present_scripts(validator: PurityValidator) -> None:
    report: PurityReport = validator.validate("يعتبر العقد صحيحا بين الطرفين contract law", "ar")

    assert "arabic=" in report.describe_ratios()
    assert "latin=" in report.describe_ratios()
    assert "cyrillic" not in report.describe_ratios()
