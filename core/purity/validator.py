from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from core.exceptions import InsufficientContentError, NotSupportedLanguageError, ValidationFailedError
from core.script.classifier import ScriptClassifier
from models.purity_models import PurityReport
from models.script_models import ScriptKind
from models.translation_models import SUPPORTED_LANGUAGES
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["PurityValidator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class PurityValidator:
    """Decides whether a text is pure enough for its target language.

    A text passes when all of the following hold:

    - the target script ratio reaches the threshold,
    - the other letter script stays at or below the ceiling,
    - no Cyrillic codepoint is present.

    Texts shorter than the configured minimum never pass.

    Args:
        config (Config): Application configuration. Only the PURITY section is read.
        classifier (ScriptClassifier | None): Script classifier. A new one is created when None.
    """

    TARGET_SCRIPTS: ClassVar[dict[str, ScriptKind]] = {"ar": ScriptKind.ARABIC, "fr": ScriptKind.LATIN}
    COMPETING_SCRIPTS: ClassVar[dict[str, ScriptKind]] = {"ar": ScriptKind.LATIN, "fr": ScriptKind.ARABIC}
    NEUTRAL_KINDS: ClassVar[tuple[ScriptKind, ...]] = (ScriptKind.DIGIT, ScriptKind.PUNCTUATION)

    def __init__(self, config: Config, classifier: ScriptClassifier | None = None) -> None:
        self.threshold: float = config.PURITY.THRESHOLD
        self.ceiling: float = config.PURITY.CEILING
        self.min_content_length: int = config.PURITY.MIN_CONTENT_LENGTH
        self.ignore_neutral: bool = config.PURITY.IGNORE_NEUTRAL
        self.classifier: ScriptClassifier = classifier or ScriptClassifier()

    def validate(self, text: str, target_lang: str) -> PurityReport:
        """Compute the purity report of a text.

        Args:
            text (str): Cleaned text.
            target_lang (str): ``"ar"`` or ``"fr"``.

        Returns:
            PurityReport: The verdict and the ratios it is based on.

        Raises:
            NotSupportedLanguageError: If the target language is not supported.
        """
        if target_lang not in SUPPORTED_LANGUAGES:
            msg = f"Unsupported target language: '{target_lang}'"
            raise NotSupportedLanguageError(msg)

        target: ScriptKind = self.TARGET_SCRIPTS[target_lang]
        competing: ScriptKind = self.COMPETING_SCRIPTS[target_lang]
        content_length: int = sum(1 for char in text if not char.isspace())
        ratios: dict[ScriptKind, float] = self.classifier.ratios(
            text, ignore=self.NEUTRAL_KINDS if self.ignore_neutral else ()
        )
        purity_score: float = ratios[target]

        reasons: list[str] = []
        if content_length < self.min_content_length:
            reasons.append("insufficient content")
        else:
            if purity_score < self.threshold:
                reasons.append(f"{target} ratio {purity_score:.3f} below threshold {self.threshold:.2f}")
            if ratios[competing] > self.ceiling:
                reasons.append(f"{competing} ratio {ratios[competing]:.3f} above ceiling {self.ceiling:.2f}")
            if ratios[ScriptKind.CYRILLIC] > 0.0 or self.classifier.counts(text).get(ScriptKind.CYRILLIC, 0) > 0:
                reasons.append("cyrillic codepoints present")

        report = PurityReport(
            target_lang=target_lang,
            script_ratios=ratios,
            passed=not reasons,
            threshold=self.threshold,
            ceiling=self.ceiling,
            purity_score=purity_score,
            reasons=reasons,
            content_length=content_length,
        )
        logger.debug("Purity for '%s': %s (%s)", target_lang, report.reason, report.describe_ratios())
        return report

    def require_pure(self, text: str, target_lang: str) -> PurityReport:
        """Validate a text and raise when it is rejected.

        Returns:
            PurityReport: The passing report.

        Raises:
            InsufficientContentError: If the text is shorter than the minimum content length.
            ValidationFailedError: If any other purity condition fails.
            NotSupportedLanguageError: If the target language is not supported.
        """
        report: PurityReport = self.validate(text, target_lang)
        if report.passed:
            return report
        msg = f"Purity check failed for '{target_lang}': {report.reason}"
        if report.content_length < self.min_content_length:
            raise InsufficientContentError(msg, report)
        raise ValidationFailedError(msg, report)
