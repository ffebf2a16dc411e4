"""Deterministic fallback content.

When no oracle answer survives cleaning and validation, the user gets a short pre-authored legal
paragraph in the target language instead of mixed-language output or an error. The paragraph is
chosen by a keyword vote over the source text; when no legal topic is recognized, the configured
generic text is used.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final, NamedTuple

from core.exceptions import NotSupportedLanguageError
from core.script.classifier import classify_char
from models.script_models import ScriptKind
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from re import Pattern

    from models.config_models import Config

__all__: list[str] = ["LEGAL_TOPICS", "FallbackProvider", "FallbackText"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

LEGAL_TOPICS: Final[tuple[str, ...]] = ("civil", "criminal", "commercial", "administrative", "family", "procedural")

_TEMPLATES: Final[dict[str, dict[str, str]]] = {
    "ar": {
        "civil": "يتعلق هذا المحتوى بأحكام القانون المدني الجزائري.",
        "criminal": "يتعلق هذا المحتوى بأحكام قانون العقوبات الجزائري.",
        "commercial": "يتعلق هذا المحتوى بأحكام القانون التجاري الجزائري.",
        "administrative": "يتعلق هذا المحتوى بأحكام القانون الإداري الجزائري.",
        "family": "يتعلق هذا المحتوى بأحكام قانون الأسرة الجزائري.",
        "procedural": "يتعلق هذا المحتوى بأحكام قانون الإجراءات المدنية والإدارية.",
    },
    "fr": {
        "civil": "Ce contenu concerne les dispositions du Code civil algérien.",
        "criminal": "Ce contenu concerne les dispositions du Code pénal algérien.",
        "commercial": "Ce contenu concerne les dispositions du Code de commerce algérien.",
        "administrative": "Ce contenu concerne les dispositions du droit administratif algérien.",
        "family": "Ce contenu concerne les dispositions du Code de la famille algérien.",
        "procedural": "Ce contenu concerne les dispositions du Code de procédure civile et administrative.",
    },
}

_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "civil": (
        "عقد", "التزام", "مسؤولية", "ضرر", "تعويض", "ملكية", "حق عيني",
        "contrat", "obligation", "responsabilité", "dommage", "indemnisation", "propriété", "droit réel",
    ),
    "criminal": (
        "جريمة", "جنحة", "مخالفة", "عقوبة", "متهم", "ضحية", "محاكمة",
        "crime", "délit", "contravention", "peine", "accusé", "victime", "procès",
    ),
    "commercial": (
        "شركة", "تاجر", "إفلاس", "سجل تجاري", "عمل تجاري", "منافسة",
        "société", "commerçant", "faillite", "registre de commerce", "acte de commerce", "concurrence",
    ),
    "administrative": (
        "قرار إداري", "طعن", "مجلس الدولة", "إدارة", "خدمة عمومية",
        "décision administrative", "recours", "conseil d'état", "administration", "service public",
    ),
    "family": (
        "زواج", "طلاق", "نفقة", "حضانة", "ميراث", "وصية",
        "mariage", "divorce", "pension alimentaire", "garde", "succession", "testament",
    ),
    "procedural": (
        "دعوى", "حكم", "قرار", "استئناف", "نقض", "تنفيذ", "إجراءات",
        "action", "jugement", "arrêt", "appel", "cassation", "exécution", "procédure",
    ),
}  # fmt: skip


def _keyword_pattern(keyword: str) -> Pattern[str]:
    """Whole-word matcher. Arabic keywords also match with the definite article attached."""
    prefix: str = "(?:ال)?" if classify_char(keyword[0]) is ScriptKind.ARABIC else ""
    return re.compile(rf"(?<!\w){prefix}{re.escape(keyword)}(?!\w)", re.IGNORECASE)


class FallbackText(NamedTuple):
    """Selected fallback paragraph.

    Attributes:
        text (str): Paragraph shown to the user.
        topic (str | None): Detected legal topic, None for the generic text.
        language (str): Language code of the paragraph.
    """

    text: str
    topic: str | None
    language: str


class FallbackProvider:
    """Chooses the fallback paragraph for a failed translation.

    Args:
        config (Config): Application configuration. Only the FALLBACK section is read.
    """

    def __init__(self, config: Config) -> None:
        self._generic: dict[str, str] = {"ar": config.FALLBACK.ARABIC_TEXT, "fr": config.FALLBACK.FRENCH_TEXT}
        self._use_topics: bool = config.FALLBACK.TOPIC_TEMPLATES
        self._keyword_patterns: dict[str, list[Pattern[str]]] = {
            topic: [_keyword_pattern(keyword) for keyword in _KEYWORDS[topic]] for topic in LEGAL_TOPICS
        }

    def detect_topic(self, source_text: str) -> str | None:
        """Detect the legal topic of a text by keyword count.

        Ties are resolved in the order of LEGAL_TOPICS.

        Returns:
            str | None: The topic, or None when no keyword matches.
        """
        text: str = StringUtils.normalize_text(StringUtils.ensure_str(source_text))
        best: str | None = None
        best_count: int = 0
        for topic in LEGAL_TOPICS:
            count: int = sum(len(pattern.findall(text)) for pattern in self._keyword_patterns[topic])
            if count > best_count:
                best, best_count = topic, count
        return best

    def select(self, source_text: str, target_lang: str) -> FallbackText:
        """Pick the fallback paragraph.

        Args:
            source_text (str): Source text of the failed request.
            target_lang (str): ``"ar"`` or ``"fr"``.

        Returns:
            FallbackText: The topic template when a topic is recognized, otherwise the generic text.

        Raises:
            NotSupportedLanguageError: If the target language is not supported.
        """
        if target_lang not in self._generic:
            msg = f"No fallback content for language '{target_lang}'"
            raise NotSupportedLanguageError(msg)

        topic: str | None = self.detect_topic(source_text) if self._use_topics else None
        if topic is None:
            return FallbackText(self._generic[target_lang], None, target_lang)
        logger.debug("Fallback topic detected: %s", topic)
        return FallbackText(_TEMPLATES[target_lang][topic], topic, target_lang)
