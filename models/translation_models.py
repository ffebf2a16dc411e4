"""Models for translation requests handled by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Final

__all__: list[str] = [
    "LANGUAGE_NAMES",
    "SUPPORTED_LANGUAGES",
    "OrchestratorStatistics",
    "TranslationOutcome",
    "TranslationState",
]

SUPPORTED_LANGUAGES: Final[tuple[str, ...]] = ("ar", "fr")
LANGUAGE_NAMES: Final[dict[str, str]] = {"ar": "Arabic", "fr": "French"}


class TranslationState(StrEnum):
    """States of one translation request.

    REQUESTED -> ORACLE_CALLED -> CLEANED -> VALIDATED -> ACCEPTED | RETRY | FALLBACK.
    RETRY leads back to ORACLE_CALLED while the retry budget lasts.
    """

    REQUESTED = "requested"
    ORACLE_CALLED = "oracle_called"
    CLEANED = "cleaned"
    VALIDATED = "validated"
    ACCEPTED = "accepted"
    RETRY = "retry"
    FALLBACK = "fallback"


@dataclass
class TranslationOutcome:
    """What the UI layer receives for one translation request.

    Attributes:
        text (str): Displayable text. Never empty.
        was_translated (bool): True when ``text`` is an accepted oracle translation.
        purity_score (float): Ratio of the target script in ``text``.
        is_fallback (bool): True when ``text`` is pre-authored fallback content.
        from_cache (bool): True when the text came from the quality cache.
        final_state (TranslationState): Terminal state of the request.
        oracle_calls (int): Oracle invocations made for this request.
        transitions (list[TranslationState]): Every state visited, in order.
        fallback_topic (str | None): Legal topic of the fallback template, if one matched.
    """

    text: str
    was_translated: bool
    purity_score: float
    is_fallback: bool = False
    from_cache: bool = False
    final_state: TranslationState = TranslationState.ACCEPTED
    oracle_calls: int = 0
    transitions: list[TranslationState] = field(default_factory=list)
    fallback_topic: str | None = None

    def to_ui_dict(self) -> dict[str, Any]:
        """Payload in the shape the UI layer expects."""
        return {
            "text": self.text,
            "wasTranslated": self.was_translated,
            "purityScore": self.purity_score,
            "isFallback": self.is_fallback,
        }


@dataclass
class OrchestratorStatistics:
    """Counters kept by the orchestrator across requests."""

    requests: int = 0
    identity: int = 0
    cache_hits: int = 0
    collapsed: int = 0
    oracle_calls: int = 0
    oracle_failures: int = 0
    validation_failures: int = 0
    retries: int = 0
    accepted: int = 0
    fallbacks: int = 0
