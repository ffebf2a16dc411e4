"""Data models for the legal translation purity pipeline.

This package contains dataclass definitions for configuration, script classification, cleaning
results, purity reports, cache entries and translation outcomes, plus the regular expressions used
by the cleaning passes.
"""

from __future__ import annotations

from models.cache_models import CacheEntry, CacheKey, CacheStatistics
from models.cleaning_models import (
    CleaningAction,
    CleaningResult,
    ContaminationPattern,
    PatternAction,
    PatternLibraryDocument,
)
from models.config_models import Config
from models.purity_models import PurityReport
from models.script_models import LETTER_SCRIPTS, ScriptKind, TextSpan
from models.translation_models import (
    LANGUAGE_NAMES,
    SUPPORTED_LANGUAGES,
    OrchestratorStatistics,
    TranslationOutcome,
    TranslationState,
)

__all__: list[str] = [
    "LANGUAGE_NAMES",
    "LETTER_SCRIPTS",
    "SUPPORTED_LANGUAGES",
    "CacheEntry",
    "CacheKey",
    "CacheStatistics",
    "CleaningAction",
    "CleaningResult",
    "Config",
    "ContaminationPattern",
    "OrchestratorStatistics",
    "PatternAction",
    "PatternLibraryDocument",
    "PurityReport",
    "ScriptKind",
    "TextSpan",
    "TranslationOutcome",
    "TranslationState",
]
