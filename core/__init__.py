"""Core components of the legal translation purity pipeline.

This package contains the script classifier, the contamination cleaner, the purity validator, the
quality cache, the oracle engines and the orchestrator that ties them together.
"""

from core.cache import InFlightManager, QualityCache
from core.cleaning import ContentCleaner, PatternLibrary
from core.fallback import FallbackProvider, FallbackText
from core.orchestrator import TranslationOrchestrator
from core.purity import PurityValidator
from core.script import ScriptClassifier
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "ContentCleaner",
    "FallbackProvider",
    "FallbackText",
    "InFlightManager",
    "PatternLibrary",
    "PurityValidator",
    "QualityCache",
    "ScriptClassifier",
    "TranslationOrchestrator",
]
