"""Contamination cleaning package."""

from core.cleaning.cleaner import INTERLEAVE_POLICIES, ContentCleaner
from core.cleaning.patterns import DEFAULT_PATTERN_FILE, CompiledPattern, PatternLibrary

__all__: list[str] = ["DEFAULT_PATTERN_FILE", "INTERLEAVE_POLICIES", "CompiledPattern", "ContentCleaner", "PatternLibrary"]
