"""Configuration data models for the purity pipeline.

Each data class is one section of the INI file. Field names match the INI keys, and the default
values determine how the loader coerces the INI strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Cache",
    "Cleaning",
    "Config",
    "Fallback",
    "General",
    "Oracle",
    "Purity",
]


@dataclass
class General:
    DEBUG: bool = False
    LOG_FILE: str = ""
    LOG_LEVEL: str = "INFO"


@dataclass
class Purity:
    THRESHOLD: float = 0.95
    CEILING: float = 0.05
    MIN_CONTENT_LENGTH: int = 20
    IGNORE_NEUTRAL: bool = True


@dataclass
class Cleaning:
    PATTERN_FILE: str = ""
    INTERLEAVE_POLICY: str = "drop_minority"
    MAX_ITERATIONS: int = 8
    PRECLEAN_SOURCE: bool = True


@dataclass
class Oracle:
    ENGINE: list[str] = field(default_factory=lambda: ["chat_completion"])
    TIMEOUT: float = 30.0
    RETRY_BUDGET: int = 2
    ENDPOINT: str = "https://api.groq.com/openai/v1/chat/completions"
    MODEL: str = "llama-3.1-8b-instant"
    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 2000


@dataclass
class Cache:
    ENABLED: bool = True
    DB_PATH: str = "quality_cache.db"
    MAX_ENTRIES: int = 5000
    TTL_HOURS: float = 24.0
    REVALIDATION_SAMPLE: int = 50


@dataclass
class Fallback:
    ARABIC_TEXT: str = "هذا نص قانوني تم ترجمته إلى العربية حسب القانون الجزائري."
    FRENCH_TEXT: str = "Ce texte juridique a été traduit en français selon le droit algérien."
    TOPIC_TEMPLATES: bool = True


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    PURITY: Purity = field(default_factory=Purity)
    CLEANING: Cleaning = field(default_factory=Cleaning)
    ORACLE: Oracle = field(default_factory=Oracle)
    CACHE: Cache = field(default_factory=Cache)
    FALLBACK: Fallback = field(default_factory=Fallback)
