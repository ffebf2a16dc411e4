"""Exception hierarchy of the purity pipeline.

Per-request errors (oracle, validation) are resolved into a fallback by the orchestrator and never
reach the UI layer. Startup errors (pattern library, cache) are fatal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.purity_models import PurityReport

__all__: list[str] = [
    "CacheInitializationError",
    "InsufficientContentError",
    "NotSupportedLanguageError",
    "OracleRateLimitError",
    "OracleResponseError",
    "OracleTimeoutError",
    "OracleUnavailableError",
    "PatternLibraryError",
    "PurityPipelineError",
    "ValidationFailedError",
]


class PurityPipelineError(Exception):
    """Base class of every pipeline error."""


class NotSupportedLanguageError(PurityPipelineError):
    """A language code other than the supported ones was specified."""


class OracleUnavailableError(PurityPipelineError):
    """The text-generation oracle failed: network error, non-2xx response or no engine left."""


class OracleTimeoutError(OracleUnavailableError):
    """The oracle did not answer in time."""


class OracleRateLimitError(OracleUnavailableError):
    """The oracle rejected the request because of rate limiting."""


class OracleResponseError(OracleUnavailableError):
    """The oracle answered with a payload that holds no text."""


class ValidationFailedError(PurityPipelineError):
    """Cleaned text does not meet the purity requirements of the target language.

    Attributes:
        report (PurityReport): The failing report.
    """

    def __init__(self, msg: str, report: PurityReport) -> None:
        super().__init__(msg)
        self.report: PurityReport = report


class InsufficientContentError(ValidationFailedError):
    """Cleaned text is too short to validate meaningfully."""


class PatternLibraryError(PurityPipelineError):
    """The contamination pattern library could not be loaded or extended."""


class CacheInitializationError(PurityPipelineError):
    """The quality cache database could not be opened or prepared."""
