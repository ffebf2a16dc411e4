"""Abstract base class of the text-generation oracles.

An oracle turns a legal text in one supported language into the other one. Its output is
untrusted: whatever it returns goes through cleaning and purity validation before it is shown.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Final

from core.exceptions import OracleRateLimitError
from models.translation_models import LANGUAGE_NAMES
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["EngineAttributes", "OracleInterface", "build_instruction"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

_BASE_INSTRUCTION: Final[str] = (
    "You are a professional legal translator specialised in Algerian law. "
    "Translate the text supplied by the user from {source} to {target}. "
    "Keep article numbers and legal references. Return only the translation."
)
_LANGUAGE_INSTRUCTIONS: Final[dict[str, str]] = {
    "ar": (
        "CRITICAL LANGUAGE INSTRUCTION: You MUST respond ONLY in Arabic. Do not mix languages. "
        "Use only Arabic legal terminology. If you don't know the Arabic term, use the Arabic equivalent "
        "or explain in Arabic. NO FRENCH OR ENGLISH words allowed in your response."
    ),
    "fr": (
        "CRITICAL LANGUAGE INSTRUCTION: You MUST respond ONLY in French. Do not mix languages. "
        "Use only French legal terminology. NO ARABIC OR ENGLISH words allowed in your response."
    ),
}
_STRICT_INSTRUCTION: Final[str] = (
    "Your previous answer was rejected because it mixed scripts. Write every single word in {target}. "
    "Do not output application names, version numbers, button labels, English words or Cyrillic letters."
)


def build_instruction(src_lang: str, tgt_lang: str, *, strict: bool = False) -> str:
    """Build the system instruction sent with a translation request.

    Args:
        src_lang (str): Source language code.
        tgt_lang (str): Target language code.
        strict (bool): Add the reinforced single-language instruction used for retries.

    Returns:
        str: The instruction text.
    """
    source: str = LANGUAGE_NAMES.get(src_lang, src_lang)
    target: str = LANGUAGE_NAMES.get(tgt_lang, tgt_lang)
    parts: list[str] = [_BASE_INSTRUCTION.format(source=source, target=target)]
    if tgt_lang in _LANGUAGE_INSTRUCTIONS:
        parts.append(_LANGUAGE_INSTRUCTIONS[tgt_lang])
    if strict:
        parts.append(_STRICT_INSTRUCTION.format(target=target))
    return "\n\n".join(parts)


@dataclass
class EngineAttributes:
    """Engine capabilities.

    Attributes:
        name (str): Display name of the engine.
        supports_instructions (bool): Whether the engine accepts free-text instructions.
    """

    name: str
    supports_instructions: bool = False


class OracleInterface(ABC):
    """Abstract base class of the oracle engines.

    Subclasses register themselves under ``fetch_engine_name()`` when they are defined, so that
    the engine list of the configuration can refer to them by name.

    Attributes:
        registered (ClassVar[dict[str, type[OracleInterface]]]): Registered engine classes by name.
    """

    registered: ClassVar[dict[str, type[OracleInterface]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if not hasattr(cls, "fetch_engine_name") or not callable(cls.fetch_engine_name):
            msg = "Subclasses of OracleInterface must implement the static method fetch_engine_name()."
            raise TypeError(msg)

        if not isinstance(cls.fetch_engine_name(), str) or cls.fetch_engine_name() == "":
            return

        if cls.fetch_engine_name() in cls.registered:
            msg: str = f"An oracle engine with the name '{cls.fetch_engine_name()}' is already registered."
            raise ValueError(msg)

        cls.registered[cls.fetch_engine_name()] = cls

    def __init__(self) -> None:
        self._engine_attributes: EngineAttributes | None = None

    @property
    def engine_attributes(self) -> EngineAttributes:
        if self._engine_attributes is None:
            msg = "Engine attributes have not been set."
            raise RuntimeError(msg)
        return self._engine_attributes

    @engine_attributes.setter
    def engine_attributes(self, attributes: EngineAttributes) -> None:
        if self._engine_attributes is not None:
            msg = "Engine attributes can only be set once during initialization."
            raise RuntimeError(msg)
        self._engine_attributes = attributes

    @property
    def engine_name(self) -> str:
        return self.engine_attributes.name

    def is_rate_limit_error(self, err: Exception) -> bool:
        return isinstance(err, OracleRateLimitError)

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can currently serve requests."""
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def fetch_engine_name() -> str:
        """Fetch the distinguished name of the engine.

        Called during class registration, so the implementation must be available at subclass
        definition time.
        """
        raise NotImplementedError

    @abstractmethod
    def initialize(self, config: Config) -> None:
        """Prepare the engine from the configuration.

        Raises:
            OracleUnavailableError: If the engine cannot be used, for example without an API key.
        """
        raise NotImplementedError

    @abstractmethod
    async def translate(self, content: str, src_lang: str, tgt_lang: str, *, strict: bool = False) -> str:
        """Ask the oracle for a translation.

        Args:
            content (str): Source text.
            src_lang (str): Source language code.
            tgt_lang (str): Target language code.
            strict (bool): Send the reinforced single-language instruction.

        Returns:
            str: Raw oracle output. Not cleaned, not validated.

        Raises:
            OracleTimeoutError: If the oracle does not answer in time.
            OracleRateLimitError: If the oracle rejects the request because of rate limiting.
            OracleResponseError: If the answer holds no text.
            OracleUnavailableError: For any other failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    def get_api_key(self) -> str:
        """Read the API key from the environment.

        The variable is named after the engine, for example ``CHAT_COMPLETION_API_KEY``.

        Returns:
            str: The key, or an empty string if the variable is not set.
        """
        return os.getenv(f"{self.fetch_engine_name().upper()}_API_KEY", "")
