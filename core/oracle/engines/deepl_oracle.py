from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from deepl import DeepLClient, TextResult
from deepl.exceptions import (
    AuthorizationException,
    ConnectionException,
    DeepLException,
    QuotaExceededException,
    TooManyRequestsException,
)

from core.exceptions import NotSupportedLanguageError, OracleRateLimitError, OracleResponseError, OracleUnavailableError
from core.oracle.interface import EngineAttributes, OracleInterface, build_instruction
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config


__all__: list[str] = ["DeeplOracle"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class DeeplOracle(OracleInterface):
    """Oracle backed by the DeepL API.

    DeepL has no system prompt; on retries the reinforced instruction is passed as translation
    context, which DeepL uses to disambiguate but never translates.
    """

    _language_codes: ClassVar[dict[str, str]] = {"ar": "AR", "fr": "FR"}

    def __init__(self) -> None:
        super().__init__()
        self.__inst: DeepLClient | None = None
        self.__available: bool = False

    @property
    def _inst(self) -> DeepLClient:
        if self.__inst is None:
            msg = "The DeepL instance is not initialised"
            raise OracleUnavailableError(msg)
        return self.__inst

    @property
    def is_available(self) -> bool:
        return self.__available

    @staticmethod
    def fetch_engine_name() -> str:
        return "deepl"

    def initialize(self, config: Config) -> None:
        """Create the DeepL client.

        Authentication happens on the first API call, not when the client is created.

        Raises:
            OracleUnavailableError: If the API key is not set or the client cannot be created.
        """
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        _ = config  # Indicate unused.

        self.engine_attributes = EngineAttributes(name="deepl", supports_instructions=False)
        auth_key: str = self.get_api_key()
        if not auth_key:
            msg = f"Environment variable '{self.fetch_engine_name().upper()}_API_KEY' is not set"
            raise OracleUnavailableError(msg)
        try:
            self.__inst = DeepLClient(auth_key)
        except (AttributeError, ValueError) as err:
            msg = "An error occurred while creating the DeepL client instance"
            raise OracleUnavailableError(msg) from err
        self.__available = True

    async def translate(self, content: str, src_lang: str, tgt_lang: str, *, strict: bool = False) -> str:
        try:
            _src_lang: str = self._language_codes[src_lang]
            _tgt_lang: str = self._language_codes[tgt_lang]
        except KeyError:
            msg: str = f"Languages not supported by DeepL. Source language: '{src_lang}'. Target language: '{tgt_lang}'."
            raise NotSupportedLanguageError(msg) from None

        context: str | None = build_instruction(src_lang, tgt_lang, strict=True) if strict else None
        try:
            results: TextResult | list[TextResult] = await asyncio.to_thread(
                self._inst.translate_text,
                content,
                source_lang=_src_lang,
                target_lang=_tgt_lang,
                context=context,
            )
        except QuotaExceededException as err:
            self.__available = False
            msg = "DeepL quota exceeded"
            raise OracleUnavailableError(msg) from err
        except AuthorizationException as err:
            self.__available = False
            msg = "Authorisation failed. Please check your authentication key"
            raise OracleUnavailableError(msg) from err
        except TooManyRequestsException as err:
            msg = "DeepL rate limit reached"
            raise OracleRateLimitError(msg) from err
        except ConnectionException as err:
            msg = "An error occurred when connecting to the DeepL server"
            raise OracleUnavailableError(msg) from err
        except (DeepLException, ValueError, TypeError) as err:
            msg = "An anomaly occurred during the translation process at DeepL"
            raise OracleUnavailableError(msg) from err

        logger.info("translation completed (%s > %s)", _src_lang, _tgt_lang)
        return self._extract_text(results)

    @staticmethod
    def _extract_text(results: TextResult | list[TextResult]) -> str:
        result: TextResult | None = results[0] if isinstance(results, list) and results else None
        if isinstance(results, TextResult):
            result = results
        if result is None or not result.text.strip():
            msg = "DeepL returned no text"
            raise OracleResponseError(msg)
        return result.text

    async def close(self) -> None:
        self.__available = False
        self.__inst = None
        logger.debug("'%s' process termination", self.__class__.__name__)
