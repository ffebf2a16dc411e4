from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from core.exceptions import OracleRateLimitError, OracleResponseError, OracleTimeoutError, OracleUnavailableError
from core.oracle.interface import EngineAttributes, OracleInterface, build_instruction
from handlers.async_comm import AsyncCommError, AsyncCommTimeoutError, AsyncHttp
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config


__all__: list[str] = ["ChatCompletionOracle"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ChatCompletionOracle(OracleInterface):
    """Oracle backed by an OpenAI-compatible chat completion endpoint.

    Args:
        http (AsyncHttp | None): HTTP client. Created on first use when None.
    """

    HTTP_TOO_MANY_REQUESTS: ClassVar[int] = 429
    HTTP_UNAUTHORIZED: ClassVar[int] = 401

    def __init__(self, http: AsyncHttp | None = None) -> None:
        super().__init__()
        self._http: AsyncHttp | None = http
        self._api_key: str = ""
        self._endpoint: str = ""
        self._model: str = ""
        self._temperature: float = 0.3
        self._max_tokens: int = 2000
        self._timeout: float = 30.0
        self._available: bool = False

    @property
    def is_available(self) -> bool:
        return self._available

    @staticmethod
    def fetch_engine_name() -> str:
        return "chat_completion"

    def initialize(self, config: Config) -> None:
        """Read the endpoint settings and the API key.

        Raises:
            OracleUnavailableError: If the API key is not set.
        """
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        self.engine_attributes = EngineAttributes(name="chat_completion", supports_instructions=True)
        self._endpoint = config.ORACLE.ENDPOINT
        self._model = config.ORACLE.MODEL
        self._temperature = config.ORACLE.TEMPERATURE
        self._max_tokens = config.ORACLE.MAX_TOKENS
        self._timeout = config.ORACLE.TIMEOUT
        self._api_key = self.get_api_key()
        if not self._api_key:
            msg = f"Environment variable '{self.fetch_engine_name().upper()}_API_KEY' is not set"
            raise OracleUnavailableError(msg)
        self._available = True

    @property
    def http(self) -> AsyncHttp:
        if self._http is None or self._http.is_closed:
            self._http = AsyncHttp()
        return self._http

    def build_payload(self, content: str, src_lang: str, tgt_lang: str, *, strict: bool = False) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": build_instruction(src_lang, tgt_lang, strict=strict)},
                {"role": "user", "content": content},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

    async def translate(self, content: str, src_lang: str, tgt_lang: str, *, strict: bool = False) -> str:
        if not self._available:
            msg = "The chat completion oracle is not available"
            raise OracleUnavailableError(msg)

        logger.debug(
            "'content': '%s', 'src_lang': '%s', 'tgt_lang': '%s'", StringUtils.preview(content), src_lang, tgt_lang
        )
        try:
            data: Any = await self.http.post(
                url=self._endpoint,
                data=self.build_payload(content, src_lang, tgt_lang, strict=strict),
                headers={"Authorization": f"Bearer {self._api_key}"},
                total_timeout=self._timeout,
            )
        except AsyncCommTimeoutError as err:
            msg = "The chat completion endpoint did not answer in time"
            raise OracleTimeoutError(msg) from err
        except AsyncCommError as err:
            if err.status == self.HTTP_TOO_MANY_REQUESTS:
                msg = "Chat completion rate limit reached"
                raise OracleRateLimitError(msg) from err
            if err.status == self.HTTP_UNAUTHORIZED:
                self._available = False
                msg = "Authorisation failed. Please check your API key"
                raise OracleUnavailableError(msg) from err
            msg = f"Chat completion request failed: {err}"
            raise OracleUnavailableError(msg) from err

        text: str = self._extract_text(data)
        logger.info("translation completed (%s > %s)", src_lang, tgt_lang)
        return text

    @staticmethod
    def _extract_text(data: Any) -> str:
        """Pull the first choice's message content out of a chat completion response.

        Raises:
            OracleResponseError: If the response has no usable text.
        """
        try:
            text: Any = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as err:
            msg = "Invalid response format from the chat completion endpoint"
            raise OracleResponseError(msg) from err
        if not isinstance(text, str) or not text.strip():
            msg = "The chat completion endpoint returned an empty message"
            raise OracleResponseError(msg)
        return text

    async def close(self) -> None:
        self._available = False
        if self._http is not None:
            await self._http.close()
            self._http = None
        logger.debug("'%s' process termination", self.__class__.__name__)
