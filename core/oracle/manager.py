from __future__ import annotations

import time
from typing import TYPE_CHECKING

from core.exceptions import OracleRateLimitError, OracleUnavailableError
from core.oracle.engines import (
    ChatCompletionOracle,  # noqa: F401
    DeeplOracle,  # noqa: F401
)
from core.oracle.interface import OracleInterface
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config


__all__: list[str] = ["OracleManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ADAPTIVE_LIMITER_ENABLED: bool = True
ADAPTIVE_LIMITER_BASE_COOLDOWN_SEC: float = 1.0
ADAPTIVE_LIMITER_MAX_COOLDOWN_SEC: float = 30.0
ADAPTIVE_LIMITER_RESET_SEC: float = 60.0
ADAPTIVE_LIMITER_LOG_INTERVAL_SEC: float = 5.0


class OracleManager:
    """Front of the configured oracle engines.

    Engines are tried in configuration order: the first available engine serves every request
    until it becomes unavailable, then it is dropped and the next one takes over. Rate-limit
    errors put the manager into an exponentially growing cooldown during which requests fail
    immediately.

    Args:
        config (Config): Application configuration. Only the ORACLE section is read.
    """

    def __init__(self, config: Config) -> None:
        self.config: Config = config
        self._engines: dict[str, OracleInterface] = {}
        self._active: list[str] = []
        self._rate_limit_error_count: int = 0
        self._rate_limit_last_error: float = 0.0
        self._rate_limit_until: float = 0.0
        self._rate_limit_last_log: float = 0.0
        logger.debug("Registered oracle engines: %s", OracleInterface.registered)

    async def initialize(self) -> None:
        """Create and initialize the configured engines.

        Engines that fail to initialize are logged and skipped.
        """
        logger.info("OracleManager initialization started")

        self._active.clear()
        for _name in self.config.ORACLE.ENGINE:
            _cls: type[OracleInterface] | None = OracleInterface.registered.get(_name)
            if _cls is None:
                logger.critical("Oracle engine not found: '%s'", _name)
                continue
            _instance: OracleInterface = _cls()
            try:
                _instance.initialize(self.config)
            except OracleUnavailableError as err:
                logger.critical("Oracle engine '%s' could not be set up: %s", _name, err)
                continue
            self.add_engine(_instance)
            logger.info("Oracle engine initialized: '%s'", _instance.engine_name)

        if not self._active:
            logger.error("No oracle engine is available; every request will use fallback content")
        else:
            logger.info("Active oracle engines: %s", ", ".join(self.fetch_engine_names()))

    def add_engine(self, engine: OracleInterface) -> None:
        """Append an already initialized engine to the active list."""
        name: str = engine.fetch_engine_name()
        self._engines[name] = engine
        if name not in self._active:
            self._active.append(name)

    def fetch_engine_names(self) -> list[str]:
        return list(self._active)

    @property
    def current_engine_instance(self) -> OracleInterface:
        """The engine that serves requests.

        Raises:
            OracleUnavailableError: If no engine is left.
        """
        try:
            return self._engines[self._active[0]]
        except (IndexError, KeyError) as err:
            msg = "No oracle engines currently available"
            raise OracleUnavailableError(msg) from err

    def refresh_active_engine_list(self) -> None:
        """Drop the current engine when it reports itself unavailable."""
        if not self._active:
            logger.debug("No oracle engines configured.")
            return
        if self.current_engine_instance.is_available:
            return

        removed: str = self._active.pop(0)
        logger.error("Oracle engine disabled: '%s'", removed)

    def _rate_limit_blocked(self) -> bool:
        if not ADAPTIVE_LIMITER_ENABLED:
            return False

        now: float = time.monotonic()
        if now < self._rate_limit_until:
            if now - self._rate_limit_last_log >= ADAPTIVE_LIMITER_LOG_INTERVAL_SEC:
                remaining: float = self._rate_limit_until - now
                logger.warning("Oracle temporarily throttled (%.1f sec remaining).", remaining)
                self._rate_limit_last_log = now
            return True
        return False

    def _register_rate_limit(self) -> None:
        """Record a rate-limit event and extend the cooldown."""
        if not ADAPTIVE_LIMITER_ENABLED:
            return

        now: float = time.monotonic()
        if now - self._rate_limit_last_error > ADAPTIVE_LIMITER_RESET_SEC:
            self._rate_limit_error_count = 0

        self._rate_limit_error_count += 1
        self._rate_limit_last_error = now

        backoff: float = ADAPTIVE_LIMITER_BASE_COOLDOWN_SEC * (2 ** (self._rate_limit_error_count - 1))
        backoff = min(backoff, ADAPTIVE_LIMITER_MAX_COOLDOWN_SEC)

        self._rate_limit_until = max(self._rate_limit_until, now + backoff)

    async def translate(self, content: str, src_lang: str, tgt_lang: str, *, strict: bool = False) -> str:
        """Translate with the current engine.

        Returns:
            str: Raw oracle output.

        Raises:
            OracleRateLimitError: If the manager is cooling down or the engine is rate limited.
            OracleUnavailableError: If no engine is left or the engine call fails.
        """
        if self._rate_limit_blocked():
            msg = "Oracle requests are throttled after rate limiting"
            raise OracleRateLimitError(msg)

        engine: OracleInterface = self.current_engine_instance
        try:
            return await engine.translate(content, src_lang, tgt_lang, strict=strict)
        except OracleUnavailableError as err:
            if engine.is_rate_limit_error(err):
                self._register_rate_limit()
                logger.warning("Oracle rate limit detected: %s", err)
            self.refresh_active_engine_list()
            raise

    async def shutdown_engines(self) -> None:
        logger.info("Class '%s' termination process started.", self.__class__.__name__)
        for _inst in self._engines.values():
            await _inst.close()
        logger.info("Class '%s' termination process completed.", self.__class__.__name__)
