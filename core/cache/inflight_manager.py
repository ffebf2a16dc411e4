from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.translation_models import TranslationOutcome


__all__: list[str] = ["InFlightManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class InFlightManager:
    """Collapses concurrent identical translation requests into one oracle round.

    The first request for a key becomes the producer; later requests for the same key wait for the
    producer's outcome instead of calling the oracle themselves.

    Args:
        timeout (float | None): Seconds a waiter waits for the producer. INFLIGHT_TIMEOUT_SEC when None.

    Attributes:
        INFLIGHT_TIMEOUT_SEC (float): Default waiting timeout in seconds.
    """

    INFLIGHT_TIMEOUT_SEC: ClassVar[float] = 30.0

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout: float = timeout if timeout is not None else self.INFLIGHT_TIMEOUT_SEC
        self._inflight: dict[str, asyncio.Future[TranslationOutcome]] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self._is_initialized: bool = False

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def component_load(self) -> None:
        self._is_initialized = True
        logger.info("InFlightManager initialized successfully")

    async def component_teardown(self) -> None:
        """Cancel pending futures and clear the in-flight state."""
        self._is_initialized = False
        async with self._lock:
            for fut in self._inflight.values():
                if not fut.done():
                    fut.cancel()
            self._inflight.clear()
        logger.info("InFlightManager torn down and in-flight state cleared")

    async def mark_inflight_start(self, key: str | None) -> TranslationOutcome | None:
        """Register a request, or wait for the identical request already in progress.

        Args:
            key (str | None): In-flight key of the request.

        Returns:
            TranslationOutcome | None: The producer's outcome when another request was in
            progress, or None when the caller is now the producer.

        Raises:
            TimeoutError: If waiting for the producer times out or is cancelled.
            Exception: Whatever the producer stored with ``store_inflight_exception``.
        """
        if not self._is_initialized:
            return None

        if not key:
            logger.warning("Attempted to mark in-flight start with empty key")
            return None

        async with self._lock:
            if key not in self._inflight:
                loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
                fut: asyncio.Future[TranslationOutcome] = loop.create_future()
                self._inflight[key] = fut
                logger.debug("Marked in-flight start for key: %s", key[:16])
                return None
            fut = self._inflight[key]
            logger.debug("In-flight translation detected for key: %s", key[:16])

        try:
            # shield: a waiter timing out must not cancel the producer's future.
            outcome: TranslationOutcome = await asyncio.wait_for(asyncio.shield(fut), timeout=self.timeout)
            logger.debug("Received in-flight translation outcome for key: %s", key[:16])
        except TimeoutError:
            logger.warning("In-flight translation timeout for key: %s", key[:16])
            msg: str = f"In-flight translation timed out for key: {key[:16]}"
            raise TimeoutError(msg) from None
        except asyncio.CancelledError:
            logger.warning("In-flight translation cancelled for key: %s", key[:16])
            msg = f"In-flight translation cancelled for key: {key[:16]}"
            raise TimeoutError(msg) from None
        else:
            return outcome

    async def store_inflight_result(self, key: str | None, outcome: TranslationOutcome) -> None:
        """Hand the producer's outcome to every waiter and unregister the key."""
        if not key:
            logger.warning("Attempted to store in-flight result with empty key")
            return

        async with self._lock:
            fut: asyncio.Future[TranslationOutcome] | None = self._inflight.pop(key, None)
            if fut and not fut.done():
                fut.set_result(outcome)
                logger.debug("Set in-flight translation outcome for key: %s", key[:16])
            else:
                logger.warning("No in-flight future found or already done for key: %s when storing result", key[:16])

    async def store_inflight_exception(self, key: str | None, exc: Exception) -> None:
        """Fail every waiter with ``exc`` and unregister the key."""
        if not key:
            logger.warning("Attempted to store in-flight exception with empty key")
            return

        async with self._lock:
            fut: asyncio.Future[TranslationOutcome] | None = self._inflight.pop(key, None)
            if fut and not fut.done():
                fut.set_exception(exc)
                # Retrieve it so that a future without waiters does not log "exception never retrieved".
                fut.exception()
                logger.debug("Set in-flight translation exception for key: %s", key[:16])
            else:
                logger.warning(
                    "No in-flight future found or already done for key: %s when storing exception", key[:16]
                )
