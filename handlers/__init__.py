"""Handlers for outbound HTTP communication and emoji detection."""

from handlers.async_comm import AsyncCommError, AsyncCommInvalidContentTypeError, AsyncCommTimeoutError, AsyncHttp
from handlers.emoji import EmojiHandler, EmojiMatch

__all__: list[str] = [
    "AsyncCommError",
    "AsyncCommInvalidContentTypeError",
    "AsyncCommTimeoutError",
    "AsyncHttp",
    "EmojiHandler",
    "EmojiMatch",
]
