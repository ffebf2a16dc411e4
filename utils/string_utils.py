from __future__ import annotations

import hashlib
import unicodedata

__all__: list[str] = ["StringUtils"]


class StringUtils:
    """Small text helpers shared by the cleaner, the cache and the orchestrator."""

    @staticmethod
    def ensure_str(value: object) -> str:
        """Ensure that the value is a string, returning an empty string if None.

        Does not strip: leading and trailing whitespace is significant to offset tracking.

        Args:
            value (object): The value to ensure as a string.

        Returns:
            str: The value as a string, or empty string if None.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def normalize_text(text: str) -> str:
        """Normalize text using Unicode NFC normalization.

        Lone surrogates are kept as they are; ``unicodedata.normalize`` accepts them.

        Args:
            text (str): Text to normalize.

        Returns:
            str: Normalized text.
        """
        return unicodedata.normalize("NFC", text)

    @staticmethod
    def generate_hash_key(*parts: str) -> str:
        """Generate a SHA-256 hex digest over the '|' joined parts.

        Strings that cannot be encoded as UTF-8 (lone surrogates) are encoded with
        ``surrogatepass`` so that hashing never fails.

        Returns:
            str: A SHA-256 hash key.
        """
        key_data: str = "|".join(parts)
        return hashlib.sha256(key_data.encode("utf-8", errors="surrogatepass")).hexdigest()

    @staticmethod
    def preview(value: str, limit: int = 50) -> str:
        """Shorten text for log messages."""
        value = StringUtils.ensure_str(value)
        if len(value) <= limit:
            return value
        return value[:limit] + "..."
