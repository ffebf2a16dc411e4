"""Offset tracking for text that is edited by several passes.

Every character of the working text carries the index it had in the original input, or None when
it was inserted by a pass. Removed ranges can therefore always be reported in original offsets,
however much the earlier passes shrank or grew the text.
"""

from __future__ import annotations

__all__: list[str] = ["TrackedText"]


class TrackedText:
    """Mutable text with a per-character origin table.

    Args:
        original (str): The input text. Its offsets are the reference for every reported span.
    """

    def __init__(self, original: str) -> None:
        self.original: str = original
        self._chars: list[str] = list(original)
        self._origins: list[int | None] = list(range(len(original)))
        self._text_cache: str | None = original

    @property
    def text(self) -> str:
        """Current working text."""
        if self._text_cache is None:
            self._text_cache = "".join(self._chars)
        return self._text_cache

    def __len__(self) -> int:
        return len(self._chars)

    def origin_range(self, start: int, end: int) -> tuple[int, int] | None:
        """Map a working range to the smallest original range that covers it.

        Args:
            start (int): Working start offset (inclusive).
            end (int): Working end offset (exclusive).

        Returns:
            tuple[int, int] | None: Original (start, end), or None when every character in the
            range was inserted by a pass.
        """
        origins: list[int] = [origin for origin in self._origins[start:end] if origin is not None]
        if not origins:
            return None
        return min(origins), max(origins) + 1

    def anchor(self, position: int) -> int:
        """Original offset of a working position, for zero-width insertions.

        Uses the first original character at or after ``position``, then the last one before it.
        """
        for origin in self._origins[position:]:
            if origin is not None:
                return origin
        for origin in reversed(self._origins[:position]):
            if origin is not None:
                return origin + 1
        return len(self.original)

    def replace(self, start: int, end: int, replacement: str = "") -> tuple[int, int] | None:
        """Replace a working range. Inserted characters have no origin.

        Args:
            start (int): Working start offset (inclusive).
            end (int): Working end offset (exclusive).
            replacement (str): Text to write in place of the range.

        Returns:
            tuple[int, int] | None: Original range of the replaced characters, as ``origin_range``.
        """
        span: tuple[int, int] | None = self.origin_range(start, end)
        self._chars[start:end] = list(replacement)
        self._origins[start:end] = [None] * len(replacement)
        self._text_cache = None
        return span

    def insert(self, position: int, text: str) -> int:
        """Insert text at a working position.

        Returns:
            int: Original anchor offset of the insertion point.
        """
        anchor: int = self.anchor(position)
        self._chars[position:position] = list(text)
        self._origins[position:position] = [None] * len(text)
        self._text_cache = None
        return anchor
