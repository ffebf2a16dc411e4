"""Emoji detection for UI glyph removal.

Generated legal text sometimes carries the pictographs of the UI buttons it was scraped next to
(for example a refresh arrow in front of a translation toggle). The cleaner removes them as part of
the signature pass.

From version 2.14.1 onwards the emoji module stores its data in a separate file that is loaded as
needed. Packaging tools must include that file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import emoji
from packaging.version import Version

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging


__all__: list[str] = ["EmojiHandler", "EmojiMatch"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

if Version(emoji.__version__) < Version("2.14.1"):
    logger.warning(
        "The version of the emoji module currently in use is %s. Version 2.14.1 or later is required.",
        emoji.__version__,
    )


class EmojiMatch(NamedTuple):
    """Location of one emoji sequence in a text."""

    start: int
    end: int
    emoji: str


class EmojiHandler:
    """Finds emoji sequences with their offsets."""

    def find(self, text: str) -> list[EmojiMatch]:
        """Locate every emoji sequence.

        Multi-codepoint sequences (ZWJ joins, skin tones, flags) are reported as one match.

        Args:
            text (str): Text to scan.

        Returns:
            list[EmojiMatch]: Matches in text order.
        """
        return [
            EmojiMatch(start=item["match_start"], end=item["match_end"], emoji=item["emoji"])
            for item in emoji.emoji_list(text)
        ]
