from __future__ import annotations

from handlers.emoji import EmojiHandler, EmojiMatch


def test_find_reports_offsets() -> None:
    handler = EmojiHandler()
    text = "عقد 🔄 البيع"

    matches: list[EmojiMatch] = handler.find(text)

    assert len(matches) == 1
    assert text[matches[0].start : matches[0].end] == "🔄"


def test_find_reports_zwj_sequence_as_one_match() -> None:
    handler = EmojiHandler()
    text = "a 👨‍⚖️ b"

    matches: list[EmojiMatch] = handler.find(text)

    assert len(matches) == 1
    assert matches[0].emoji == text[matches[0].start : matches[0].end]


def test_find_without_emoji() -> None:
    assert EmojiHandler().find("Le contrat est valide.") == []
