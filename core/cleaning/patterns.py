"""Versioned library of known contamination signatures.

The library is an ordered list of ContaminationPattern records loaded once at startup from a JSON
file. Order matters: whole user-reported strings come first so that the specific token patterns do
not fragment them before they can be recognized.
"""

from __future__ import annotations

import re
from json import JSONDecodeError
from pathlib import Path
from typing import TYPE_CHECKING, Final

from core.exceptions import PatternLibraryError
from models.cleaning_models import ContaminationPattern, PatternAction, PatternLibraryDocument
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable, Iterator
    from re import Match, Pattern

    from models.script_models import ScriptKind

__all__: list[str] = ["DEFAULT_PATTERN_FILE", "CompiledPattern", "PatternLibrary"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_PATTERN_FILE: Final[Path] = Path(__file__).with_name("contamination_patterns.json")


class CompiledPattern:
    """A ContaminationPattern with its compiled regular expression."""

    __slots__ = ("pattern", "regex")

    def __init__(self, pattern: ContaminationPattern) -> None:
        self.pattern: ContaminationPattern = pattern
        source: str = pattern.matcher if pattern.is_regex else re.escape(pattern.matcher)
        flags: int = re.IGNORECASE if pattern.ignore_case else 0
        try:
            self.regex: Pattern[str] = re.compile(source, flags)
        except re.error as err:
            msg = f"Invalid matcher for pattern '{pattern.id}': {err}"
            raise PatternLibraryError(msg) from err

    @property
    def id(self) -> str:
        return self.pattern.id

    def substitute_for(self, match: Match[str]) -> str:
        """Text that replaces a match, according to the pattern action."""
        _ = match
        if self.pattern.action is PatternAction.REPLACE:
            return self.pattern.replacement
        if self.pattern.action is PatternAction.SEPARATE:
            return " "
        return ""

    def __repr__(self) -> str:
        return f"CompiledPattern(id={self.pattern.id!r}, action={self.pattern.action.value!r})"


class PatternLibrary:
    """Ordered, immutable-in-use collection of contamination patterns.

    Args:
        patterns (Iterable[ContaminationPattern]): Patterns in application order.
        version (str): Library version, reported in logs.

    Raises:
        PatternLibraryError: If two patterns share an id or a matcher does not compile.
    """

    def __init__(self, patterns: Iterable[ContaminationPattern], version: str = "") -> None:
        self.version: str = version
        self._compiled: tuple[CompiledPattern, ...] = ()
        self._append(list(patterns))
        logger.info("Pattern library %s loaded with %d patterns", version or "(unversioned)", len(self))

    @classmethod
    def load(cls, path: str | Path | None = None) -> PatternLibrary:
        """Load the library from a JSON file.

        Args:
            path (str | Path | None): Library file. The bundled file is used when None or empty.

        Returns:
            PatternLibrary: The loaded library.

        Raises:
            PatternLibraryError: If the file is missing or malformed.
        """
        file_path: Path = Path(path) if path else DEFAULT_PATTERN_FILE
        try:
            raw: str = file_path.read_text(encoding="utf-8")
        except OSError as err:
            msg = f"Pattern library file '{file_path}' could not be read: {err}"
            raise PatternLibraryError(msg) from err

        try:
            document: PatternLibraryDocument = PatternLibraryDocument.from_json(raw)
        except (JSONDecodeError, KeyError, TypeError, ValueError) as err:
            msg = f"Pattern library file '{file_path}' is malformed: {err}"
            raise PatternLibraryError(msg) from err

        return cls(document.patterns, version=document.version)

    def _append(self, patterns: list[ContaminationPattern]) -> None:
        known: set[str] = {compiled.id for compiled in self._compiled}
        added: list[CompiledPattern] = []
        for pattern in patterns:
            if pattern.id in known:
                msg = f"Duplicate pattern id: '{pattern.id}'"
                raise PatternLibraryError(msg)
            known.add(pattern.id)
            added.append(CompiledPattern(pattern))
        self._compiled = (*self._compiled, *added)

    def extend(self, patterns: Iterable[ContaminationPattern]) -> None:
        """Append patterns after the existing ones.

        Existing patterns and their order are never changed. Nothing is appended when any new
        pattern is rejected.

        Raises:
            PatternLibraryError: If an id is already used or a matcher does not compile.
        """
        new_patterns: list[ContaminationPattern] = list(patterns)
        self._append(new_patterns)
        logger.info("Pattern library extended with %d patterns", len(new_patterns))

    def add_literal(
        self,
        text: str,
        *,
        pattern_id: str | None = None,
        scripts: Iterable[ScriptKind] = (),
        description: str = "reported contamination",
    ) -> ContaminationPattern:
        """Append a literal SEPARATE pattern for a contamination string reported by users.

        Args:
            text (str): The literal contamination string.
            pattern_id (str | None): Pattern id. Derived from the library size when None.
            scripts (Iterable[ScriptKind]): Scripts the string is made of.
            description (str): Reason recorded in cleaning actions.

        Returns:
            ContaminationPattern: The appended pattern.

        Raises:
            PatternLibraryError: If the text is blank or the id is already used.
        """
        if not text.strip():
            msg = "A reported contamination string must not be blank"
            raise PatternLibraryError(msg)
        pattern = ContaminationPattern(
            id=pattern_id or f"reported-{len(self) + 1}",
            matcher=text,
            is_regex=False,
            scripts_involved=list(scripts),
            action=PatternAction.SEPARATE,
            description=description,
        )
        self.extend([pattern])
        return pattern

    def __iter__(self) -> Iterator[CompiledPattern]:
        return iter(self._compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    @property
    def patterns(self) -> list[ContaminationPattern]:
        return [compiled.pattern for compiled in self._compiled]

    def get(self, pattern_id: str) -> ContaminationPattern | None:
        for compiled in self._compiled:
            if compiled.id == pattern_id:
                return compiled.pattern
        return None

    def find_tokens(self, text: str) -> list[tuple[str, str]]:
        """List every pattern match in the text.

        Args:
            text (str): Text to scan.

        Returns:
            list[tuple[str, str]]: (pattern id, matched text) pairs, in library order.
        """
        found: list[tuple[str, str]] = []
        for compiled in self._compiled:
            found.extend((compiled.id, match.group()) for match in compiled.regex.finditer(text) if match.group())
        return found
