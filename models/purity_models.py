"""Models for purity validation reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.script_models import ScriptKind

__all__: list[str] = ["PurityReport"]


@dataclass(frozen=True)
class PurityReport:
    """Verdict of the purity validator for one text.

    Attributes:
        target_lang (str): Target language code the text was checked against.
        script_ratios (dict[ScriptKind, float]): Ratios used for the decision.
        passed (bool): Whether every purity condition holds.
        threshold (float): Minimum ratio of the target script.
        ceiling (float): Maximum ratio of the other letter script.
        purity_score (float): Ratio of the target script.
        reasons (list[str]): Failed conditions. Empty when passed.
        content_length (int): Non-whitespace codepoints in the text.
    """

    target_lang: str
    script_ratios: dict[ScriptKind, float]
    passed: bool
    threshold: float
    ceiling: float
    purity_score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    content_length: int = 0

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "ok"

    def describe_ratios(self) -> str:
        """Render the non-zero ratios for log messages."""
        parts: list[str] = [f"{kind}={ratio:.3f}" for kind, ratio in self.script_ratios.items() if ratio > 0.0]
        return ", ".join(parts) or "none"
