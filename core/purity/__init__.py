"""Script purity validation package."""

from core.purity.validator import PurityValidator

__all__: list[str] = ["PurityValidator"]
