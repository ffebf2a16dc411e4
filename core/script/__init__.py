"""Unicode script classification."""

from core.script.classifier import ScriptClassifier, classify_char

__all__: list[str] = ["ScriptClassifier", "classify_char"]
