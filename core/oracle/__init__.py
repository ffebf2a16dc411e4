"""Text-generation oracle package.

Provides the abstract oracle interface, the concrete engines and the manager that fronts them.
"""

from core.oracle.interface import EngineAttributes, OracleInterface, build_instruction
from core.oracle.manager import OracleManager

__all__: list[str] = ["EngineAttributes", "OracleInterface", "OracleManager", "build_instruction"]
