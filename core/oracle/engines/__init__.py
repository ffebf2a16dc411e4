"""Oracle engine implementations.

Importing this package registers every engine with OracleInterface, so that the engine names of
the configuration can be resolved.

Modules:
- ChatCompletionOracle: OpenAI-compatible chat completion endpoint.
- DeeplOracle: DeepL translation API.
"""

from core.oracle.engines.chat_completion import ChatCompletionOracle
from core.oracle.engines.deepl_oracle import DeeplOracle

__all__: list[str] = ["ChatCompletionOracle", "DeeplOracle"]
