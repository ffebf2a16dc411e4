from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, cast

import pytest

from core.exceptions import NotSupportedLanguageError, OracleRateLimitError, OracleResponseError, OracleUnavailableError
from core.oracle.engines import deepl_oracle as deepl_oracle_module

if TYPE_CHECKING:
    from models.config_models import Config


class DummyTextResult:
    def __init__(self, text: str) -> None:
        self.text: str = text


class DummyClient:
    translate_result: DummyTextResult | list[DummyTextResult] = DummyTextResult("نص مترجم")
    translate_error: Exception | None = None

    def __init__(self, auth_key: str) -> None:
        self.auth_key: str = auth_key
        self.calls: list[dict[str, Any]] = []

    def translate_text(
        self, content: str, *, source_lang: str, target_lang: str, context: str | None = None
    ) -> DummyTextResult | list[DummyTextResult]:
        self.calls.append(
            {"content": content, "source_lang": source_lang, "target_lang": target_lang, "context": context}
        )
        err: Exception | None = type(self).translate_error
        if err is not None:
            raise err
        return type(self).translate_result


@pytest.fixture(autouse=True)
def setup_deepl_module(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_to_thread(func, *args, **kwargs):
        return func(*args, **kwargs)

    monkeypatch.setattr(deepl_oracle_module, "TextResult", DummyTextResult)
    monkeypatch.setattr(deepl_oracle_module, "DeepLClient", DummyClient)
    monkeypatch.setattr(deepl_oracle_module.asyncio, "to_thread", fake_to_thread)
    monkeypatch.setenv("DEEPL_API_KEY", "token")

    DummyClient.translate_result = DummyTextResult("نص مترجم")
    DummyClient.translate_error = None


@pytest.fixture
def config() -> Config:
    return cast("Config", SimpleNamespace(ORACLE=SimpleNamespace()))


@pytest.fixture
def engine(config: Config) -> deepl_oracle_module.DeeplOracle:
    engine = deepl_oracle_module.DeeplOracle()
    engine.initialize(config)
    return engine


def test_inst_property_raises_when_uninitialized() -> None:
    engine = deepl_oracle_module.DeeplOracle()

    with pytest.raises(OracleUnavailableError):
        _ = engine._inst


def test_initialize_sets_attributes_and_instance(engine: deepl_oracle_module.DeeplOracle) -> None:
    assert engine.engine_name == "deepl"
    assert engine.engine_attributes.supports_instructions is False
    assert engine.is_available is True
    assert cast("DummyClient", engine._inst).auth_key == "token"


def test_initialize_without_key_raises(monkeypatch: pytest.MonkeyPatch, config: Config) -> None:
    monkeypatch.delenv("DEEPL_API_KEY")
    engine = deepl_oracle_module.DeeplOracle()

    with pytest.raises(OracleUnavailableError, match="DEEPL_API_KEY"):
        engine.initialize(config)

    assert engine.is_available is False


@pytest.mark.asyncio
async def test_translate_returns_text(engine: deepl_oracle_module.DeeplOracle) -> None:
    text: str = await engine.translate("Le contrat", "fr", "ar")

    call: dict[str, Any] = cast("DummyClient", engine._inst).calls[0]
    assert text == "نص مترجم"
    assert call["source_lang"] == "FR"
    assert call["target_lang"] == "AR"
    assert call["context"] is None


@pytest.mark.asyncio
async def test_strict_translate_passes_instruction_as_context(engine: deepl_oracle_module.DeeplOracle) -> None:
    await engine.translate("Le contrat", "fr", "ar", strict=True)

    context: str | None = cast("DummyClient", engine._inst).calls[0]["context"]
    assert context is not None
    assert "ONLY in Arabic" in context


@pytest.mark.asyncio
async def test_translate_accepts_list_result(engine: deepl_oracle_module.DeeplOracle) -> None:
    DummyClient.translate_result = [DummyTextResult("Le contrat est valide")]

    assert await engine.translate("العقد صحيح", "ar", "fr") == "Le contrat est valide"


@pytest.mark.asyncio
async def test_translate_raises_for_empty_result(engine: deepl_oracle_module.DeeplOracle) -> None:
    DummyClient.translate_result = DummyTextResult("   ")

    with pytest.raises(OracleResponseError):
        await engine.translate("Le contrat", "fr", "ar")


@pytest.mark.asyncio
async def test_translate_raises_for_unsupported_language(engine: deepl_oracle_module.DeeplOracle) -> None:
    with pytest.raises(NotSupportedLanguageError):
        await engine.translate("hello", "en", "ar")


@pytest.mark.asyncio
async def test_quota_exceeded_disables_engine(engine: deepl_oracle_module.DeeplOracle) -> None:
    DummyClient.translate_error = deepl_oracle_module.QuotaExceededException("quota")

    with pytest.raises(OracleUnavailableError):
        await engine.translate("Le contrat", "fr", "ar")

    assert engine.is_available is False


@pytest.mark.asyncio
async def test_too_many_requests_raises_rate_limit(engine: deepl_oracle_module.DeeplOracle) -> None:
    DummyClient.translate_error = deepl_oracle_module.TooManyRequestsException("slow down")

    with pytest.raises(OracleRateLimitError) as exc_info:
        await engine.translate("Le contrat", "fr", "ar")

    assert engine.is_rate_limit_error(exc_info.value) is True
    assert engine.is_available is True


@pytest.mark.asyncio
async def test_connection_error_raises_unavailable(engine: deepl_oracle_module.DeeplOracle) -> None:
    DummyClient.translate_error = deepl_oracle_module.ConnectionException("offline")

    with pytest.raises(OracleUnavailableError) as exc_info:
        await engine.translate("Le contrat", "fr", "ar")

    assert not isinstance(exc_info.value, OracleRateLimitError)


@pytest.mark.asyncio
async def test_close_releases_client(engine: deepl_oracle_module.DeeplOracle) -> None:
    await engine.close()

    assert engine.is_available is False
    with pytest.raises(OracleUnavailableError):
        _ = engine._inst
