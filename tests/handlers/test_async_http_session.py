import logging

import pytest

from handlers.async_comm import AsyncCommError, AsyncCommInvalidContentTypeError, AsyncHttp


class _FakeResponse:
    def __init__(self, body: bytes, content_type: str) -> None:
        self.headers: dict[str, str] = {"Content-Type": content_type}
        self._body: bytes = body

    async def read(self) -> bytes:
        return self._body


@pytest.mark.asyncio
async def test_init_logs_session_initialized(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)

    AsyncHttp()

    assert any("AsyncHttp session initialized" in rec.message for rec in caplog.records)


@pytest.mark.asyncio
async def test_context_enter_does_not_log_already_initialized(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)

    http = AsyncHttp()
    caplog.clear()

    async with http:
        pass

    assert not any("session already initialized" in rec.message for rec in caplog.records)


@pytest.mark.asyncio
async def test_reenter_after_close_logs_session_initialized(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)

    http = AsyncHttp()
    async with http:
        pass
    assert http.is_closed is True

    caplog.clear()
    async with http:
        assert http.is_closed is False

    assert any("AsyncHttp session initialized" in rec.message for rec in caplog.records)


@pytest.mark.asyncio
async def test_session_property_raises_after_close() -> None:
    http = AsyncHttp()
    await http.close()

    with pytest.raises(RuntimeError):
        _ = http.session


@pytest.mark.asyncio
async def test_decode_response_by_content_type() -> None:
    http = AsyncHttp()
    try:
        data = await http.decode_response(
            _FakeResponse('{"choices": [{"message": {"content": "نص"}}]}'.encode(), "application/json; charset=utf-8")
        )
        text = await http.decode_response(_FakeResponse("texte".encode(), "text/plain"))
        empty = await http.decode_response(_FakeResponse(b"", "application/json"))
    finally:
        await http.close()

    assert data["choices"][0]["message"]["content"] == "نص"
    assert text == "texte"
    assert empty is None


@pytest.mark.asyncio
async def test_decode_response_rejects_unknown_content_type() -> None:
    http = AsyncHttp()
    try:
        with pytest.raises(AsyncCommInvalidContentTypeError):
            await http.decode_response(_FakeResponse(b"<html></html>", "text/html"))
    finally:
        await http.close()


@pytest.mark.asyncio
async def test_added_handler_replaces_existing_one(caplog: pytest.LogCaptureFixture) -> None:
    http = AsyncHttp()
    try:
        http.add_handler("text/plain", lambda raw: raw.decode("utf-8").upper())
        text = await http.decode_response(_FakeResponse(b"abc", "text/plain"))
    finally:
        await http.close()

    assert text == "ABC"
    assert any("already exists" in rec.message for rec in caplog.records)


def test_async_comm_error_carries_status() -> None:
    err = AsyncCommError("Error response from the server.", status=429)
    transport = AsyncCommError("The server could not be reached.")

    assert err.status == 429
    assert "429" in str(err)
    assert transport.status is None
