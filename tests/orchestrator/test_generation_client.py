"""Tests for the shared Gemini client wrapper."""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx
from google.genai import errors as genai_errors

from orchestrator.client import GenerationClient, to_base64
from orchestrator.config import settings
from orchestrator.decision import DECISION_SCHEMA
from orchestrator.errors import AuthenticationError, UpstreamError, VideoDownloadError
from tests.fakes import text_response

DOWNLOAD_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download"


def api_error(error_cls, code, message, status_text):
    return error_cls(code, {"error": {"code": code, "message": message, "status": status_text}})


@pytest.fixture
def genai_mock():
    sdk = MagicMock()
    sdk.aio.models.generate_content = AsyncMock()
    sdk.aio.models.generate_videos = AsyncMock()
    sdk.aio.operations.get = AsyncMock()
    return sdk


@pytest.fixture
def client(genai_mock):
    return GenerationClient(api_key="test-key", genai_client=genai_mock)


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    with pytest.raises(AuthenticationError):
        GenerationClient()


@pytest.mark.asyncio
async def test_generate_content_passes_arguments(client, genai_mock):
    genai_mock.aio.models.generate_content.return_value = text_response("hello")

    response = await client.generate_content("gemini-3-flash-preview", "hi", None)

    assert response.text == "hello"
    genai_mock.aio.models.generate_content.assert_awaited_once_with(
        model="gemini-3-flash-preview", contents="hi", config=None,
    )


@pytest.mark.asyncio
async def test_generate_structured_requests_json(client, genai_mock):
    genai_mock.aio.models.generate_content.return_value = text_response('{"type": "TEXT"}')

    raw = await client.generate_structured("gemini-3-flash-preview", "hi", "be an orchestrator", DECISION_SCHEMA)

    assert raw == '{"type": "TEXT"}'
    config = genai_mock.aio.models.generate_content.call_args.kwargs["config"]
    assert config.response_mime_type == "application/json"
    assert config.system_instruction == "be an orchestrator"
    assert config.response_schema == DECISION_SCHEMA


@pytest.mark.asyncio
async def test_generate_structured_without_text_returns_empty(client, genai_mock):
    genai_mock.aio.models.generate_content.return_value = text_response(None)

    assert await client.generate_structured("m", "hi", "sys", DECISION_SCHEMA) == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [401, 403])
async def test_rejected_credential_raises_authentication_error(client, genai_mock, code):
    genai_mock.aio.models.generate_content.side_effect = api_error(
        genai_errors.ClientError, code, "API key not valid", "UNAUTHENTICATED",
    )

    with pytest.raises(AuthenticationError) as exc_info:
        await client.generate_content("gemini-3-flash-preview", "hi")

    assert exc_info.value.status_code == code
    assert "API key not valid" in exc_info.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    api_error(genai_errors.ServerError, 500, "internal", "INTERNAL"),
    api_error(genai_errors.ClientError, 429, "quota exceeded", "RESOURCE_EXHAUSTED"),
])
async def test_api_errors_raise_upstream_error(client, genai_mock, error):
    genai_mock.aio.models.generate_content.side_effect = error

    with pytest.raises(UpstreamError) as exc_info:
        await client.generate_content("gemini-3-flash-preview", "hi")

    assert not isinstance(exc_info.value, AuthenticationError)
    assert exc_info.value.status_code == error.code
    assert exc_info.value.original_exception is error


@pytest.mark.asyncio
async def test_unexpected_errors_raise_upstream_error(client, genai_mock):
    genai_mock.aio.operations.get.side_effect = ConnectionResetError("peer reset")

    with pytest.raises(UpstreamError) as exc_info:
        await client.get_operation(MagicMock(name="operations/video-1"))

    assert exc_info.value.status_code is None
    assert "peer reset" in exc_info.value.message


@pytest.mark.asyncio
async def test_generate_videos_passes_arguments(client, genai_mock):
    operation = MagicMock()
    genai_mock.aio.models.generate_videos.return_value = operation

    result = await client.generate_videos("veo-3.1-fast-generate-preview", "a cat", None)

    assert result is operation
    genai_mock.aio.models.generate_videos.assert_awaited_once_with(
        model="veo-3.1-fast-generate-preview", prompt="a cat", config=None,
    )


class TestDownload:
    """Tests for GenerationClient.download"""

    @pytest.mark.asyncio
    async def test_success_sends_api_key(self, client):
        with respx.mock:
            route = respx.get(DOWNLOAD_URI).respond(status_code=200, content=b"mp4-bytes")

            data = await client.download(DOWNLOAD_URI)

            assert data == b"mp4-bytes"
            assert route.calls.last.request.headers["x-goog-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_cross_host_redirect_drops_api_key(self, client):
        with respx.mock:
            respx.get(DOWNLOAD_URI).respond(status_code=302, headers={"Location": "https://cdn.example.com/v.mp4"})
            cdn = respx.get("https://cdn.example.com/v.mp4").respond(status_code=200, content=b"cdn-bytes")

            assert await client.download(DOWNLOAD_URI) == b"cdn-bytes"
            assert "x-goog-api-key" not in cdn.calls.last.request.headers

    @pytest.mark.asyncio
    async def test_same_host_redirect_keeps_api_key(self, client):
        moved = "https://generativelanguage.googleapis.com/v1beta/files/abc:moved"
        with respx.mock:
            respx.get(DOWNLOAD_URI).respond(status_code=307, headers={"Location": moved})
            route = respx.get(moved).respond(status_code=200, content=b"mp4-bytes")

            assert await client.download(DOWNLOAD_URI) == b"mp4-bytes"
            assert route.calls.last.request.headers["x-goog-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_redirect_loop_raises_download_error(self, client):
        with respx.mock:
            respx.get(DOWNLOAD_URI).respond(status_code=302, headers={"Location": DOWNLOAD_URI})

            with pytest.raises(VideoDownloadError):
                await client.download(DOWNLOAD_URI)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 500])
    async def test_http_error_raises_download_error(self, client, status_code):
        with respx.mock:
            respx.get(DOWNLOAD_URI).respond(status_code=status_code)

            with pytest.raises(VideoDownloadError):
                await client.download(DOWNLOAD_URI)

    @pytest.mark.asyncio
    async def test_rejected_credential_raises_authentication_error(self, client):
        with respx.mock:
            respx.get(DOWNLOAD_URI).respond(status_code=403)

            with pytest.raises(AuthenticationError):
                await client.download(DOWNLOAD_URI)

    @pytest.mark.asyncio
    async def test_network_error_raises_download_error(self, client):
        with respx.mock:
            respx.get(DOWNLOAD_URI).mock(side_effect=httpx.ConnectError("connection refused"))

            with pytest.raises(VideoDownloadError) as exc_info:
                await client.download(DOWNLOAD_URI)

            assert isinstance(exc_info.value.original_exception, httpx.ConnectError)


@pytest.mark.asyncio
async def test_aclose_closes_http_client(genai_mock):
    http = MagicMock(spec=httpx.AsyncClient)
    http.aclose = AsyncMock()
    client = GenerationClient(api_key="test-key", genai_client=genai_mock, http_client=http)

    await client.aclose()

    http.aclose.assert_awaited_once()


def test_to_base64_encodes_bytes_and_keeps_text():
    assert to_base64(b"\x00\xffpcm") == "AP9wY20="
    assert to_base64("AP9wY20=") == "AP9wY20="
