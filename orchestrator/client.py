# orchestrator/client.py

"""Shared client for the upstream generative-AI service."""
import base64
import logging
import time
from typing import Any, Awaitable, Optional, TypeVar, Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from orchestrator.config import settings
from orchestrator.errors import AuthenticationError, PipelineError, UpstreamError, VideoDownloadError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_AUTH_STATUS_CODES = (401, 403)
_API_KEY_HEADER = "x-goog-api-key"
_MAX_REDIRECTS = 5


def to_base64(data: Union[bytes, str]) -> str:
    """The SDK hands back raw bytes; some transports keep the base64 text."""
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


class GenerationClient:
    """Single handle to the Gemini API, injected into the decision engine and every agent.

    Wraps one ``google.genai.Client`` for generation calls and one ``httpx.AsyncClient``
    for fetching finished media, and translates their failures into the pipeline's
    error taxonomy.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        genai_client: Optional[Any] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        download_timeout: float = settings.DOWNLOAD_TIMEOUT,
    ):
        """
        Initialize the generation client.

        Args:
            api_key: Gemini API key. Defaults to ``settings.GEMINI_API_KEY``.
            genai_client: Pre-built SDK client (mainly for tests).
            http_client: Pre-built httpx client used for media downloads.
            download_timeout: Timeout in seconds for media downloads.

        Raises:
            AuthenticationError: If no SDK client is given and no API key is configured.
        """
        self.api_key = api_key or settings.GEMINI_API_KEY
        if genai_client is None:
            if not self.api_key:
                raise AuthenticationError("GEMINI_API_KEY is not configured; cannot reach the Gemini API.")
            genai_client = genai.Client(api_key=self.api_key)
        self.genai = genai_client
        self.http = http_client or httpx.AsyncClient(timeout=download_timeout)

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        start_time = time.time()
        try:
            result = await awaitable
        except PipelineError:
            raise
        except genai_errors.APIError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            detail = getattr(e, "message", None) or str(e)
            logger.error(f"{operation} failed with status {e.code} after {latency_ms}ms: {detail}")
            if e.code in _AUTH_STATUS_CODES:
                raise AuthenticationError(
                    f"Gemini API rejected the credential during {operation}: {detail}",
                    status_code=e.code, original_exception=e,
                )
            raise UpstreamError(f"{operation} failed: {detail}", status_code=e.code, original_exception=e)
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Unexpected error during {operation} after {latency_ms}ms: {e}", exc_info=True)
            raise UpstreamError(f"{operation} failed: {e}", original_exception=e)
        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"{operation} completed in {latency_ms}ms")
        return result

    async def generate_content(
        self,
        model: str,
        contents: Any,
        config: Optional[types.GenerateContentConfig] = None,
    ) -> types.GenerateContentResponse:
        return await self._call(
            f"generate_content[{model}]",
            self.genai.aio.models.generate_content(model=model, contents=contents, config=config),
        )

    async def generate_structured(
        self,
        model: str,
        prompt: str,
        system_instruction: str,
        response_schema: Any,
    ) -> str:
        """Run a JSON-constrained call and return the raw JSON text ("" if none)."""
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=response_schema,
        )
        response = await self.generate_content(model, prompt, config)
        return response.text or ""

    async def generate_videos(
        self,
        model: str,
        prompt: str,
        config: Optional[types.GenerateVideosConfig] = None,
    ) -> types.GenerateVideosOperation:
        return await self._call(
            f"generate_videos[{model}]",
            self.genai.aio.models.generate_videos(model=model, prompt=prompt, config=config),
        )

    async def get_operation(self, operation: types.GenerateVideosOperation) -> types.GenerateVideosOperation:
        return await self._call(
            f"operations.get[{getattr(operation, 'name', '?')}]",
            self.genai.aio.operations.get(operation),
        )

    async def download(self, uri: str) -> bytes:
        """Fetch finished media bytes, attaching the API credential.

        Redirects are followed here rather than by httpx so the credential is
        only ever sent to the host of ``uri``.

        Raises:
            AuthenticationError: If the credential is rejected.
            VideoDownloadError: On any other unsuccessful retrieval.
        """
        origin = httpx.URL(uri).host
        headers = {_API_KEY_HEADER: self.api_key} if self.api_key else {}
        try:
            response = await self.http.send(self.http.build_request("GET", uri, headers=headers))
            redirects = 0
            while response.is_redirect and response.next_request is not None:
                redirects += 1
                if redirects > _MAX_REDIRECTS:
                    raise VideoDownloadError(f"Too many redirects downloading generated video ({redirects}).")
                next_request = response.next_request
                if next_request.url.host != origin:
                    next_request.headers.pop(_API_KEY_HEADER, None)
                response = await self.http.send(next_request)
        except httpx.RequestError as e:
            logger.error(f"Network error downloading {uri}: {e}")
            raise VideoDownloadError(f"Failed to download generated video: {e}", original_exception=e)

        if response.status_code in _AUTH_STATUS_CODES:
            raise AuthenticationError(
                "Gemini API rejected the credential while downloading the generated video.",
                status_code=response.status_code,
            )
        if not response.is_success:
            logger.error(f"Download of {uri} failed with HTTP {response.status_code}")
            raise VideoDownloadError(f"Failed to download generated video (HTTP {response.status_code}).")
        return response.content

    async def aclose(self) -> None:
        await self.http.aclose()
