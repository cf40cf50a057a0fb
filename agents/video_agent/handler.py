# agents/video_agent/handler.py

"""Video generation: start a long-running job, poll it, then fetch the bytes."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from google.genai import types
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    stop_never,
    wait_fixed,
)

from orchestrator.client import GenerationClient
from orchestrator.config import Settings, settings
from orchestrator.errors import NoVideoReturnedError, UpstreamError, VideoGenerationTimeoutError
from orchestrator.media_store import MediaStore
from orchestrator.models import VideoResult

logger = logging.getLogger(__name__)


def _not_done(operation: Any) -> bool:
    return not getattr(operation, "done", False)


def _first_video(operation: Any) -> Optional[Any]:
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    videos = getattr(response, "generated_videos", None) or []
    if not videos:
        return None
    return getattr(videos[0], "video", None)


class VideoHandler:
    def __init__(
        self,
        client: GenerationClient,
        media_store: MediaStore,
        config: Settings = settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.media_store = media_store
        self.config = config
        self._sleep = sleep

    def build_config(self) -> types.GenerateVideosConfig:
        return types.GenerateVideosConfig(
            number_of_videos=1,
            resolution=self.config.VIDEO_RESOLUTION,
            aspect_ratio=self.config.VIDEO_ASPECT_RATIO,
        )

    def _stop_condition(self):
        stop = stop_never
        if self.config.VIDEO_POLL_MAX_ATTEMPTS > 0:
            stop = stop_after_attempt(self.config.VIDEO_POLL_MAX_ATTEMPTS)
        if self.config.VIDEO_POLL_TIMEOUT:
            stop = stop | stop_after_delay(self.config.VIDEO_POLL_TIMEOUT)
        return stop

    async def wait_for_completion(self, operation: Any) -> Any:
        """
        Poll ``operation`` on a fixed interval until it reports done.

        Only the "not done yet" result is retried; errors from a status check
        propagate immediately. ``VIDEO_POLL_MAX_ATTEMPTS`` counts status checks
        and ``VIDEO_POLL_TIMEOUT`` is measured from the first status check, one
        interval after the job started.

        Raises:
            VideoGenerationTimeoutError: If the polling budget runs out first.
        """
        if not _not_done(operation):
            return operation

        retryer = AsyncRetrying(
            retry=retry_if_result(_not_done),
            wait=wait_fixed(self.config.VIDEO_POLL_INTERVAL),
            stop=self._stop_condition(),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        # A freshly started job is never done; wait one interval before the first check.
        await self._sleep(self.config.VIDEO_POLL_INTERVAL)
        try:
            return await retryer(self.client.get_operation, operation)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            logger.error(f"Video operation {getattr(operation, 'name', '?')} still running after {attempts} checks")
            raise VideoGenerationTimeoutError(
                f"Video generation did not finish after {attempts} status checks.", original_exception=e
            )

    async def execute(self, model: str, prompt: str) -> VideoResult:
        """
        Generate one video and store its bytes locally.

        Raises:
            NoVideoReturnedError: If the finished job carries no video.
            VideoDownloadError: If the video bytes cannot be retrieved.
            VideoGenerationTimeoutError: If polling gives up.
        """
        operation = await self.client.generate_videos(model, prompt, self.build_config())
        logger.info(f"Started video operation {getattr(operation, 'name', '?')} on {model}")
        operation = await self.wait_for_completion(operation)

        error = getattr(operation, "error", None)
        if error:
            raise UpstreamError(f"Video generation failed: {error}")

        video = _first_video(operation)
        uri = getattr(video, "uri", None) if video is not None else None
        inline_bytes = getattr(video, "video_bytes", None) if video is not None else None
        if not uri and not inline_bytes:
            raise NoVideoReturnedError("Video generation failed or returned no URI.")

        data = inline_bytes if inline_bytes else await self.client.download(uri)
        mime_type = getattr(video, "mime_type", None) or self.config.VIDEO_MIME_TYPE
        media_id = self.media_store.put(data, mime_type)
        return VideoResult(media_id=media_id, mime_type=mime_type, source_uri=uri)
