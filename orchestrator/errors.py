# orchestrator/errors.py

"""Error taxonomy for the orchestration pipeline."""
from typing import Optional


class PipelineError(Exception):
    """Base exception for every failure surfaced to the user-facing error slot."""

    kind = "pipeline_error"

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(message)


class ClassificationError(PipelineError):
    """The decision call failed or returned something that is not a decision."""

    kind = "classification_error"


class CapabilityGateError(PipelineError):
    """The interactive capability grant failed or was cancelled."""

    kind = "capability_gate_error"


class NoTextReturnedError(PipelineError):
    kind = "no_text_returned"


class NoImageReturnedError(PipelineError):
    kind = "no_image_returned"


class NoVideoReturnedError(PipelineError):
    kind = "no_video_returned"


class NoAudioReturnedError(PipelineError):
    kind = "no_audio_returned"


class VideoDownloadError(PipelineError):
    """The video job finished but its bytes could not be retrieved."""

    kind = "video_download_error"


class VideoGenerationTimeoutError(PipelineError):
    """The video job did not report completion within the polling budget."""

    kind = "video_generation_timeout"


class UpstreamError(PipelineError):
    """Catch-all for failed calls to the generation service."""

    kind = "upstream_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        super().__init__(message, original_exception)


class AuthenticationError(UpstreamError):
    """The ambient credential is missing or was rejected."""

    kind = "authentication_error"


class AudioDecodeError(PipelineError):
    kind = "audio_decode_error"


class PipelineBusyError(PipelineError):
    """A submission arrived while another turn is still in flight."""

    kind = "pipeline_busy"


class EmptyPromptError(PipelineError):
    kind = "empty_prompt"
