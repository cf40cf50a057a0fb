# orchestrator/models.py

"""Pydantic models for the orchestration pipeline and its HTTP surface."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaskKind(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    SEARCH = "SEARCH"


class PipelinePhase(str, Enum):
    IDLE = "idle"
    ORCHESTRATING = "orchestrating"
    GENERATING = "generating"
    ERROR = "error"


class OrchestrationDecision(BaseModel):
    """Routing decision produced once per user turn."""

    model_config = ConfigDict(frozen=True)

    task_kind: TaskKind
    model: str = Field(..., min_length=1)
    reasoning: str
    refined_prompt: str
    requires_elevated_capability: bool = False


class GroundingReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str = Field(..., min_length=1)
    title: str = "Source"


class TextResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str = ""
    grounding_references: List[GroundingReference] = Field(default_factory=list)


class ImageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    image_base64: str
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.image_base64}"


class VideoResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["video"] = "video"
    media_id: str
    mime_type: str = "video/mp4"
    source_uri: Optional[str] = None


class AudioResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["audio"] = "audio"
    pcm_base64: str
    sample_rate: int = 24000
    channels: int = 1


GenerationResult = Union[TextResult, ImageResult, VideoResult, AudioResult]


class Message(BaseModel):
    """Unit appended to the conversation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant", "system"]
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    task_kind: Optional[TaskKind] = None
    model: Optional[str] = None
    attachment_url: Optional[str] = None
    audio_data: Optional[str] = None
    grounding_references: Optional[List[GroundingReference]] = None
    orchestration: Optional[OrchestrationDecision] = None

    @model_validator(mode="after")
    def check_payload_for_task_kind(self) -> "Message":
        if self.task_kind is None:
            return self
        if not self.model:
            raise ValueError("A message with a task kind must name the model that produced it.")
        if self.task_kind == TaskKind.AUDIO and not self.audio_data:
            raise ValueError("AUDIO messages must carry audio_data.")
        if self.task_kind in (TaskKind.IMAGE, TaskKind.VIDEO) and not self.attachment_url:
            raise ValueError(f"{self.task_kind.value} messages must carry attachment_url.")
        return self


class ProgressEvent(BaseModel):
    """Progress signal delivered to the UI during a turn."""

    phase: PipelinePhase
    model: Optional[str] = None
    task_kind: Optional[TaskKind] = None
    error: Optional[str] = None


class PipelineStatus(ProgressEvent):
    busy: bool = False


# --- HTTP models ---

class RunRequest(BaseModel):
    """Request model for the /run endpoint."""

    input: str


class RunResponse(BaseModel):
    """Response model for the /run endpoint."""

    message: Message
    decision: OrchestrationDecision


class ErrorResponse(BaseModel):
    detail: str
    error: str


class HealthResponse(BaseModel):
    status: str
    agent: str
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    models: Dict[str, str] = Field(default_factory=dict)
