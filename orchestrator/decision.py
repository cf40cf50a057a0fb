# orchestrator/decision.py

"""Decision engine: classify a request, pick a model and rewrite the prompt."""
import logging
from typing import Optional

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from orchestrator.client import GenerationClient
from orchestrator.config import Settings, settings
from orchestrator.errors import AuthenticationError, ClassificationError, PipelineError
from orchestrator.models import OrchestrationDecision, TaskKind

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION_TEMPLATE = """
You are an AI Orchestrator. Your goal is to analyze the user's request and categorize it into one of the following tasks:
- TEXT: General questions, writing, coding, reasoning.
- IMAGE: Requests to draw, paint, generate, or create an image/picture/photo.
- VIDEO: Requests to create, generate, or animate a video/movie/clip.
- AUDIO: Requests to speak, say, or generate speech/audio.
- SEARCH: Requests specifically asking for current events, news, or real-time info.

You must also select the best Google Gemini model based on these rules:
- Simple Text/Search -> '{fast_text_model}'
- Complex Text/Reasoning/Coding -> '{pro_text_model}'
- Image Generation -> '{image_model}' (Default) or '{high_res_image_model}' (if high quality/HD/4k mentioned)
- Video Generation -> '{video_model}'
- Audio/TTS -> '{tts_model}'

Refine the prompt to be optimal for the target model and return it as refinedPrompt.
"""

DECISION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "type": types.Schema(type=types.Type.STRING, enum=[kind.value for kind in TaskKind]),
        "model": types.Schema(type=types.Type.STRING),
        "reasoning": types.Schema(type=types.Type.STRING),
        "refinedPrompt": types.Schema(type=types.Type.STRING),
    },
    required=["type", "model", "reasoning", "refinedPrompt"],
)


class _DecisionPayload(BaseModel):
    """Wire shape of the classification response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    task_kind: TaskKind = Field(..., alias="type")
    model: str = Field(..., min_length=1)
    reasoning: str
    refined_prompt: str = Field(..., alias="refinedPrompt")


def render_system_instruction(config: Settings = settings) -> str:
    return SYSTEM_INSTRUCTION_TEMPLATE.format(
        fast_text_model=config.FAST_TEXT_MODEL,
        pro_text_model=config.PRO_TEXT_MODEL,
        image_model=config.IMAGE_MODEL,
        high_res_image_model=config.HIGH_RES_IMAGE_MODEL,
        video_model=config.VIDEO_MODEL,
        tts_model=config.TTS_MODEL,
    )


def is_video_model(model: str, config: Settings = settings) -> bool:
    normalized = model.strip().lower()
    return normalized == config.VIDEO_MODEL.lower() or "veo" in normalized


def is_high_res_image_model(model: str, config: Settings = settings) -> bool:
    normalized = model.strip().lower()
    return normalized == config.HIGH_RES_IMAGE_MODEL.lower() or "pro-image" in normalized


def requires_elevated_capability(model: str, config: Settings = settings) -> bool:
    """True iff ``model`` is the video model or the high-resolution image model."""
    return is_video_model(model, config) or is_high_res_image_model(model, config)


class DecisionEngine:
    """Routes a raw user prompt to a task kind and a target model."""

    def __init__(self, client: GenerationClient, config: Settings = settings, model: Optional[str] = None):
        self.client = client
        self.config = config
        self.model = model or config.ORCHESTRATOR_MODEL
        self.system_instruction = render_system_instruction(config)

    async def decide(self, user_prompt: str) -> OrchestrationDecision:
        """
        Classify ``user_prompt`` with one structured-output call.

        Raises:
            ClassificationError: If the call fails or its output is not a complete decision.
        """
        try:
            raw = await self.client.generate_structured(
                self.model, user_prompt, self.system_instruction, DECISION_SCHEMA
            )
        except AuthenticationError:
            raise
        except PipelineError as e:
            raise ClassificationError(f"Orchestration call failed: {e.message}", original_exception=e)

        if not raw.strip():
            raise ClassificationError("Orchestrator returned an empty decision.")
        try:
            payload = _DecisionPayload.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Unparseable orchestration output: {raw[:200]!r}")
            raise ClassificationError(f"Orchestrator returned a malformed decision: {e}", original_exception=e)

        model = payload.model.strip()
        if not model:
            raise ClassificationError("Orchestrator returned a decision without a model.")

        decision = OrchestrationDecision(
            task_kind=payload.task_kind,
            model=model,
            reasoning=payload.reasoning,
            refined_prompt=payload.refined_prompt,
            requires_elevated_capability=requires_elevated_capability(model, self.config),
        )
        logger.info(
            f"Orchestration decision: {decision.task_kind.value} -> {decision.model} "
            f"(elevated={decision.requires_elevated_capability})"
        )
        return decision
