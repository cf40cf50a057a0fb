# orchestrator/pipeline.py

"""Pipeline coordinator: decision -> capability gate -> modality agent -> message."""
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from agents.image_agent import ImageHandler
from agents.text_agent import TextHandler
from agents.video_agent import VideoHandler
from agents.voice_agent import AudioHandler
from orchestrator.capability import CapabilityGate, CapabilitySelector
from orchestrator.client import GenerationClient
from orchestrator.config import Settings, settings
from orchestrator.decision import DecisionEngine
from orchestrator.errors import EmptyPromptError, PipelineBusyError, PipelineError, UpstreamError
from orchestrator.media_store import MediaStore, media_url
from orchestrator.models import (
    Message,
    OrchestrationDecision,
    PipelinePhase,
    PipelineStatus,
    ProgressEvent,
    TaskKind,
)

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class PipelineCoordinator:
    """Runs one user turn at a time and owns the conversation and the progress phase.

    Phases move Idle -> Orchestrating -> Generating -> Idle. A failure at any point
    passes through Error, records its message in ``last_error`` and still ends in
    Idle, so the next submission starts fresh. The assistant message is appended
    only once the whole turn has succeeded.
    """

    def __init__(
        self,
        decision_engine: DecisionEngine,
        text_handler: TextHandler,
        image_handler: ImageHandler,
        video_handler: VideoHandler,
        audio_handler: AudioHandler,
        gate: Optional[CapabilityGate] = None,
        listener: Optional[ProgressListener] = None,
        greeting: Optional[str] = settings.GREETING,
    ):
        self.decision_engine = decision_engine
        self.text_handler = text_handler
        self.image_handler = image_handler
        self.video_handler = video_handler
        self.audio_handler = audio_handler
        self.gate = gate or CapabilityGate()
        self.listener = listener

        self.messages: List[Message] = []
        if greeting:
            self.messages.append(Message(role="assistant", content=greeting))

        self.phase = PipelinePhase.IDLE
        self.current_model: Optional[str] = None
        self.current_task: Optional[TaskKind] = None
        self.last_error: Optional[str] = None

        self._executors: Dict[TaskKind, Callable[[OrchestrationDecision], Awaitable[Message]]] = {
            TaskKind.TEXT: self._run_text,
            TaskKind.SEARCH: self._run_text,
            TaskKind.IMAGE: self._run_image,
            TaskKind.VIDEO: self._run_video,
            TaskKind.AUDIO: self._run_audio,
        }
        missing = set(TaskKind) - set(self._executors)
        if missing:
            raise RuntimeError(f"No executor registered for task kinds: {sorted(k.value for k in missing)}")

    @classmethod
    def from_client(
        cls,
        client: GenerationClient,
        media_store: MediaStore,
        config: Settings = settings,
        gate: Optional[CapabilityGate] = None,
        listener: Optional[ProgressListener] = None,
        selector: Optional[CapabilitySelector] = None,
    ) -> "PipelineCoordinator":
        """Wire every component around one shared generation client and one config.

        When no ``gate`` is given, one is built from ``selector`` and
        ``config.CAPABILITY_REVERIFY``.
        """
        return cls(
            decision_engine=DecisionEngine(client, config),
            text_handler=TextHandler(client, config),
            image_handler=ImageHandler(client, config),
            video_handler=VideoHandler(client, media_store, config),
            audio_handler=AudioHandler(client, config),
            gate=gate or CapabilityGate(selector, reverify=config.CAPABILITY_REVERIFY),
            listener=listener,
            greeting=config.GREETING,
        )

    @property
    def busy(self) -> bool:
        return self.phase != PipelinePhase.IDLE

    def status(self) -> PipelineStatus:
        return PipelineStatus(
            phase=self.phase,
            model=self.current_model,
            task_kind=self.current_task,
            error=self.last_error,
            busy=self.busy,
        )

    def get_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def _set_phase(
        self,
        phase: PipelinePhase,
        model: Optional[str] = None,
        task_kind: Optional[TaskKind] = None,
        error: Optional[str] = None,
    ) -> None:
        self.phase = phase
        self.current_model = model
        self.current_task = task_kind
        logger.debug(f"Pipeline phase -> {phase.value} (model={model}, task={task_kind})")
        if self.listener is not None:
            self.listener(ProgressEvent(phase=phase, model=model, task_kind=task_kind, error=error))

    async def submit(self, text: str) -> Message:
        """
        Run one full turn for ``text`` and return the assistant message.

        Raises:
            PipelineBusyError: If a turn is already in flight.
            EmptyPromptError: If ``text`` is blank.
            PipelineError: Any failure of the turn, after the phase has been reset.
        """
        if self.busy:
            raise PipelineBusyError("A request is already being processed. Please wait for it to finish.")
        if not text or not text.strip():
            raise EmptyPromptError("Please enter a request.")

        self.messages.append(Message(role="user", content=text))
        self.last_error = None
        self._set_phase(PipelinePhase.ORCHESTRATING)
        try:
            decision = await self.decision_engine.decide(text)
            self._set_phase(PipelinePhase.GENERATING, decision.model, decision.task_kind)

            if decision.requires_elevated_capability:
                await self.gate.ensure_elevated_capability()

            assistant_message = await self._executors[decision.task_kind](decision)
            self.messages.append(assistant_message)
        except PipelineError as e:
            self._fail(e.message)
            raise
        except Exception as e:
            logger.error(f"Unexpected pipeline failure: {e}", exc_info=True)
            message = str(e) or "An unexpected error occurred."
            self._fail(message)
            raise UpstreamError(message, original_exception=e) from e
        finally:
            self._set_phase(PipelinePhase.IDLE)

        return assistant_message

    def _fail(self, message: str) -> None:
        logger.warning(f"Turn failed: {message}")
        self.last_error = message
        self._set_phase(PipelinePhase.ERROR, self.current_model, self.current_task, error=message)

    def _assistant_message(self, decision: OrchestrationDecision, **fields) -> Message:
        return Message(
            role="assistant",
            task_kind=decision.task_kind,
            model=decision.model,
            orchestration=decision,
            **fields,
        )

    async def _run_text(self, decision: OrchestrationDecision) -> Message:
        use_search = decision.task_kind == TaskKind.SEARCH
        result = await self.text_handler.execute(decision.model, decision.refined_prompt, use_search)
        return self._assistant_message(
            decision,
            content=result.text,
            grounding_references=list(result.grounding_references),
        )

    async def _run_image(self, decision: OrchestrationDecision) -> Message:
        result = await self.image_handler.execute(decision.model, decision.refined_prompt)
        return self._assistant_message(
            decision,
            content=f'I\'ve generated an image based on your description: "{decision.refined_prompt}"',
            attachment_url=result.data_url,
        )

    async def _run_video(self, decision: OrchestrationDecision) -> Message:
        result = await self.video_handler.execute(decision.model, decision.refined_prompt)
        return self._assistant_message(
            decision,
            content=(
                f'I\'ve generated a video for: "{decision.refined_prompt}". '
                "This process took some time to render using Veo."
            ),
            attachment_url=media_url(result.media_id),
        )

    async def _run_audio(self, decision: OrchestrationDecision) -> Message:
        result = await self.audio_handler.execute(decision.model, decision.refined_prompt)
        return self._assistant_message(
            decision,
            content="Here is the audio playback for your text.",
            audio_data=result.pcm_base64,
        )
