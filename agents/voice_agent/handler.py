# agents/voice_agent/handler.py

"""Speech generation (TTS) returning headerless PCM."""
import logging

from google.genai import types

from orchestrator.client import GenerationClient, to_base64
from orchestrator.config import Settings, settings
from orchestrator.errors import NoAudioReturnedError
from orchestrator.models import AudioResult

logger = logging.getLogger(__name__)


class AudioHandler:
    def __init__(self, client: GenerationClient, config: Settings = settings):
        self.client = client
        self.config = config

    def build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.config.TTS_VOICE),
                ),
            ),
        )

    async def execute(self, model: str, text: str) -> AudioResult:
        """
        Synthesize ``text`` with the narrator voice.

        Raises:
            NoAudioReturnedError: If the first part of the first candidate has no audio.
        """
        contents = [types.Content(parts=[types.Part(text=text)])]
        response = await self.client.generate_content(model, contents, self.build_config())

        data = None
        candidates = getattr(response, "candidates", None) or []
        if candidates:
            parts = getattr(getattr(candidates[0], "content", None), "parts", None) or []
            if parts:
                inline = getattr(parts[0], "inline_data", None)
                data = getattr(inline, "data", None)
        if not data:
            raise NoAudioReturnedError("No audio data returned.")

        logger.info(f"{model} returned {len(data)} bytes of audio")
        return AudioResult(
            pcm_base64=to_base64(data),
            sample_rate=self.config.AUDIO_SAMPLE_RATE,
            channels=self.config.AUDIO_CHANNELS,
        )
