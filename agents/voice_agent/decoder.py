# agents/voice_agent/decoder.py

"""Decoder for the raw PCM returned by the TTS model.

The TTS model answers with headerless signed 16-bit little-endian PCM (24 kHz
mono by default), not a self-describing container, so playback needs the
sample layout spelled out here.
"""
import base64
import binascii
import io
from dataclasses import dataclass
from typing import List

import numpy as np
from pydub import AudioSegment

from orchestrator.errors import AudioDecodeError

PCM_SCALE = 32768.0
SAMPLE_WIDTH = 2  # bytes per 16-bit sample


@dataclass
class AudioBuffer:
    """Planar float audio, one array of samples in [-1.0, 1.0) per channel."""

    sample_rate: int
    channel_data: List[np.ndarray]

    @property
    def number_of_channels(self) -> int:
        return len(self.channel_data)

    @property
    def length(self) -> int:
        """Frames per channel."""
        return len(self.channel_data[0]) if self.channel_data else 0

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate if self.sample_rate else 0.0

    def get_channel_data(self, channel: int) -> np.ndarray:
        return self.channel_data[channel]

    def to_pcm16(self) -> bytes:
        """Re-interleave and re-quantize to signed 16-bit little-endian PCM."""
        interleaved = np.stack(self.channel_data, axis=1).reshape(-1)
        quantized = np.clip(np.round(interleaved * PCM_SCALE), -32768, 32767)
        return quantized.astype("<i2").tobytes()

    def to_wav_bytes(self) -> bytes:
        segment = AudioSegment(
            data=self.to_pcm16(),
            sample_width=SAMPLE_WIDTH,
            frame_rate=self.sample_rate,
            channels=self.number_of_channels,
        )
        output = io.BytesIO()
        segment.export(output, format="wav")
        return output.getvalue()


def decode_pcm(base64_pcm: str, sample_rate: int = 24000, channels: int = 1) -> AudioBuffer:
    """
    Decode base64 raw PCM into a planar float buffer.

    Args:
        base64_pcm: Base64 text of interleaved signed 16-bit little-endian samples.
        sample_rate: Samples per second per channel.
        channels: Number of interleaved channels.

    Returns:
        An AudioBuffer with ``samples / channels`` frames per channel, each sample
        divided by 32768.0. A trailing partial frame is dropped.

    Raises:
        AudioDecodeError: On invalid base64, an odd byte count or a bad layout.
    """
    if channels < 1:
        raise AudioDecodeError(f"Channel count must be positive, got {channels}.")
    try:
        raw = base64.b64decode(base64_pcm, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"Audio payload is not valid base64: {e}", original_exception=e)
    if len(raw) % SAMPLE_WIDTH:
        raise AudioDecodeError(f"PCM payload has an odd byte count ({len(raw)}).")

    samples = np.frombuffer(raw, dtype="<i2")
    frame_count = samples.size // channels
    frames = samples[: frame_count * channels].reshape(frame_count, channels)
    normalized = frames.astype(np.float32) / PCM_SCALE
    return AudioBuffer(
        sample_rate=sample_rate,
        channel_data=[np.ascontiguousarray(normalized[:, c]) for c in range(channels)],
    )
