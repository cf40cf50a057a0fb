"""
Voice agent for Nexus.
Synthesizes speech with the TTS model and decodes its raw PCM for playback.
"""
from .decoder import AudioBuffer, decode_pcm
from .handler import AudioHandler
