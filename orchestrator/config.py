# orchestrator/config.py

"""Configuration for the Nexus orchestration service."""
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Settings for the orchestrator and the modality agents."""

    # Credentials
    GEMINI_API_KEY: Optional[str] = None

    # Model catalog
    ORCHESTRATOR_MODEL: str = "gemini-3-flash-preview"
    FAST_TEXT_MODEL: str = "gemini-3-flash-preview"
    PRO_TEXT_MODEL: str = "gemini-3-pro-preview"
    IMAGE_MODEL: str = "gemini-2.5-flash-image"
    HIGH_RES_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    VIDEO_MODEL: str = "veo-3.1-fast-generate-preview"
    TTS_MODEL: str = "gemini-2.5-flash-preview-tts"

    # Text / search
    THINKING_BUDGET: int = Field(default=1024, ge=0)

    # Image
    HIGH_RES_IMAGE_SIZE: str = "2K"
    HIGH_RES_ASPECT_RATIO: str = "16:9"
    DEFAULT_ASPECT_RATIO: str = "1:1"
    DEFAULT_IMAGE_MIME_TYPE: str = "image/png"

    # Video
    VIDEO_RESOLUTION: str = "720p"
    VIDEO_ASPECT_RATIO: str = "16:9"
    VIDEO_POLL_INTERVAL: float = Field(default=5.0, ge=0.0)  # seconds
    VIDEO_POLL_MAX_ATTEMPTS: int = Field(default=120, ge=0)  # 0 = unbounded
    VIDEO_POLL_TIMEOUT: Optional[float] = None  # seconds
    VIDEO_MIME_TYPE: str = "video/mp4"
    DOWNLOAD_TIMEOUT: float = 120.0

    # Audio
    TTS_VOICE: str = "Fenrir"
    AUDIO_SAMPLE_RATE: int = 24000
    AUDIO_CHANNELS: int = Field(default=1, ge=1)

    # Media store
    MEDIA_CACHE_DIR: str = "./cache/media"
    MEDIA_CACHE_TTL: int = 86400  # 24 hours

    # Capability gate
    CAPABILITY_REVERIFY: bool = False

    GREETING: str = (
        "I'm Nexus, your AI Orchestrator. Tell me what you need, and I'll route it to the "
        "perfect Gemini model, whether it's generating 4K images, Veo videos, speech, or "
        "complex reasoning."
    )

    # Host and port settings
    HOST: str = "0.0.0.0"
    PORT: int = 8004

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create settings instance
settings = Settings()

# Configure logging
log_level_to_set = settings.LOG_LEVEL.upper()
if not hasattr(logging, log_level_to_set):
    logging.warning(f"Invalid LOG_LEVEL '{log_level_to_set}' in settings. Defaulting to INFO.")
    log_level_to_set = "INFO"

logging.basicConfig(
    level=getattr(logging, log_level_to_set),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
