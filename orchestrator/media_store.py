# orchestrator/media_store.py

"""Local store for generated media bytes (videos) served back to the UI."""
import logging
import os
import uuid
from typing import Optional, Tuple

import diskcache

from orchestrator.config import settings

logger = logging.getLogger(__name__)


class MediaStore:
    """Keeps downloaded media addressable by an opaque id."""

    def __init__(self, cache_dir: str = settings.MEDIA_CACHE_DIR, ttl: Optional[int] = settings.MEDIA_CACHE_TTL):
        os.makedirs(cache_dir, exist_ok=True)
        self.cache = diskcache.Cache(cache_dir)
        self.ttl = ttl or None

    def put(self, data: bytes, mime_type: str) -> str:
        media_id = uuid.uuid4().hex
        self.cache.set(media_id, (mime_type, data), expire=self.ttl)
        logger.info(f"Stored {len(data)} bytes of {mime_type} as media {media_id}")
        return media_id

    def get(self, media_id: str) -> Optional[Tuple[str, bytes]]:
        """Return ``(mime_type, data)`` or None if unknown or expired."""
        return self.cache.get(media_id)

    def close(self) -> None:
        self.cache.close()


def media_url(media_id: str) -> str:
    return f"/media/{media_id}"
