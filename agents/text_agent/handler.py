# agents/text_agent/handler.py

"""Text and web-grounded search generation."""
import logging
from typing import Any, List, Optional

from google.genai import types

from orchestrator.client import GenerationClient
from orchestrator.config import Settings, settings
from orchestrator.errors import NoTextReturnedError
from orchestrator.models import GroundingReference, TextResult

logger = logging.getLogger(__name__)

# Chunk fields that may carry a citation, in order of preference.
_GROUNDING_SOURCES = ("web", "maps", "retrieved_context")


def is_pro_model(model: str) -> bool:
    return "pro" in model.lower()


def extract_grounding_references(response: Any) -> List[GroundingReference]:
    """Normalize the first candidate's grounding chunks to ``{uri, title}``.

    Chunks without a resolvable uri are dropped.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    references: List[GroundingReference] = []
    for chunk in chunks:
        uri: Optional[str] = None
        title: Optional[str] = None
        for field in _GROUNDING_SOURCES:
            source = getattr(chunk, field, None)
            if source is None:
                continue
            uri = uri or getattr(source, "uri", None)
            title = title or getattr(source, "title", None)
        if uri:
            references.append(GroundingReference(uri=uri, title=title or "Source"))
    return references


class TextHandler:
    def __init__(self, client: GenerationClient, config: Settings = settings):
        self.client = client
        self.config = config

    def build_config(self, model: str, use_search: bool) -> types.GenerateContentConfig:
        if use_search:
            return types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())])
        if is_pro_model(model) and self.config.THINKING_BUDGET > 0:
            return types.GenerateContentConfig(
                thinking_config=types.ThinkingConfig(thinking_budget=self.config.THINKING_BUDGET)
            )
        return types.GenerateContentConfig()

    async def execute(
        self,
        model: str,
        prompt: str,
        use_search: bool = False,
        require_text: bool = False,
    ) -> TextResult:
        """
        Generate a text answer, optionally grounded on web search.

        Args:
            model: Target model identifier.
            prompt: The refined prompt.
            use_search: Enable the search grounding tool and collect citations.
            require_text: Raise instead of returning an empty answer.

        Raises:
            NoTextReturnedError: If ``require_text`` is set and the answer is empty.
        """
        response = await self.client.generate_content(model, prompt, self.build_config(model, use_search))
        text = response.text or ""
        if not text and require_text:
            raise NoTextReturnedError(f"{model} returned no text.")

        references = extract_grounding_references(response) if use_search else []
        logger.info(f"{model} answered with {len(text)} chars and {len(references)} grounding references")
        return TextResult(text=text, grounding_references=references)
