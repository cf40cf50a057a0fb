# orchestrator/capability.py

"""Gate for models that need an elevated (paid) access tier."""
import logging
from typing import Optional, Protocol

from orchestrator.config import settings
from orchestrator.errors import CapabilityGateError

logger = logging.getLogger(__name__)


class CapabilitySelector(Protocol):
    """Interactive key-selection mechanism offered by some host environments."""

    async def has_selected_key(self) -> bool:
        ...

    async def open_select_key(self) -> None:
        ...


class CapabilityGate:
    def __init__(self, selector: Optional[CapabilitySelector] = None, reverify: bool = settings.CAPABILITY_REVERIFY):
        self.selector = selector
        self.reverify = reverify

    async def ensure_elevated_capability(self) -> bool:
        """
        Make sure an elevated-tier credential is selected before an expensive call.

        Without a selector the ambient credential is assumed and this returns True.
        With one, an existing grant is accepted as is; otherwise the interactive flow
        runs and is treated as successful once it returns, unless ``reverify`` is set.

        Raises:
            CapabilityGateError: If the interactive flow errors or is cancelled, or if
                re-verification finds no grant.
        """
        if self.selector is None:
            return True

        try:
            if await self.selector.has_selected_key():
                return True
            logger.info("No elevated credential selected; opening interactive selection.")
            await self.selector.open_select_key()
        except CapabilityGateError:
            raise
        except Exception as e:
            logger.warning(f"Interactive capability selection failed: {e}")
            raise CapabilityGateError("API Key selection failed or was cancelled.", original_exception=e)

        if self.reverify:
            try:
                granted = await self.selector.has_selected_key()
            except Exception as e:
                raise CapabilityGateError("API Key selection could not be verified.", original_exception=e)
            if not granted:
                raise CapabilityGateError("API Key selection failed or was cancelled.")
        return True
