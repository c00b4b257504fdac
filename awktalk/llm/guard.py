import asyncio
import time
from typing import Any, Dict, Optional

from ..config import GenerationConfig
from ..logging_config import get_logger
from .base import TextGenerationService
from .types import LoadState
from .utils import truncate_text

logger = get_logger(__name__)


class RateLimiter:
    """Enforce a minimum interval between successive calls.

    A caller arriving early sleeps out the remainder. Callers are admitted one
    at a time in arrival order.
    """

    def __init__(self, min_interval: float = 5.0):
        self.min_interval = min_interval
        self._last_call: Optional[float] = None
        self._lock = asyncio.Lock()

    def remaining(self) -> float:
        """Seconds until the next call may start."""
        if self._last_call is None:
            return 0.0
        return max(0.0, self.min_interval - (time.monotonic() - self._last_call))

    async def acquire(self):
        async with self._lock:
            wait_time = self.remaining()
            if wait_time > 0:
                logger.debug(f"Rate limited: waiting {wait_time:.2f}s before next generation")
                await asyncio.sleep(wait_time)
            self._last_call = time.monotonic()

    def reset(self):
        self._last_call = None


class GuardedGenerator(TextGenerationService):
    """
    Wraps a generation service with the protections a resource-constrained
    backend needs: a minimum interval between calls and a prompt length cap.
    """

    def __init__(self, inner: TextGenerationService, config: Optional[GenerationConfig] = None):
        super().__init__()
        self.inner = inner
        self.config = config or GenerationConfig()
        self.rate_limiter = RateLimiter(self.config.min_interval_seconds)

    @property
    def load_state(self) -> LoadState:
        return self.inner.load_state

    @property
    def is_loaded(self) -> bool:
        return self.inner.is_loaded

    @property
    def load_status(self) -> str:
        return self.inner.load_status

    async def ensure_loaded(self):
        await self.inner.ensure_loaded()

    def reset_load(self):
        self.inner.reset_load()

    async def _load(self):
        """Required by the base class but never called.

        The load lifecycle lives on ``inner``; ``ensure_loaded`` and the load
        properties above delegate there so both views share one state.
        """
        await self.inner.ensure_loaded()

    async def generate(self, prompt: str) -> str:
        await self.rate_limiter.acquire()

        limited_prompt = truncate_text(prompt, self.config.max_prompt_chars)
        if len(limited_prompt) < len(prompt):
            logger.debug(f"Truncated prompt from {len(prompt)} to {len(limited_prompt)} chars")

        return await self.inner.generate(limited_prompt)

    def get_model_info(self) -> Dict[str, Any]:
        info = self.inner.get_model_info() if hasattr(self.inner, "get_model_info") else {}
        info.update(
            {
                "min_interval_seconds": self.rate_limiter.min_interval,
                "max_prompt_chars": self.config.max_prompt_chars,
            }
        )
        return info
