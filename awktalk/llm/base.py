import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from ..config import GenerationConfig
from ..errors import GenerationFailed
from ..logging_config import get_logger
from .types import LoadState
from .utils import get_api_credentials

logger = get_logger(__name__)

# Shared thread pool executor for all LLM operations to avoid overhead
_shared_executor = None


def get_shared_executor() -> ThreadPoolExecutor:
    """Get or create the shared thread pool executor for LLM operations."""
    global _shared_executor
    if _shared_executor is None:
        # Generation is rate limited to one call at a time, two workers leave room for warmup
        _shared_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="llm-executor")
    return _shared_executor


class TextGenerationService(ABC):
    """
    Prompt-to-completion capability with an explicit load phase.

    Subclasses implement ``_load`` and ``generate``. ``ensure_loaded`` is
    idempotent and safe to call concurrently: every caller awaits the same
    in-flight load. A failed load is remembered until ``reset_load``.
    """

    def __init__(self):
        self._load_state = LoadState.IDLE
        self._load_task: Optional[asyncio.Task] = None
        self._load_error: Optional[BaseException] = None

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def is_loaded(self) -> bool:
        return self._load_state is LoadState.LOADED

    @property
    def load_status(self) -> str:
        """Human-readable load status for status surfaces."""
        if self._load_state is LoadState.LOADING:
            return "Loading model..."
        if self._load_state is LoadState.LOADED:
            return "Model loaded successfully"
        if self._load_state is LoadState.ERROR:
            return f"Error loading model: {self._load_error}"
        return "Not loaded"

    async def ensure_loaded(self):
        if self._load_state is LoadState.LOADED:
            return
        if self._load_state is LoadState.ERROR:
            raise GenerationFailed(f"Model failed to load: {self._load_error}")

        if self._load_task is None:
            self._load_state = LoadState.LOADING
            self._load_task = asyncio.create_task(self._run_load())

        # Shield so one cancelled waiter does not abort the load for the others
        await asyncio.shield(self._load_task)

    async def _run_load(self):
        try:
            await self._load()
            self._load_state = LoadState.LOADED
            logger.info(f"{self.__class__.__name__}: model loaded")
        except Exception as e:
            self._load_state = LoadState.ERROR
            self._load_error = e
            logger.error(f"{self.__class__.__name__}: error loading model: {e}")
            raise GenerationFailed(f"Model failed to load: {e}") from e
        finally:
            self._load_task = None

    def reset_load(self):
        """Forget a failed load so the next ``ensure_loaded`` retries."""
        if self._load_state is LoadState.ERROR:
            self._load_state = LoadState.IDLE
            self._load_error = None

    @abstractmethod
    async def _load(self):
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Produce a completion for ``prompt``.

        Raises:
            GenerationFailed: on backend failure or when not loaded
        """
        pass


class ChatGenerator(TextGenerationService):
    """
    Text generation against any OpenAI-compatible chat endpoint.

    Handles:
    - Client initialization from configuration and environment credentials
    - A system + user chat prompt per request
    - Running the blocking chain on the shared executor
    """

    def __init__(self, config: Optional[GenerationConfig] = None):
        super().__init__()
        self.config = config or GenerationConfig()
        self._llm: Optional[ChatOpenAI] = None
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", self.config.system_prompt),
                ("human", "{prompt}"),
            ]
        )

    def _build_llm(self) -> ChatOpenAI:
        api_key, base_url = get_api_credentials()

        if self.config.api_key:
            api_key = self.config.api_key
        if self.config.base_url:
            base_url = self.config.base_url
            # Local OpenAI-compatible servers usually ignore the key but the client requires one
            api_key = api_key or "local"
        elif "/" not in self.config.model_id:
            base_url = None

        if not api_key:
            raise ValueError("No API key found. Set OPENROUTER_API_KEY, OPENAI_API_KEY or LLM_API_KEY.")

        return ChatOpenAI(
            model=self.config.model_id,
            api_key=api_key,
            base_url=base_url,
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            timeout=self.config.request_timeout,
        )

    async def _load(self):
        self._llm = self._build_llm()
        logger.info(f"Initialized LLM with model: {self.config.model_id}")

        if self.config.warmup:
            await self._invoke("Reply with OK.")
            logger.info("🔥 Model warmup completed")

    async def _invoke(self, prompt: str) -> str:
        chain = self._prompt | self._llm
        executor = get_shared_executor()
        result = await asyncio.get_event_loop().run_in_executor(executor, lambda: chain.invoke({"prompt": prompt}))
        return result.content.strip()

    async def generate(self, prompt: str) -> str:
        if not self.is_loaded or self._llm is None:
            raise GenerationFailed("Model not loaded")

        try:
            return await self._invoke(prompt)
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise GenerationFailed(str(e)) from e

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model configuration."""
        api_key, base_url = get_api_credentials()

        return {
            "model_id": self.config.model_id,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_output_tokens,
            "timeout": self.config.request_timeout,
            "provider": "local" if self.config.base_url else ("openrouter" if base_url else "openai"),
            "has_api_key": bool(api_key or self.config.api_key),
            "load_status": self.load_status,
        }
