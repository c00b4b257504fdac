import asyncio
import os
from typing import Awaitable, Optional, TypeVar

from dotenv import load_dotenv

from ..errors import GenerationTimeout

load_dotenv()

T = TypeVar("T")


def get_api_credentials() -> tuple[Optional[str], Optional[str]]:
    """Get API key and base URL for LLM services.

    Returns:
        tuple: (api_key, base_url) - base_url is None for OpenAI direct
    """
    api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
    base_url = "https://openrouter.ai/api/v1" if os.getenv("OPENROUTER_API_KEY") else None
    return api_key, base_url


def truncate_text(text: str, max_length: int) -> str:
    """Keep only the first ``max_length`` characters of ``text``."""
    if len(text) <= max_length:
        return text
    return text[:max_length]


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """Race ``awaitable`` against a timer.

    The loser is cancelled, so the caller sees either the result or a single
    GenerationTimeout, never both.

    Raises:
        GenerationTimeout: if the timer fires first
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise GenerationTimeout(seconds) from e
