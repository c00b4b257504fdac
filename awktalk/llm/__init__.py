from .base import ChatGenerator, TextGenerationService, get_shared_executor
from .guard import GuardedGenerator, RateLimiter
from .performance_monitor import PerformanceMonitor, get_performance_monitor
from .prompts import (
    ERROR_MESSAGE,
    FOUND_MESSAGE,
    NO_SUGGESTION_MESSAGE,
    NO_SUGGESTION_SENTINEL,
    TIMEOUT_MESSAGE,
    build_prompt,
    format_conversation,
    interpret_response,
)
from .types import AnalysisOutcome, AnalysisResult, LoadState, SchedulerStats
from .utils import get_api_credentials, truncate_text, with_timeout

__all__ = [
    # Generation services
    "TextGenerationService",
    "ChatGenerator",
    "GuardedGenerator",
    "RateLimiter",
    "get_shared_executor",
    # Types
    "AnalysisOutcome",
    "AnalysisResult",
    "LoadState",
    "SchedulerStats",
    # Prompting
    "build_prompt",
    "format_conversation",
    "interpret_response",
    "NO_SUGGESTION_SENTINEL",
    "NO_SUGGESTION_MESSAGE",
    "FOUND_MESSAGE",
    "TIMEOUT_MESSAGE",
    "ERROR_MESSAGE",
    # Utilities
    "get_api_credentials",
    "truncate_text",
    "with_timeout",
    "PerformanceMonitor",
    "get_performance_monitor",
]
