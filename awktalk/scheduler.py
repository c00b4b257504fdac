import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from pydantic import BaseModel, Field

from .config import AnalysisConfig
from .errors import GenerationTimeout
from .llm.base import TextGenerationService
from .llm.performance_monitor import get_performance_monitor, log_performance_if_needed
from .llm.prompts import build_prompt, error_result, interpret_response, timeout_result
from .llm.types import AnalysisResult, SchedulerStats
from .llm.utils import with_timeout
from .logging_config import get_logger
from .timed_objects import Utterance
from .transcript import TranscriptStore

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    TRIGGERING = "triggering"
    GENERATING = "generating"
    PUBLISHING = "publishing"


class AnalysisState(BaseModel):
    """Analysis fields owned by the scheduler for the current conversation."""

    last_analyzed_count: int = Field(default=0, ge=0, description="Transcript length when the last pass was triggered")
    is_analyzing: bool = Field(default=False, description="A pass is in flight")
    current_analysis_text: str = Field(default="", description="Latest published summary")
    current_suggestions: List[str] = Field(default_factory=list, description="Latest published suggestions")
    context: str = Field(default="", description="The user's situational goal for this conversation")


class AnalysisUpdate(BaseModel):
    """Event delivered to listeners whenever published analysis state changes."""

    session_token: int
    state: SchedulerState
    analysis: AnalysisState


AnalysisListener = Callable[[AnalysisUpdate], Awaitable[None]]


def should_trigger(length: int, last_analyzed_count: int, state: SchedulerState, config: AnalysisConfig) -> bool:
    """Decide whether a transcript of ``length`` entries warrants a new pass."""
    return (
        length >= config.min_entries_for_analysis
        and length > last_analyzed_count
        and length - last_analyzed_count >= config.analyze_every_n_entries
        and state is SchedulerState.IDLE
    )


class AnalysisScheduler:
    """
    Decides when a growing transcript is analyzed and publishes the results.

    Every mutation of scheduler state happens on the event loop between
    awaits, so append handling and pass completion never interleave. The
    GENERATING state is the only guard against overlapping passes; no lock is
    held while the backend works.

    Each pass carries the session token that was current when it triggered.
    ``reset`` bumps the token, so a pass that finishes after a clear finds a
    mismatch and drops its result.
    """

    def __init__(
        self,
        store: TranscriptStore,
        generator: TextGenerationService,
        config: Optional[AnalysisConfig] = None,
    ):
        self.store = store
        self.generator = generator
        self.config = config or AnalysisConfig()

        self.state = SchedulerState.IDLE
        self.analysis = AnalysisState()
        self.session_token = 0
        self.last_result: Optional[AnalysisResult] = None

        self.stats = SchedulerStats()
        self.listeners: List[AnalysisListener] = []

        self._current_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        logger.info(f"AnalysisScheduler initialized (min entries: {self.config.min_entries_for_analysis}, every {self.config.analyze_every_n_entries} entries, window {self.config.window_size})")

    def add_listener(self, listener: AnalysisListener):
        """Register a coroutine called with an AnalysisUpdate after each state change."""
        self.listeners.append(listener)

    def should_trigger(self) -> bool:
        return should_trigger(len(self.store), self.analysis.last_analyzed_count, self.state, self.config)

    def on_append(self) -> Optional[asyncio.Task]:
        """Evaluate the trigger after a transcript append and start a pass if due.

        Must be called from the event loop. Returns the spawned pass task, if any.
        """
        if not self.should_trigger():
            return None

        length = len(self.store)
        self.state = SchedulerState.TRIGGERING
        self.analysis.last_analyzed_count = length
        window = self.store.window(self.config.window_size)
        self.stats.record_trigger()

        logger.info(f"Analysis triggered with {len(window)} messages (transcript length {length})")

        task = asyncio.create_task(self._run_pass(window, self.analysis.context, self.session_token))
        self._current_task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_pass(self, window: Sequence[Utterance], context: str, token: int):
        start_time = time.time()
        result: Optional[AnalysisResult] = None

        try:
            if token != self.session_token:
                return
            self.state = SchedulerState.GENERATING
            self.analysis.is_analyzing = True
            await self._publish(token)

            if token == self.session_token:
                result = await self._generate(build_prompt(window, context))
        finally:
            if token == self.session_token:
                if result is not None:
                    self.state = SchedulerState.PUBLISHING
                    self.analysis.current_analysis_text = result.summary
                    self.analysis.current_suggestions = list(result.suggestions)
                    self.last_result = result
                    self.stats.record_completion(result.outcome, time.time() - start_time)
                self.state = SchedulerState.IDLE
                self.analysis.is_analyzing = False
            else:
                self.stats.record_discard()
                logger.info(f"Discarding stale analysis result from session {token} (current session {self.session_token})")

        if token == self.session_token:
            logger.info(f"Analysis completed in {time.time() - start_time:.2f}s: {result.summary if result else 'no result'}")
            await self._publish(token)
            log_performance_if_needed()

    async def _generate(self, prompt: str) -> AnalysisResult:
        """Run one timeout-guarded generation and absorb every failure into a result."""
        monitor = get_performance_monitor()
        start_time = time.time()

        try:
            raw = await with_timeout(self._load_and_generate(prompt), self.config.timeout_seconds)
        except GenerationTimeout as e:
            logger.warning(f"Analysis timed out: {e}")
            monitor.record_error("analyzer", "timeout")
            return timeout_result()
        except Exception as e:
            logger.error(f"Analysis error: {e}")
            monitor.record_error("analyzer")
            return error_result()

        monitor.record_request("analyzer", time.time() - start_time)
        return interpret_response(raw)

    async def _load_and_generate(self, prompt: str) -> str:
        await self.generator.ensure_loaded()
        return await self.generator.generate(prompt)

    async def _publish(self, token: int):
        if token != self.session_token:
            return

        update = AnalysisUpdate(
            session_token=token,
            state=self.state,
            analysis=self.analysis.model_copy(deep=True),
        )
        for listener in list(self.listeners):
            try:
                await listener(update)
            except Exception as e:
                logger.error(f"Error in analysis listener: {e}")

    def reset(self, context: str = ""):
        """Start a fresh conversation: new token, zeroed counters, given context.

        A pass still in flight keeps running but its result is discarded.
        """
        self.session_token += 1
        self.state = SchedulerState.IDLE
        self.analysis = AnalysisState(context=context)
        self.last_result = None
        self._current_task = None
        logger.info(f"🧹 Analysis state reset (session {self.session_token})")

    async def wait_idle(self):
        """Wait for the pass of the current session, if one is running."""
        task = self._current_task
        if task is not None and not task.done():
            await task

    async def shutdown(self):
        """Cancel every pass still running."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def get_stats(self):
        stats = self.stats.to_dict()
        stats.update(
            {
                "state": self.state.value,
                "session_token": self.session_token,
                "last_analyzed_count": self.analysis.last_analyzed_count,
                "transcript_length": len(self.store),
                "policy": {
                    "min_entries_for_analysis": self.config.min_entries_for_analysis,
                    "analyze_every_n_entries": self.config.analyze_every_n_entries,
                    "window_size": self.config.window_size,
                    "timeout_seconds": self.config.timeout_seconds,
                },
            }
        )
        return stats
