import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .config import UnifiedConfig, get_config
from .errors import AwkTalkError, BackendConfigurationFailed, NoSubscriptionKey, RecognitionFailed
from .llm.base import ChatGenerator, TextGenerationService
from .llm.guard import GuardedGenerator
from .logging_config import get_logger
from .scheduler import AnalysisScheduler, AnalysisUpdate
from .speakers import SpeakerAttributor
from .timed_objects import Utterance
from .transcript import TranscriptStore

logger = get_logger(__name__)


class SessionSnapshot(BaseModel):
    """Everything the presentation layer renders."""

    context: str = Field(default="", description="Conversation goal supplied by the user")
    transcript: List[Dict[str, Any]] = Field(default_factory=list, description="Finalized utterances, oldest first")
    partial_text: str = Field(default="", description="Live interim transcription")
    is_recording: bool = False
    is_analyzing: bool = False
    analysis_summary: str = ""
    suggestions: List[str] = Field(default_factory=list)
    model_status: str = "Not loaded"
    error: Optional[Dict[str, str]] = None


SessionListener = Callable[[SessionSnapshot], Awaitable[None]]


def build_generator(config: UnifiedConfig) -> TextGenerationService:
    """Default generation stack: chat backend behind the rate limit and prompt cap."""
    return GuardedGenerator(ChatGenerator(config.generation), config.generation)


class ConversationSession:
    """
    Single owner of one conversation: transcript, speaker roles, analysis.

    The transcription backend feeds it through ``on_transcribing``,
    ``on_transcribed`` and ``on_canceled``; the presentation layer calls
    ``start_conversation``, ``clear_conversation`` and ``record_append`` and
    listens for snapshots.
    """

    def __init__(self, generator: Optional[TextGenerationService] = None, config: Optional[UnifiedConfig] = None):
        self.config = config or get_config()

        self.store = TranscriptStore()
        self.attributor = SpeakerAttributor(
            strategy=self.config.speakers.strategy,
            similarity_threshold=self.config.speakers.similarity_threshold,
        )
        self.generator = generator or build_generator(self.config)
        self.scheduler = AnalysisScheduler(self.store, self.generator, self.config.analysis)
        self.scheduler.add_listener(self._on_analysis_update)

        self.partial_text = ""
        self.is_recording = False
        self.error: Optional[AwkTalkError] = None
        self.listeners: List[SessionListener] = []
        self._preload_task: Optional[asyncio.Task] = None

    @property
    def context(self) -> str:
        return self.scheduler.analysis.context

    def add_listener(self, listener: SessionListener):
        self.listeners.append(listener)

    def remove_listener(self, listener: SessionListener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    # =========================================================================
    # Conversation lifecycle
    # =========================================================================

    async def start_conversation(self, context: str = ""):
        """Begin a new conversation with ``context``; drops the previous one."""
        self._reset(context.strip())
        logger.info(f"Started conversation (context: {len(self.context)} chars)")
        await self._notify()

    async def clear_conversation(self):
        """Clear transcript, speaker roles and analysis, keeping the context."""
        self._reset(self.context)
        await self._notify()

    def _reset(self, context: str):
        self.store.clear()
        self.attributor.reset()
        self.scheduler.reset(context)
        self.partial_text = ""

    def enroll_voice(self, samples: Sequence[float]):
        """Store the device owner's voice profile for the voice-similarity strategy.

        The profile survives conversation clears.
        """
        self.attributor.enroll(samples)

    async def record_append(self, utterance: Utterance) -> Optional[asyncio.Task]:
        """Append a finalized utterance and let the scheduler decide on analysis."""
        self.store.append(utterance)
        self.partial_text = ""
        task = self.scheduler.on_append()
        await self._notify()
        return task

    # =========================================================================
    # Transcription backend events
    # =========================================================================

    async def on_transcribing(self, text: str):
        """Interim hypothesis for the segment currently being spoken."""
        if not text:
            return
        self.partial_text = text
        await self._notify()

    async def on_transcribed(
        self,
        text: str,
        speaker_id: Optional[str] = None,
        features: Optional[Sequence[float]] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[Utterance]:
        """Finalized segment. Empty text is ignored."""
        if not text or not text.strip():
            return None

        role = self.attributor.resolve(speaker_id, features)
        utterance = Utterance(text=text.strip(), speaker=role, timestamp=timestamp or time.time())
        await self.record_append(utterance)
        return utterance

    async def on_canceled(self, detail: Optional[str] = None):
        """Backend cancelled mid-stream: stop recording and surface the error."""
        error = RecognitionFailed(detail or "Unknown error")
        logger.error(f"Transcription canceled: {error.detail}")
        self.error = error
        self.is_recording = False
        await self._notify()

    async def report_error(self, error: AwkTalkError):
        """Surface an error reported by a collaborator, e.g. PermissionDenied."""
        logger.warning(f"Collaborator reported error: {error.message}")
        self.error = error
        await self._notify()

    async def start_recording(self):
        """Mark recording as started after validating the speech backend configuration.

        Raises:
            BackendConfigurationFailed: if credentials are missing or inconsistent
        """
        if self.is_recording:
            return

        try:
            self._validate_speech_config()
        except BackendConfigurationFailed as e:
            logger.error(f"Failed to start recording: {e.message}")
            self.error = e
            await self._notify()
            raise

        self.error = None
        self.is_recording = True
        logger.info(f"🎙️ Recording started ({self.config.speech.language}, region {self.config.speech.region})")
        await self._notify()

    async def stop_recording(self):
        if not self.is_recording:
            return
        self.is_recording = False
        logger.info("Recording stopped")
        await self._notify()

    def _validate_speech_config(self):
        speech = self.config.speech
        if not speech.key:
            raise NoSubscriptionKey()
        if not speech.region:
            raise BackendConfigurationFailed("Speech service region is missing")

    # =========================================================================
    # Model lifecycle
    # =========================================================================

    async def load_model(self) -> str:
        """Load the generation backend, raising GenerationFailed on error.

        An explicit load request retries a load that failed earlier.
        """
        self.generator.reset_load()
        try:
            await self.generator.ensure_loaded()
        finally:
            await self._notify()
        return self.generator.load_status

    def preload_model(self) -> asyncio.Task:
        """Start loading the generation backend in the background."""
        if self._preload_task is None or self._preload_task.done():
            self._preload_task = asyncio.create_task(self._preload())
        return self._preload_task

    async def _preload(self):
        try:
            await self.load_model()
        except AwkTalkError as e:
            logger.error(f"Background model load failed: {e.message}")

    # =========================================================================
    # Published state
    # =========================================================================

    def snapshot(self) -> SessionSnapshot:
        analysis = self.scheduler.analysis
        return SessionSnapshot(
            context=analysis.context,
            transcript=[entry.to_dict() for entry in self.store],
            partial_text=self.partial_text,
            is_recording=self.is_recording,
            is_analyzing=analysis.is_analyzing,
            analysis_summary=analysis.current_analysis_text,
            suggestions=list(analysis.current_suggestions),
            model_status=self.generator.load_status,
            error=self.error.to_dict() if self.error else None,
        )

    async def _on_analysis_update(self, update: AnalysisUpdate):
        await self._notify()

    async def _notify(self):
        if not self.listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self.listeners):
            try:
                await listener(snapshot)
            except Exception as e:
                logger.error(f"Error in session listener: {e}")

    async def close(self):
        await self.scheduler.shutdown()
        if self._preload_task is not None and not self._preload_task.done():
            self._preload_task.cancel()
