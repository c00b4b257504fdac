from .errors import (
    AwkTalkError,
    BackendConfigurationFailed,
    GenerationFailed,
    GenerationTimeout,
    NoSubscriptionKey,
    PermissionDenied,
    RecognitionFailed,
)
from .llm import ChatGenerator, GuardedGenerator, TextGenerationService
from .scheduler import AnalysisScheduler, AnalysisState, AnalysisUpdate, SchedulerState, should_trigger
from .session import ConversationSession, SessionSnapshot
from .speakers import SpeakerAttributor
from .timed_objects import Role, SpeakerStrategy, Utterance
from .transcript import TranscriptStore

__all__ = [
    # Core
    "AnalysisScheduler",
    "AnalysisState",
    "AnalysisUpdate",
    "SchedulerState",
    "should_trigger",
    "ConversationSession",
    "SessionSnapshot",
    "SpeakerAttributor",
    "TranscriptStore",
    # Data model
    "Role",
    "SpeakerStrategy",
    "Utterance",
    # Generation
    "TextGenerationService",
    "ChatGenerator",
    "GuardedGenerator",
    # Errors
    "AwkTalkError",
    "PermissionDenied",
    "BackendConfigurationFailed",
    "NoSubscriptionKey",
    "RecognitionFailed",
    "GenerationTimeout",
    "GenerationFailed",
]
