import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Two-party classification of a speaker within one conversation."""

    PRIMARY = "Primary"
    COUNTERPART = "Counterpart"
    UNKNOWN = "Unknown"


class SpeakerStrategy(str, Enum):
    FIRST_SEEN_WINS = "first_seen_wins"
    VOICE_SIMILARITY = "voice_similarity"


@dataclass(frozen=True)
class Utterance:
    """One finalized speech-to-text segment with an attributed speaker."""

    text: str
    speaker: Role = Role.UNKNOWN
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("Utterance text must be non-empty")

    def format_line(self) -> str:
        """Render as a prompt line, e.g. ``Primary: Hello``."""
        return f"{self.speaker.value}: {self.text}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "text": self.text,
            "speaker": self.speaker.value,
        }
