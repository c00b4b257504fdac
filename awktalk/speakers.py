from typing import Dict, Optional, Sequence

import numpy as np

from .logging_config import get_logger
from .timed_objects import Role, SpeakerStrategy

logger = get_logger(__name__)


def extract_voice_features(samples: Sequence[float]) -> np.ndarray:
    """Extract basic voice features from a mono PCM buffer.

    Returns:
        np.ndarray: ``[energy, zero_crossing_rate]``
    """
    audio = np.asarray(samples, dtype=np.float32)
    if audio.size == 0:
        return np.zeros(2, dtype=np.float32)

    energy = float(np.mean(audio * audio))

    # Sign changes between consecutive samples, zero counted as positive
    signs = audio >= 0
    zero_crossings = int(np.count_nonzero(signs[1:] != signs[:-1]))
    zcr = zero_crossings / audio.size

    return np.array([energy, zcr], dtype=np.float32)


def voice_similarity(features1: Sequence[float], features2: Sequence[float]) -> float:
    """Euclidean-distance similarity: 1.0 is identical, 0.0 is far apart."""
    a = np.asarray(features1, dtype=np.float32)
    b = np.asarray(features2, dtype=np.float32)
    n = min(a.size, b.size)
    distance = float(np.linalg.norm(a[:n] - b[:n]))
    return max(0.0, 1.0 - distance)


class SpeakerAttributor:
    """
    Maps opaque per-utterance speaker ids from the transcription backend onto
    the Primary/Counterpart roles of one conversation.

    The default strategy assumes the first distinct id heard is the device
    owner. The voice-similarity strategy instead compares the first utterance
    of each new id against an enrolled profile of the owner's voice, and falls
    back to first-seen-wins when no profile or features are available.

    Once an id is assigned its role never changes until ``reset``.
    """

    def __init__(self, strategy: SpeakerStrategy = SpeakerStrategy.FIRST_SEEN_WINS, similarity_threshold: float = 0.7):
        self.strategy = strategy
        self.similarity_threshold = similarity_threshold
        self._registry: Dict[str, Role] = {}
        self._profile: Optional[np.ndarray] = None

    @property
    def has_profile(self) -> bool:
        return self._profile is not None

    def enroll(self, samples: Sequence[float]):
        """Store a short sample of the user's voice for comparison."""
        self._profile = extract_voice_features(samples)
        logger.info("🎙️ Voice profile enrolled")

    def reset_profile(self):
        self._profile = None

    def resolve(self, raw_speaker_id: Optional[str], features: Optional[Sequence[float]] = None) -> Role:
        """Resolve a backend speaker id to a role, registering it on first sight."""
        if not raw_speaker_id:
            return Role.UNKNOWN

        role = self._registry.get(raw_speaker_id)
        if role is not None:
            return role

        role = self._assign(features)
        self._registry[raw_speaker_id] = role
        logger.info(f"Mapped new speaker ID {raw_speaker_id} to {role.value}")
        return role

    def _assign(self, features: Optional[Sequence[float]]) -> Role:
        primary_taken = Role.PRIMARY in self._registry.values()

        if self.strategy is SpeakerStrategy.VOICE_SIMILARITY and self._profile is not None and features is not None:
            if primary_taken:
                return Role.COUNTERPART
            similarity = voice_similarity(self._profile, features)
            logger.debug(f"Voice similarity to profile: {similarity:.2f}")
            return Role.PRIMARY if similarity > self.similarity_threshold else Role.COUNTERPART

        return Role.COUNTERPART if self._registry else Role.PRIMARY

    def roles(self) -> Dict[str, Role]:
        return dict(self._registry)

    def reset(self):
        """Forget every id mapping. Only call when the transcript is cleared."""
        self._registry.clear()
