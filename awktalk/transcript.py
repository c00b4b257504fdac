from typing import Iterator, List, Set, Tuple

from .logging_config import get_logger
from .timed_objects import Utterance

logger = get_logger(__name__)


class TranscriptStore:
    """Append-only, arrival-ordered log of speaker-attributed utterances.

    Readers only ever receive tuples, so a snapshot handed to an analysis pass
    cannot change underneath it.
    """

    def __init__(self):
        self._entries: List[Utterance] = []
        self._ids: Set[str] = set()

    def append(self, utterance: Utterance) -> int:
        """Append an utterance and return the new transcript length."""
        if utterance.id in self._ids:
            raise ValueError(f"Duplicate utterance id: {utterance.id}")

        self._entries.append(utterance)
        self._ids.add(utterance.id)
        logger.debug(f"Appended utterance #{len(self._entries)} ({utterance.speaker.value})")
        return len(self._entries)

    def snapshot(self) -> Tuple[Utterance, ...]:
        return tuple(self._entries)

    def window(self, size: int) -> Tuple[Utterance, ...]:
        """Return the last ``size`` utterances in chronological order."""
        if size <= 0:
            return ()
        return tuple(self._entries[-size:])

    def clear(self):
        count = len(self._entries)
        self._entries.clear()
        self._ids.clear()
        logger.info(f"🧹 Transcript cleared ({count} utterances dropped)")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Utterance]:
        return iter(tuple(self._entries))
