from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class AnalysisOutcome(str, Enum):
    SUGGESTION = "suggestion"
    NOTHING_MISSING = "nothing_missing"
    TIMEOUT = "timeout"
    ERROR = "error"


class AnalysisResult(BaseModel):
    """Interpreted outcome of one analysis pass."""

    summary: str = Field(description="Short user-facing status of the analysis")
    suggestions: List[str] = Field(default_factory=list, description="At most one verbatim next utterance for Speaker 1")
    outcome: AnalysisOutcome = Field(description="How the pass ended")


class BaseStats:
    """Base class for statistics tracking with common patterns."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all statistics. Should be overridden by subclasses."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Get statistics as a dictionary. Should be overridden by subclasses."""
        return {}

    def update_average_time(self, current_avg: float, count: int, new_time: float) -> float:
        """Helper method to update running average time."""
        if count == 0:
            return new_time
        return (current_avg * (count - 1) + new_time) / count


class SchedulerStats(BaseStats):
    """Counters for analysis passes."""

    def reset(self):
        self.passes_triggered = 0
        self.passes_completed = 0
        self.timeouts = 0
        self.failures = 0
        self.discarded = 0
        self.average_pass_time = 0.0

    def record_trigger(self):
        self.passes_triggered += 1

    def record_completion(self, outcome: AnalysisOutcome, pass_time: float):
        """Record a pass that reached the publishing step."""
        self.passes_completed += 1
        if outcome is AnalysisOutcome.TIMEOUT:
            self.timeouts += 1
        elif outcome is AnalysisOutcome.ERROR:
            self.failures += 1
        self.average_pass_time = self.update_average_time(self.average_pass_time, self.passes_completed, pass_time)

    def record_discard(self):
        self.discarded += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passes_triggered": self.passes_triggered,
            "passes_completed": self.passes_completed,
            "timeouts": self.timeouts,
            "failures": self.failures,
            "discarded": self.discarded,
            "average_pass_time": self.average_pass_time,
        }
