from typing import Sequence

from ..timed_objects import Role, Utterance
from .types import AnalysisOutcome, AnalysisResult

NO_SUGGESTION_SENTINEL = "No suggestions needed"

NO_SUGGESTION_MESSAGE = "No critical points missing."
FOUND_MESSAGE = "Important point identified."
TIMEOUT_MESSAGE = "Analysis is taking longer than expected. Please try again with a shorter conversation."
ERROR_MESSAGE = "An error occurred during analysis. Please try again."

_BASE_INSTRUCTION = """You're analyzing a conversation between two people. Lines labelled "{primary}" were spoken by "Speaker 1"; lines labelled "{counterpart}" were spoken by the other person."""

_CONTEXT_BLOCK = """

IMPORTANT CONTEXT:
{context}

In this conversation, "Speaker 1" refers to the person who provided the context above.
Your advice should help "Speaker 1" achieve their goals in this specific situation."""

_TASK_BLOCK = """

Your job is very specific:

1. Quickly assess if "Speaker 1" is missing any CRITICAL point or question they should address.

2. If nothing critical is missing, respond with exactly: "{sentinel}."

3. If something important is missing, provide ONE suggestion in exactly 1-2 sentences.

4. Your suggestion must be phrased as something "Speaker 1" could say verbatim in their next turn.

5. Be extremely concise - the entire suggestion must fit in 2 lines on a phone screen.

Conversation:
{conversation}

Your suggestion (remember: 1-2 sentences only, or "{sentinel}"):"""


def format_conversation(window: Sequence[Utterance]) -> str:
    """One ``<Role>: <text>`` line per utterance, oldest first."""
    return "\n".join(entry.format_line() for entry in window)


def build_prompt(window: Sequence[Utterance], context: str = "") -> str:
    """Build the advisory prompt for one analysis pass."""
    prompt = _BASE_INSTRUCTION.format(primary=Role.PRIMARY.value, counterpart=Role.COUNTERPART.value)

    if context and context.strip():
        prompt += _CONTEXT_BLOCK.format(context=context)

    prompt += _TASK_BLOCK.format(sentinel=NO_SUGGESTION_SENTINEL, conversation=format_conversation(window))
    return prompt


def interpret_response(raw: str) -> AnalysisResult:
    """Turn raw generator output into a summary and at most one suggestion."""
    cleaned = (raw or "").strip()

    if not cleaned or NO_SUGGESTION_SENTINEL in cleaned:
        return AnalysisResult(summary=NO_SUGGESTION_MESSAGE, suggestions=[], outcome=AnalysisOutcome.NOTHING_MISSING)

    return AnalysisResult(summary=FOUND_MESSAGE, suggestions=[cleaned], outcome=AnalysisOutcome.SUGGESTION)


def timeout_result() -> AnalysisResult:
    return AnalysisResult(summary=TIMEOUT_MESSAGE, suggestions=[], outcome=AnalysisOutcome.TIMEOUT)


def error_result() -> AnalysisResult:
    return AnalysisResult(summary=ERROR_MESSAGE, suggestions=[], outcome=AnalysisOutcome.ERROR)
