import asyncio
import time
from typing import List, Optional

import pytest

from awktalk.config import AnalysisConfig, GenerationConfig, SpeechConfig, UnifiedConfig
from awktalk.llm.base import TextGenerationService


class FakeGenerator(TextGenerationService):
    """Scriptable generation backend for tests."""

    def __init__(
        self,
        response: str = "No suggestions needed.",
        hang: bool = False,
        error: Optional[Exception] = None,
        load_error: Optional[Exception] = None,
        load_delay: float = 0.0,
        gated: bool = False,
    ):
        super().__init__()
        self.response = response
        self.hang = hang
        self.error = error
        self.load_error = load_error
        self.load_delay = load_delay
        self.gated = gated
        self._gate: Optional[asyncio.Event] = None

        self.prompts: List[str] = []
        self.call_times: List[float] = []
        self.load_calls = 0
        self.active = 0
        self.max_active = 0

    def release(self):
        self.gated = False
        if self._gate is not None:
            self._gate.set()

    async def _load(self):
        self.load_calls += 1
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error is not None:
            raise self.load_error

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.call_times.append(time.monotonic())
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.hang:
                await asyncio.Event().wait()
            if self.gated:
                if self._gate is None:
                    self._gate = asyncio.Event()
                await self._gate.wait()
            if self.error is not None:
                raise self.error
            return self.response
        finally:
            self.active -= 1


async def wait_until(predicate, timeout: float = 1.0):
    """Yield to the event loop until ``predicate()`` is true."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


def make_config(timeout_seconds: float = 30.0, speech_key: Optional[str] = "test-key", **analysis) -> UnifiedConfig:
    return UnifiedConfig(
        analysis=AnalysisConfig(timeout_seconds=timeout_seconds, **analysis),
        generation=GenerationConfig(min_interval_seconds=0),
        speech=SpeechConfig(key=speech_key),
    )


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def config():
    return make_config()
