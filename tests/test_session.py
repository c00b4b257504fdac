import pytest
from conftest import FakeGenerator, make_config, wait_until

from awktalk.errors import NoSubscriptionKey, PermissionDenied
from awktalk.llm.prompts import NO_SUGGESTION_MESSAGE, TIMEOUT_MESSAGE
from awktalk.scheduler import SchedulerState
from awktalk.session import ConversationSession
from awktalk.timed_objects import Role


@pytest.mark.asyncio
async def test_job_interview_scenario():
    generator = FakeGenerator(gated=True)
    session = ConversationSession(generator=generator, config=make_config())
    await session.start_conversation("job interview")

    first = await session.on_transcribed("Tell me about yourself", "id-A")
    second = await session.on_transcribed("I led a team of five", "id-B")
    assert first.speaker is Role.PRIMARY
    assert second.speaker is Role.COUNTERPART
    assert session.scheduler.analysis.last_analyzed_count == 0

    await session.on_transcribed("What was the hardest part?", "id-A")
    await wait_until(lambda: generator.prompts)

    assert session.scheduler.state is SchedulerState.GENERATING
    assert session.scheduler.analysis.last_analyzed_count == 3
    prompt = generator.prompts[0]
    assert "Primary: Tell me about yourself" in prompt
    assert "Counterpart: I led a team of five" in prompt
    assert "job interview" in prompt

    generator.release()
    await session.scheduler.wait_idle()
    assert session.snapshot().analysis_summary == NO_SUGGESTION_MESSAGE


@pytest.mark.asyncio
async def test_hanging_backend_scenario():
    generator = FakeGenerator(hang=True)
    session = ConversationSession(generator=generator, config=make_config(timeout_seconds=0.05))
    await session.start_conversation("sales call")

    for text in ["Hi there", "Hello", "Let's talk pricing"]:
        await session.on_transcribed(text, "speaker")
    await session.scheduler.wait_idle()

    snapshot = session.snapshot()
    assert snapshot.analysis_summary == TIMEOUT_MESSAGE
    assert snapshot.suggestions == []
    assert not snapshot.is_analyzing
    assert session.scheduler.state is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_empty_segment_is_ignored():
    session = ConversationSession(generator=FakeGenerator(), config=make_config())

    assert await session.on_transcribed("   ", "id-A") is None
    assert len(session.store) == 0
    assert session.attributor.roles() == {}


@pytest.mark.asyncio
async def test_partial_text_cleared_by_final_segment():
    session = ConversationSession(generator=FakeGenerator(), config=make_config())

    await session.on_transcribing("Tell me ab")
    assert session.snapshot().partial_text == "Tell me ab"

    await session.on_transcribed("Tell me about yourself", "id-A")
    assert session.snapshot().partial_text == ""


@pytest.mark.asyncio
async def test_clear_resets_transcript_roles_and_analysis():
    generator = FakeGenerator(gated=True, response="Ask a question.")
    session = ConversationSession(generator=generator, config=make_config())
    await session.start_conversation("first date")
    for raw_id, text in [("a", "Hi"), ("b", "Hello"), ("a", "Nice place")]:
        await session.on_transcribed(text, raw_id)
    await wait_until(lambda: generator.prompts)

    await session.clear_conversation()
    generator.release()
    await session.scheduler.shutdown()

    snapshot = session.snapshot()
    assert snapshot.transcript == []
    assert snapshot.analysis_summary == ""
    assert snapshot.suggestions == []
    assert snapshot.context == "first date"
    assert session.scheduler.analysis.last_analyzed_count == 0
    assert session.attributor.roles() == {}

    # Roles start over after a clear
    utterance = await session.on_transcribed("Me again", "b")
    assert utterance.speaker is Role.PRIMARY


@pytest.mark.asyncio
async def test_new_context_starts_new_conversation():
    session = ConversationSession(generator=FakeGenerator(), config=make_config())
    await session.start_conversation("job interview")
    await session.on_transcribed("Hello", "a")

    await session.start_conversation("  salary negotiation ")

    assert session.context == "salary negotiation"
    assert len(session.store) == 0


@pytest.mark.asyncio
async def test_recording_requires_subscription_key():
    session = ConversationSession(generator=FakeGenerator(), config=make_config(speech_key=None))

    with pytest.raises(NoSubscriptionKey):
        await session.start_recording()

    snapshot = session.snapshot()
    assert not snapshot.is_recording
    assert snapshot.error["code"] == "no_subscription_key"


@pytest.mark.asyncio
async def test_recognition_canceled_stops_recording():
    session = ConversationSession(generator=FakeGenerator(), config=make_config())
    await session.start_recording()
    assert session.snapshot().is_recording

    await session.on_canceled("WebSocket upgrade failed")

    snapshot = session.snapshot()
    assert not snapshot.is_recording
    assert snapshot.error == {"code": "recognition_failed", "message": "Recognition failed: WebSocket upgrade failed"}

    # Retry is user initiated and clears the error
    await session.start_recording()
    assert session.snapshot().error is None


@pytest.mark.asyncio
async def test_permission_denied_is_surfaced():
    session = ConversationSession(generator=FakeGenerator(), config=make_config())

    await session.report_error(PermissionDenied())

    assert session.snapshot().error["code"] == "permission_denied"


@pytest.mark.asyncio
async def test_listeners_receive_snapshots():
    session = ConversationSession(generator=FakeGenerator(response="Ask about the timeline."), config=make_config())
    snapshots = []

    async def listener(snapshot):
        snapshots.append(snapshot)

    session.add_listener(listener)
    await session.start_conversation("project kickoff")
    for text in ["one", "two", "three"]:
        await session.on_transcribed(text, "a")
    await session.scheduler.wait_idle()

    assert snapshots[0].context == "project kickoff"
    assert any(s.is_analyzing for s in snapshots)
    assert snapshots[-1].suggestions == ["Ask about the timeline."]
    assert not snapshots[-1].is_analyzing

    session.remove_listener(listener)
    count = len(snapshots)
    await session.on_transcribing("more")
    assert len(snapshots) == count


@pytest.mark.asyncio
async def test_preload_model():
    generator = FakeGenerator()
    session = ConversationSession(generator=generator, config=make_config())

    await session.preload_model()

    assert generator.is_loaded
    assert session.snapshot().model_status == "Model loaded successfully"
