import time

import pytest
from conftest import FakeGenerator, make_config
from fastapi.testclient import TestClient

from awktalk.api.common import set_session
from awktalk.awktalk_server import app, parse_args
from awktalk.config import SpeakerConfig
from awktalk.session import ConversationSession
from awktalk.timed_objects import SpeakerStrategy


@pytest.fixture
def generator():
    return FakeGenerator(response="Ask when they can start.")


@pytest.fixture
def client(generator):
    set_session(ConversationSession(generator=generator, config=make_config(speech_key=None)))
    with TestClient(app) as test_client:
        yield test_client
    set_session(None)


def poll_state(client, predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while True:
        state = client.get("/api/state").json()["state"]
        if predicate(state) or time.monotonic() > deadline:
            return state
        time.sleep(0.01)


def test_conversation_flow(client):
    response = client.post("/api/conversation", json={"context": "hiring a contractor"})
    assert response.json() == {"status": "success", "message": "Conversation started", "context": "hiring a contractor"}

    for speaker_id, text in [("1", "When can you start?"), ("2", "Next Monday."), ("1", "Great.")]:
        body = client.post("/api/utterances", json={"text": text, "speaker_id": speaker_id}).json()
        assert body["recorded"] is True

    state = poll_state(client, lambda s: s["suggestions"])

    assert [entry["speaker"] for entry in state["transcript"]] == ["Primary", "Counterpart", "Primary"]
    assert state["suggestions"] == ["Ask when they can start."]
    assert state["analysis_summary"] == "Important point identified."
    assert state["context"] == "hiring a contractor"


def test_empty_utterance_ignored(client):
    body = client.post("/api/utterances", json={"text": "  ", "speaker_id": "1"}).json()

    assert body["status"] == "success"
    assert body["recorded"] is False


def test_clear_conversation(client):
    client.post("/api/conversation", json={"context": "dinner"})
    client.post("/api/utterances", json={"text": "Hello", "speaker_id": "1"})

    assert client.delete("/api/conversation").json()["status"] == "success"

    state = client.get("/api/state").json()["state"]
    assert state["transcript"] == []
    assert state["context"] == "dinner"


def test_recording_without_key_reports_error(client):
    body = client.post("/api/recording/start").json()

    assert body["status"] == "error"
    assert body["code"] == "no_subscription_key"


def test_recognition_canceled(client):
    body = client.post("/api/recording/canceled", json={"detail": "network lost"}).json()

    assert body["status"] == "error"
    assert body["code"] == "recognition_failed"
    assert client.get("/api/state").json()["state"]["error"]["message"] == "Recognition failed: network lost"


def test_model_endpoints(client, generator):
    body = client.post("/api/model/load").json()
    assert body["status"] == "success"
    assert body["model_status"] == "Model loaded successfully"

    assert client.get("/api/model/status").json()["model_status"] == "Model loaded successfully"

    stats = client.get("/api/stats").json()
    assert stats["scheduler"]["state"] == "idle"
    assert "analyzer" in stats["performance"]


def test_model_load_retries_failed_preload():
    generator = FakeGenerator(load_error=RuntimeError("disk full"))
    set_session(ConversationSession(generator=generator, config=make_config()))

    with TestClient(app) as client:
        status = poll_state(client, lambda s: s["model_status"].startswith("Error"))["model_status"]
        assert status == "Error loading model: disk full"

        generator.load_error = None
        body = client.post("/api/model/load").json()

        assert body["status"] == "success"
        assert body["model_status"] == "Model loaded successfully"
        assert generator.load_calls == 2
    set_session(None)


def test_model_load_failure_reports_error_status():
    generator = FakeGenerator(load_error=RuntimeError("disk full"))
    set_session(ConversationSession(generator=generator, config=make_config()))

    with TestClient(app) as client:
        poll_state(client, lambda s: s["model_status"].startswith("Error"))
        body = client.post("/api/model/load").json()

        assert body["status"] == "error"
        assert body["model_status"] == "Error loading model: disk full"
        assert generator.load_calls == 2
    set_session(None)


def test_voice_similarity_strategy_over_http():
    config = make_config()
    config.speakers = SpeakerConfig(strategy=SpeakerStrategy.VOICE_SIMILARITY)
    set_session(ConversationSession(generator=FakeGenerator(), config=config))

    with TestClient(app) as client:
        body = client.post("/api/speakers/enroll", json={"samples": [1.0, -1.0, 1.0, -1.0]}).json()
        assert body == {"status": "success", "message": "Voice profile enrolled", "strategy": "voice_similarity"}

        # The other person speaks first; features are [energy, zero crossing rate]
        guest = client.post("/api/utterances", json={"text": "Welcome in", "speaker_id": "1", "features": [0.0, 0.0]}).json()
        owner = client.post("/api/utterances", json={"text": "Thanks", "speaker_id": "2", "features": [1.0, 0.75]}).json()

        assert guest["utterance"]["speaker"] == "Counterpart"
        assert owner["utterance"]["speaker"] == "Primary"
        assert client.post("/api/speakers/enroll", json={"samples": []}).status_code == 422
    set_session(None)


def test_websocket_streams_snapshots(client):
    with client.websocket_connect("/ws") as websocket:
        initial = websocket.receive_json()
        assert initial["partial_text"] == ""

        client.post("/api/partial", json={"text": "So what brings"})
        # A model status update from the startup preload may arrive first
        for _ in range(3):
            update = websocket.receive_json()
            if update["partial_text"]:
                break
        assert update["partial_text"] == "So what brings"


def test_parse_args_defaults():
    args = parse_args([])

    assert args.host == "localhost"
    assert args.port == 8080
