import asyncio
from typing import List, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from ..errors import AwkTalkError
from ..logging_config import get_logger
from ..session import SessionSnapshot
from .common import error_response, get_session, success_response

logger = get_logger(__name__)

router = APIRouter()


class ConversationRequest(BaseModel):
    context: str = Field(default="", description="What the user wants out of this conversation")


class UtteranceRequest(BaseModel):
    text: str = Field(description="Finalized segment text")
    speaker_id: Optional[str] = Field(default=None, description="Opaque speaker id from the transcription backend")
    features: Optional[List[float]] = Field(default=None, description="Voice features of the segment, used by the voice-similarity strategy")
    timestamp: Optional[float] = Field(default=None, description="Epoch seconds, defaults to now")


class PartialRequest(BaseModel):
    text: str = Field(description="Interim transcription text")


class CanceledRequest(BaseModel):
    detail: Optional[str] = Field(default=None, description="Error details reported by the backend")


class EnrollRequest(BaseModel):
    samples: List[float] = Field(min_length=1, description="Mono PCM samples of the device owner's voice")


@router.get("/api/state")
async def get_state():
    """Get the full published session state."""
    return success_response("State retrieved", {"state": get_session().snapshot().model_dump(mode="json")})


@router.post("/api/conversation")
async def start_conversation(request: ConversationRequest):
    """Start a new conversation with the given context, clearing the old one."""
    session = get_session()
    await session.start_conversation(request.context)
    return success_response("Conversation started", {"context": session.context})


@router.delete("/api/conversation")
async def clear_conversation():
    """Clear transcript, speaker roles and analysis."""
    await get_session().clear_conversation()
    return success_response("Conversation cleared")


@router.post("/api/utterances")
async def add_utterance(request: UtteranceRequest):
    """Record a finalized transcription segment."""
    session = get_session()
    utterance = await session.on_transcribed(request.text, request.speaker_id, request.features, timestamp=request.timestamp)
    if utterance is None:
        return success_response("Empty utterance ignored", recorded=False)

    return success_response(
        "Utterance recorded",
        {"utterance": utterance.to_dict(), "transcript_length": len(session.store)},
        recorded=True,
        is_analyzing=session.scheduler.analysis.is_analyzing,
    )


@router.post("/api/partial")
async def update_partial(request: PartialRequest):
    """Update the live interim transcription text."""
    await get_session().on_transcribing(request.text)
    return success_response("Partial text updated")


@router.post("/api/speakers/enroll")
async def enroll_voice(request: EnrollRequest):
    """Enroll the device owner's voice for the voice-similarity strategy."""
    session = get_session()
    session.enroll_voice(request.samples)
    return success_response("Voice profile enrolled", strategy=session.attributor.strategy.value)


@router.post("/api/recording/start")
async def start_recording():
    try:
        await get_session().start_recording()
        return success_response("Recording started")
    except AwkTalkError as e:
        return error_response(e.message, error=e, code=e.code)


@router.post("/api/recording/stop")
async def stop_recording():
    await get_session().stop_recording()
    return success_response("Recording stopped")


@router.post("/api/recording/canceled")
async def recording_canceled(request: CanceledRequest):
    """Transcription backend cancelled the stream."""
    session = get_session()
    await session.on_canceled(request.detail)
    return error_response(session.error.message, log_error=False, code=session.error.code)


@router.websocket("/ws")
async def session_events(websocket: WebSocket):
    """Stream session snapshots to the client whenever state changes."""
    session = get_session()
    queue: asyncio.Queue = asyncio.Queue(maxsize=100)

    async def enqueue(snapshot: SessionSnapshot):
        try:
            queue.put_nowait(snapshot)
        except asyncio.QueueFull:
            logger.warning("WebSocket client is falling behind, dropping snapshot")

    await websocket.accept()
    logger.info("WebSocket connection opened.")
    session.add_listener(enqueue)

    try:
        await websocket.send_json(session.snapshot().model_dump(mode="json"))

        sender = asyncio.create_task(_send_snapshots(websocket, queue))
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        _, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    except WebSocketDisconnect:
        pass
    finally:
        session.remove_listener(enqueue)
        logger.info("WebSocket disconnected.")


async def _send_snapshots(websocket: WebSocket, queue: asyncio.Queue):
    try:
        while True:
            snapshot = await queue.get()
            await websocket.send_json(snapshot.model_dump(mode="json"))
    except WebSocketDisconnect:
        return


async def _wait_for_disconnect(websocket: WebSocket):
    """Client messages are ignored; returns once the client goes away."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return
