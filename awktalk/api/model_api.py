from fastapi import APIRouter

from ..errors import AwkTalkError
from ..llm.performance_monitor import get_performance_monitor
from ..logging_config import get_logger
from .common import error_response, get_session, success_response

logger = get_logger(__name__)

router = APIRouter()


@router.post("/api/model/load")
async def load_model():
    """Load the generation backend and wait for it to be ready, retrying a failed load."""
    session = get_session()
    try:
        status = await session.load_model()
        return success_response("Model loaded", {"model_status": status})
    except AwkTalkError as e:
        return error_response(e.message, error=e, code=e.code, model_status=session.generator.load_status)


@router.get("/api/model/status")
async def get_model_status():
    session = get_session()
    generator = session.generator
    info = generator.get_model_info() if hasattr(generator, "get_model_info") else {}
    return success_response("Model status retrieved", {"model_status": generator.load_status, "model": info})


@router.get("/api/stats")
async def get_stats():
    """Get scheduler counters and generation latency statistics."""
    session = get_session()
    return success_response(
        "Statistics retrieved",
        {
            "scheduler": session.scheduler.get_stats(),
            "performance": get_performance_monitor().get_stats(),
            "speakers": {raw_id: role.value for raw_id, role in session.attributor.roles().items()},
        },
    )
