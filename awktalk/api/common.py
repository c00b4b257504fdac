from typing import Any, Dict, Optional

from ..logging_config import get_logger
from ..session import ConversationSession

logger = get_logger(__name__)

# Global conversation session shared by every route
_session: Optional[ConversationSession] = None


def get_session() -> ConversationSession:
    """Get or create the global conversation session."""
    global _session
    if _session is None:
        _session = ConversationSession()
    return _session


def set_session(session: Optional[ConversationSession]):
    global _session
    _session = session


def has_session() -> bool:
    return _session is not None


# =============================================================================
# API Helper Functions
# =============================================================================


def success_response(message: str, data: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
    """Create a standardized success response."""
    response = {
        "status": "success",
        "message": message,
    }

    if data:
        response.update(data)

    response.update(kwargs)
    return response


def error_response(message: str, error: Optional[Exception] = None, log_error: bool = True, **kwargs) -> Dict[str, Any]:
    """Create a standardized error response."""
    if log_error and error:
        logger.error(f"{message}: {error}")
    elif log_error:
        logger.error(message)

    response = {
        "status": "error",
        "message": message,
    }

    response.update(kwargs)
    return response
