from .conversation_api import router as conversation_router
from .model_api import router as model_router

__all__ = [
    "conversation_router",
    "model_router",
]
