from argparse import ArgumentParser, Namespace
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import conversation_router, model_router
from .api.common import get_session, set_session, success_response
from .config import get_config
from .logging_config import get_logger, setup_logging

config = get_config()

# Ensure logging is initialized early
setup_logging(config.logging.level, config.logging.log_dir)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the conversation session and start loading the model."""
    logger.info("🚀 Starting AwkTalk backend...")

    session = get_session()
    session.preload_model()

    yield

    await session.close()
    set_session(None)
    logger.info("AwkTalk backend stopped")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.server.cors_origins,
    allow_credentials=config.server.cors_credentials,
    allow_methods=config.server.cors_methods,
    allow_headers=config.server.cors_headers,
)

app.include_router(conversation_router)
app.include_router(model_router)


@app.get("/health")
async def health():
    return success_response("ok")


def parse_args(argv=None) -> Namespace:
    parser = ArgumentParser(description="AwkTalk conversation coach server")
    parser.add_argument("--host", type=str, default=config.server.host, help="Server bind address")
    parser.add_argument("--port", type=int, default=config.server.port, help="Server port")
    parser.add_argument("--log-level", type=str, default="info", choices=["debug", "info", "warning", "error"], help="Uvicorn log level")
    args = parser.parse_args(argv)

    if not 1 <= args.port <= 65535:
        raise ValueError(f"Invalid port: {args.port}")

    return args


def main():
    """Entry point for the CLI command."""
    args = parse_args()

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        reload=False,
        log_level=args.log_level,
        lifespan="on",
    )


if __name__ == "__main__":
    main()
