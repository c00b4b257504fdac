import logging
import os
from pathlib import Path
from typing import Optional

# Global variables to store the logging configuration
_logging_initialized = False
_log_filename = None
_log_settings = None


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None):
    """Set up logging to both console and file with fixed filename.

    Calling again with a different level or directory reconfigures the handlers,
    so settings loaded after the first module-level ``get_logger`` still apply.
    """
    global _logging_initialized, _log_filename, _log_settings

    settings = (level.upper(), str(Path(log_dir).resolve()) if log_dir else None)
    if _logging_initialized and settings == _log_settings:
        return _log_filename

    # Default to a logs directory under the current working directory
    logs_dir = Path(log_dir) if log_dir else Path(os.getcwd()) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Use fixed filename that overwrites previous logs
    _log_filename = logs_dir / "last_run.log"

    if _log_filename.exists():
        _log_filename.unlink()
    _log_filename.touch()


    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(_log_filename, mode="a"),
            logging.StreamHandler(),
        ],
        force=True,  # closes handlers from an earlier setup
    )

    logging.getLogger("awktalk").setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("uvicorn").setLevel(logging.WARNING)  # Reduce uvicorn verbosity
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _logging_initialized = True
    _log_settings = settings

    logger = logging.getLogger(__name__)
    logger.info(f"📝 Centralized logging initialized - writing to {_log_filename}")

    return _log_filename


def get_logger(name=None):
    """Get a logger with the centralized configuration."""
    if not _logging_initialized:
        setup_logging()

    if name is None:
        name = __name__

    return logging.getLogger(name)
