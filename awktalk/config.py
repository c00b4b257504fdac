from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .timed_objects import SpeakerStrategy

# =============================================================================
# Core Configuration Classes
# =============================================================================


class ServerConfig(BaseModel):
    """Server configuration settings."""

    host: str = Field(default="localhost", description="Server bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")

    # CORS settings
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")
    cors_credentials: bool = Field(default=True, description="Allow CORS credentials")
    cors_methods: List[str] = Field(default=["*"], description="Allowed CORS methods")
    cors_headers: List[str] = Field(default=["*"], description="Allowed CORS headers")


class AnalysisConfig(BaseSettings):
    """When and how much of the transcript the scheduler analyzes."""

    min_entries_for_analysis: int = Field(default=3, ge=1, le=1000, description="Transcript length required before the first analysis")
    analyze_every_n_entries: int = Field(default=2, ge=1, le=1000, description="New utterances required since the last analysis")
    window_size: int = Field(default=10, ge=1, le=200, description="Most recent utterances included in a prompt")
    timeout_seconds: float = Field(default=30.0, gt=0, le=300, description="Ceiling for a single analysis pass")

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ANALYSIS_", extra="ignore")


class GenerationConfig(BaseSettings):
    """Text generation backend configuration with environment variable support."""

    model_id: str = Field(default="openai/gpt-4.1-nano", description="Chat model identifier")
    api_key: Optional[str] = Field(default=None, description="API key override for the generation backend")
    base_url: Optional[str] = Field(default=None, description="OpenAI-compatible endpoint, e.g. a local inference server")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_output_tokens: int = Field(default=256, gt=0, le=8000, description="Maximum tokens per completion")
    request_timeout: float = Field(default=30.0, gt=0, le=300, description="HTTP request timeout in seconds")
    min_interval_seconds: float = Field(default=5.0, ge=0, le=120, description="Minimum time between generate calls")
    max_prompt_chars: int = Field(default=2000, gt=100, le=200000, description="Prompt is cut to this many characters")
    warmup: bool = Field(default=False, description="Send a tiny request while loading")
    system_prompt: str = Field(
        default="You are a helpful assistant that analyzes conversations. Be concise.",
        description="System message sent with every prompt",
    )

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LLM_", extra="ignore")


class SpeechConfig(BaseSettings):
    """Credentials and options for the speech transcription backend."""

    key: Optional[str] = Field(default=None, description="Speech service subscription key")
    region: str = Field(default="centralus", description="Speech service region")
    language: str = Field(default="en-US", description="Recognition language")
    diarization_min_speakers: int = Field(default=2, ge=1, le=10, description="Minimum speaker count hint")
    diarization_max_speakers: int = Field(default=3, ge=1, le=10, description="Maximum speaker count hint")

    model_config = SettingsConfigDict(env_file=".env", env_prefix="AZURE_SPEECH_", extra="ignore")


class SpeakerConfig(BaseSettings):
    """Speaker role attribution settings."""

    strategy: SpeakerStrategy = Field(default=SpeakerStrategy.FIRST_SEEN_WINS, description="Role assignment strategy")
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Voice similarity needed to claim the primary role")

    model_config = SettingsConfigDict(env_file=".env", env_prefix="SPEAKER_", extra="ignore")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[str] = Field(default=None, description="Log directory")


# =============================================================================
# Unified Configuration Class
# =============================================================================


class UnifiedConfig(BaseSettings):
    """Unified configuration for the AwkTalk service."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    speakers: SpeakerConfig = Field(default_factory=SpeakerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def model_post_init(self, __context: Any) -> None:
        if self.speech.diarization_min_speakers > self.speech.diarization_max_speakers:
            raise ValueError("diarization_min_speakers cannot exceed diarization_max_speakers")
        # The rate limit wait counts against the analysis timeout
        if self.generation.min_interval_seconds >= self.analysis.timeout_seconds:
            raise ValueError("generation min_interval_seconds must be shorter than analysis timeout_seconds")


# =============================================================================
# Global Configuration Instance
# =============================================================================


_config: Optional[UnifiedConfig] = None


def get_config() -> UnifiedConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = UnifiedConfig()
    return _config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None


def update_config(**kwargs) -> UnifiedConfig:
    """Update configuration with new values."""
    global _config
    if _config is None:
        _config = UnifiedConfig(**kwargs)
    else:
        for key, value in kwargs.items():
            if hasattr(_config, key):
                setattr(_config, key, value)
    return _config


# =============================================================================
# Environment Setup
# =============================================================================


def setup_environment() -> None:
    """Load .env and prepare directories referenced by the configuration."""
    from dotenv import load_dotenv

    load_dotenv()

    config = get_config()

    if config.logging.log_dir:
        Path(config.logging.log_dir).mkdir(parents=True, exist_ok=True)


# Initialize configuration on import
setup_environment()
