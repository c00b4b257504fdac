from typing import Any, Dict, Optional


class AwkTalkError(Exception):
    """Base class for domain errors surfaced to the presentation layer."""

    code = "error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return "An unexpected error occurred"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


# =============================================================================
# Transcription path
# =============================================================================


class PermissionDenied(AwkTalkError):
    code = "permission_denied"

    def default_message(self) -> str:
        return "Microphone access is required for recording. Please enable it in Settings."


class BackendConfigurationFailed(AwkTalkError):
    code = "configuration_failed"

    def default_message(self) -> str:
        return "Failed to configure the speech transcription service"


class NoSubscriptionKey(BackendConfigurationFailed):
    code = "no_subscription_key"

    def default_message(self) -> str:
        return "Speech service subscription key is missing"


class RecognitionFailed(AwkTalkError):
    code = "recognition_failed"

    def __init__(self, detail: str = "Unknown error"):
        self.detail = detail
        super().__init__(f"Recognition failed: {detail}")


# =============================================================================
# Analysis path
# =============================================================================


class GenerationTimeout(AwkTalkError, TimeoutError):
    code = "generation_timeout"

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Operation timed out after {seconds:g} seconds")


class GenerationFailed(AwkTalkError):
    code = "generation_failed"

    def __init__(self, detail: str = "Unknown error"):
        self.detail = detail
        super().__init__(f"Generation failed: {detail}")
