import pytest

from awktalk.config import AnalysisConfig, GenerationConfig, SpeechConfig, UnifiedConfig


def test_defaults_are_consistent():
    config = UnifiedConfig(speech=SpeechConfig(key="test-key"))

    assert config.generation.min_interval_seconds < config.analysis.timeout_seconds
    assert config.analysis.window_size == 10


def test_rate_limit_interval_must_fit_inside_timeout():
    with pytest.raises(ValueError):
        UnifiedConfig(
            analysis=AnalysisConfig(timeout_seconds=10),
            generation=GenerationConfig(min_interval_seconds=10),
        )


def test_diarization_bounds_are_ordered():
    with pytest.raises(ValueError):
        UnifiedConfig(speech=SpeechConfig(diarization_min_speakers=3, diarization_max_speakers=2))
