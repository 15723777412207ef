"""Streaming configuration, per-session VAD negotiation and status phases (C1)"""
from __future__ import annotations
import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from pydantic_settings import BaseSettings

from .vad import VadConfig

logger = logging.getLogger(__name__)

class Phase(str, Enum):
    LISTENING = "listening"
    PROCESSING = "processing"


class StreamSettings(BaseSettings):
    """Process-wide settings; every session starts from these defaults."""

    # VAD defaults (per-session overrides allowed at connect time)
    stream_energy_threshold: float = 0.01
    stream_silence_threshold_chunks: int = 15

    # Out-of-band audio agreement with the client
    stream_sample_rate: int = 16000
    # Utterance audio kept for transcription is capped at this duration
    stream_max_utterance_ms: int = 30000
    # 0 disables partial transcripts
    stream_partial_interval_ms: int = 0

    # Transcription
    stream_transcribe: bool = True
    stream_model_whisper: str = "small"
    stream_language: Optional[str] = "ja"

    # Server
    stream_host: str = "127.0.0.1"
    stream_port: int = 8000
    stream_log_level: str = "INFO"
    stream_protocol_version: int = 1

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._validate_config()

    def _validate_config(self):
        """Raise ValueError listing every out-of-range setting"""
        errors = self.vad_config().problems()
        if self.stream_sample_rate <= 0:
            errors.append(f"stream_sample_rate must be > 0, got {self.stream_sample_rate}")
        if not (1 <= self.stream_max_utterance_ms <= 120000):
            errors.append(f"stream_max_utterance_ms must be between 1 and 120000, got {self.stream_max_utterance_ms}")
        if self.stream_partial_interval_ms != 0 and not (250 <= self.stream_partial_interval_ms <= 3000):
            errors.append(f"stream_partial_interval_ms must be 0 or between 250 and 3000, got {self.stream_partial_interval_ms}")
        if not (0 < self.stream_port < 65536):
            errors.append(f"stream_port must be between 1 and 65535, got {self.stream_port}")
        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

    def vad_config(self) -> VadConfig:
        return VadConfig(
            energy_threshold=self.stream_energy_threshold,
            silence_threshold_chunks=self.stream_silence_threshold_chunks,
        )

    def max_utterance_samples(self) -> int:
        return self.stream_sample_rate * self.stream_max_utterance_ms // 1000

    def as_dict(self) -> Dict[str, Any]:
        return {
            "energy_threshold": self.stream_energy_threshold,
            "silence_threshold_chunks": self.stream_silence_threshold_chunks,
            "sample_rate": self.stream_sample_rate,
            "max_utterance_ms": self.stream_max_utterance_ms,
            "partial_interval_ms": self.stream_partial_interval_ms,
            "transcribe": self.stream_transcribe,
            "model_whisper": self.stream_model_whisper,
            "language": self.stream_language,
        }


def load_stream_config(**overrides: Any) -> StreamSettings:
    return StreamSettings(**overrides)


@lru_cache(maxsize=1)
def get_stream_config() -> StreamSettings:
    """Process-wide settings, read from the environment once"""
    return load_stream_config()


def vad_config_from_query(params: Mapping[str, str], settings: StreamSettings) -> VadConfig:
    """Build the session VadConfig from connect-time query parameters.

    Missing parameters fall back to the settings defaults. Raises ValueError
    when a value cannot be parsed or is out of range.
    """
    defaults = settings.vad_config()
    try:
        energy = float(params["energy_threshold"]) if "energy_threshold" in params else defaults.energy_threshold
        chunks = int(params["silence_threshold_chunks"]) if "silence_threshold_chunks" in params else defaults.silence_threshold_chunks
    except ValueError as e:
        raise ValueError(f"Invalid VAD configuration: {e}") from e
    cfg = VadConfig(energy_threshold=energy, silence_threshold_chunks=chunks)
    cfg.validate()
    return cfg
