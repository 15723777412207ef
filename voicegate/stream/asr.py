"""ASR integration (C4) - transcriber capability, faster-whisper engine and partial scheduling"""
from __future__ import annotations
import time
import logging
import threading
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)


@runtime_checkable
class Transcriber(Protocol):
    """Anything that turns one utterance of float32 samples into text."""

    def transcribe(self, audio: np.ndarray) -> str: ...


def _canonical_model_name(name: str) -> str:
    # Normalize names like 'small-int8' -> 'small'
    if name.endswith('-int8'):
        return name.rsplit('-int8', 1)[0]
    return name


class WhisperTranscriber:
    """faster-whisper backed transcriber, loaded on first use.

    A failed load is remembered; later calls return "" instead of retrying.
    """

    def __init__(self, model_name: str = "small", language: Optional[str] = None,
                 device: str = "cpu", compute_type: str = "int8"):
        self.model_name = _canonical_model_name(model_name)
        self.language = language
        self.device = device
        self.compute_type = compute_type
        self._model: Any = None
        self._load_failed = False
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def load_model(self) -> Optional[Any]:
        if self._model is not None or self._load_failed:
            return self._model
        with self._lock:
            if self._model is None and not self._load_failed:
                try:
                    from faster_whisper import WhisperModel
                    self._model = WhisperModel(self.model_name, device=self.device, compute_type=self.compute_type)
                    logger.info(f"Whisper model '{self.model_name}' loaded on {self.device}")
                except Exception as e:
                    self._load_failed = True
                    logger.error(f"Failed to load whisper model '{self.model_name}': {e}")
        return self._model

    def transcribe(self, audio: np.ndarray) -> str:
        model = self.load_model()
        if model is None or audio.size == 0:
            return ""
        start = time.time()
        segments, _info = model.transcribe(
            np.ascontiguousarray(audio, dtype=np.float32),
            language=self.language,
            beam_size=1,
            temperature=0.0,
            vad_filter=False,
        )
        text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
        logger.debug(f"Transcribed {audio.size} samples in {(time.time() - start) * 1000.0:.1f}ms")
        return text


class PartialScheduler:
    """Rate-limits re-decoding of the growing utterance buffer."""

    def __init__(self, interval_ms: int):
        self.interval_ms = interval_ms
        self._last_run: float = 0.0
        self._last_text: str = ""

    def should_run(self) -> bool:
        if self.interval_ms <= 0:
            return False
        now = time.time()
        if (now - self._last_run) * 1000 >= self.interval_ms:
            self._last_run = now
            return True
        return False

    def update(self, new_text: str) -> Optional[str]:
        """Return the text when it differs from the last emitted partial."""
        if new_text and new_text != self._last_text:
            self._last_text = new_text
            return new_text
        return None

    def reset(self) -> None:
        self._last_run = 0.0
        self._last_text = ""
