"""Energy VAD state machine (C3)"""
from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from typing import List

import numpy as np

DEFAULT_ENERGY_THRESHOLD = 0.01
# ~0.5s of trailing silence at the reference chunk cadence
DEFAULT_SILENCE_THRESHOLD_CHUNKS = 15


class VadStatus(str, Enum):
    SILENCE = "silence"
    SPEECH_STARTED = "speech_started"
    SPEAKING = "speaking"
    # short pause inside an utterance, not an end of speech
    SILENCE_DURING_SPEECH = "silence_during_speech"
    SPEECH_ENDED = "speech_ended"


@dataclass(frozen=True)
class VadConfig:
    energy_threshold: float = DEFAULT_ENERGY_THRESHOLD
    silence_threshold_chunks: int = DEFAULT_SILENCE_THRESHOLD_CHUNKS

    def problems(self) -> List[str]:
        errs = []
        if not (0.0 < self.energy_threshold <= 1.0):
            errs.append(f"energy_threshold must be in (0, 1] (got {self.energy_threshold})")
        if isinstance(self.silence_threshold_chunks, bool) or not isinstance(self.silence_threshold_chunks, int):
            errs.append(f"silence_threshold_chunks must be an integer (got {self.silence_threshold_chunks!r})")
        elif self.silence_threshold_chunks < 1:
            errs.append(f"silence_threshold_chunks must be >= 1 (got {self.silence_threshold_chunks})")
        return errs

    def validate(self) -> None:
        errs = self.problems()
        if errs:
            raise ValueError("Invalid VAD configuration:\n" + "\n".join(f"  - {e}" for e in errs))


def rms_energy(samples: np.ndarray) -> float:
    """Root-mean-square amplitude of a batch; 0.0 for an empty batch."""
    if samples.size == 0:
        return 0.0
    return math.sqrt(float(np.mean(np.square(samples, dtype=np.float64))))


@dataclass
class VadState:
    """Per-session speech/silence segmentation.

    Onset is immediate: the first batch whose energy is strictly above the
    threshold starts an utterance. The end is debounced: the utterance ends
    on the (silence_threshold_chunks + 1)-th consecutive batch at or below
    the threshold. Feed batches in arrival order, one call per batch.
    """
    config: VadConfig
    is_speaking: bool = False
    silence_counter: int = 0

    def process(self, samples: np.ndarray) -> VadStatus:
        # compared at sample precision so a batch exactly at the threshold is silence
        energy = np.float32(rms_energy(samples))
        if energy > np.float32(self.config.energy_threshold):
            self.silence_counter = 0
            if not self.is_speaking:
                self.is_speaking = True
                return VadStatus.SPEECH_STARTED
            return VadStatus.SPEAKING

        if not self.is_speaking:
            return VadStatus.SILENCE

        self.silence_counter += 1
        if self.silence_counter > self.config.silence_threshold_chunks:
            self.is_speaking = False
            self.silence_counter = 0
            return VadStatus.SPEECH_ENDED
        return VadStatus.SILENCE_DURING_SPEECH
