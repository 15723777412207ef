"""Per-connection streaming session (C2)"""
from __future__ import annotations
import time
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import numpy as np

from .asr import PartialScheduler, Transcriber
from .codec import ProtocolEvent, decode_frame, final_event, partial_event, status_event
from .config import Phase
from .errors import emit_error, log_event
from .vad import VadState, VadStatus

Send = Callable[[ProtocolEvent], Awaitable[None]]


@dataclass
class StreamSession:
    """Decode -> classify -> react for one connection.

    Owns the connection's VadState exclusively. Utterance audio is only
    buffered when a transcriber is attached.
    """
    id: str
    vad: VadState
    send: Send
    transcriber: Optional[Transcriber] = None
    max_utterance_samples: int = 16000 * 30
    partials: PartialScheduler = field(default_factory=lambda: PartialScheduler(interval_ms=0))
    created_at: float = field(default_factory=time.time)
    frames: int = 0
    utterances: int = 0
    utterance: List[np.ndarray] = field(default_factory=list)
    utterance_samples: int = 0
    truncated: bool = False
    asr_unavailable_reported: bool = False

    async def handle_frame(self, data: bytes) -> VadStatus:
        samples = decode_frame(data)
        self.frames += 1
        status = self.vad.process(samples)
        await self.react(status, samples)
        return status

    async def react(self, status: VadStatus, samples: np.ndarray) -> None:
        if status is VadStatus.SPEECH_STARTED:
            log_event("speech_started", session_id=self.id, frame=self.frames)
            self.add_audio(samples)
            await self.send(status_event(Phase.LISTENING))
        elif status is VadStatus.SPEAKING or status is VadStatus.SILENCE_DURING_SPEECH:
            self.add_audio(samples)
            await self._maybe_partial()
        elif status is VadStatus.SPEECH_ENDED:
            self.add_audio(samples)
            self.utterances += 1
            log_event("speech_ended", session_id=self.id, frame=self.frames,
                      duration_samples=self.utterance_samples)
            await self.send(status_event(Phase.PROCESSING))
            await self._finish_utterance()
        elif status is VadStatus.SILENCE:
            pass
        else:
            raise AssertionError(f"unhandled VAD status: {status!r}")

    def add_audio(self, samples: np.ndarray) -> None:
        if self.transcriber is None or samples.size == 0:
            return
        room = self.max_utterance_samples - self.utterance_samples
        if samples.size > room:
            if not self.truncated:
                self.truncated = True
                log_event("max_duration", session_id=self.id, max_samples=self.max_utterance_samples)
            samples = samples[:max(room, 0)]
            if samples.size == 0:
                return
        self.utterance.append(samples)
        self.utterance_samples += samples.size

    def utterance_audio(self) -> np.ndarray:
        if not self.utterance:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self.utterance)

    def clear_utterance(self) -> None:
        self.utterance.clear()
        self.utterance_samples = 0
        self.truncated = False
        self.partials.reset()

    async def _transcribe(self, audio: np.ndarray) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self.transcriber.transcribe, audio)
        except Exception as e:
            log_event("asr_fail", session_id=self.id, error=str(e))
            await emit_error(self.send, "ASR_FAIL", "ASR decode error")
            return None
        await self._report_unavailable()
        return text

    async def _report_unavailable(self) -> None:
        # transcribers without a model report nothing
        if self.asr_unavailable_reported or getattr(self.transcriber, "loaded", True):
            return
        self.asr_unavailable_reported = True
        log_event("asr_unavailable", session_id=self.id)
        await emit_error(self.send, "ASR_UNAVAILABLE", "ASR model unavailable - continuing without transcripts")

    async def _maybe_partial(self) -> None:
        if self.transcriber is None or not self.utterance or not self.partials.should_run():
            return
        text = await self._transcribe(self.utterance_audio())
        text = self.partials.update(text or "")
        if text:
            await self.send(partial_event(text))

    async def _finish_utterance(self) -> None:
        if self.transcriber is None:
            return
        audio = self.utterance_audio()
        self.clear_utterance()
        text = await self._transcribe(audio)
        if text:
            log_event("final_transcript", session_id=self.id, length=len(text))
            await self.send(final_event(text))
