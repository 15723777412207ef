"""Wire codec (C2): float32 audio frames in, JSON protocol messages out"""
from __future__ import annotations
from typing import Literal, Union

import numpy as np
from pydantic import BaseModel

from .config import Phase

BYTES_PER_SAMPLE = 4
SAMPLE_DTYPE = np.dtype("<f4")


class StatusMessage(BaseModel):
    """Utterance lifecycle notification"""
    type: Literal["status"] = "status"
    text: Phase


class PartialTranscriptMessage(BaseModel):
    type: Literal["partial"] = "partial"
    text: str


class FinalTranscriptMessage(BaseModel):
    type: Literal["final"] = "final"
    text: str


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str
    recoverable: bool


ProtocolEvent = Union[StatusMessage, PartialTranscriptMessage, FinalTranscriptMessage, ErrorMessage]


def decode_frame(data: bytes) -> np.ndarray:
    """Interpret a binary frame as little-endian float32 samples.

    Trailing bytes that do not fill a whole sample are dropped.
    """
    count = len(data) // BYTES_PER_SAMPLE
    return np.frombuffer(data, dtype=SAMPLE_DTYPE, count=count)


def encode_frame(samples: np.ndarray) -> bytes:
    return np.asarray(samples, dtype=SAMPLE_DTYPE).tobytes()


def encode_event(event: ProtocolEvent) -> str:
    return event.model_dump_json()


def status_event(phase: Phase) -> StatusMessage:
    return StatusMessage(text=phase)


def partial_event(text: str) -> PartialTranscriptMessage:
    return PartialTranscriptMessage(text=text)


def final_event(text: str) -> FinalTranscriptMessage:
    return FinalTranscriptMessage(text=text)


def error_event(code: str, message: str, recoverable: bool) -> ErrorMessage:
    return ErrorMessage(code=code, message=message, recoverable=recoverable)
