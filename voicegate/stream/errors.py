"""Error taxonomy & structured logging helpers (C9)"""
from __future__ import annotations
import time, json, logging
from typing import Any, Awaitable, Callable

from .codec import ProtocolEvent, error_event

logger = logging.getLogger("voicegate.stream")

FATAL_CLOSE = {"INVALID_CONFIG"}
RECOVERABLE = {"ASR_FAIL","ASR_UNAVAILABLE"}

ALL_CODES = FATAL_CLOSE | RECOVERABLE


class SessionClosed(Exception):
    """The client went away; the session loop must stop."""


def log_event(event: str, **fields: Any) -> None:
    payload = {"ts": time.time(), "event": event, **fields}
    logger.info(json.dumps(payload, ensure_ascii=False, default=str))

async def emit_error(send: Callable[[ProtocolEvent], Awaitable[None]], code: str, message: str, recoverable: bool | None = None):
    if code not in ALL_CODES:
        raise ValueError(f"unknown error code {code!r}")
    if recoverable is None:
        recoverable = code in RECOVERABLE
    await send(error_event(code, message, recoverable))
    log_event("error", code=code, recoverable=recoverable, message=message)
