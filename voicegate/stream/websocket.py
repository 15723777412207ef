"""WebSocket session loop (C2)"""
from __future__ import annotations
import uuid
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect, status

from .asr import PartialScheduler, Transcriber
from .codec import ProtocolEvent, encode_event
from .config import StreamSettings, get_stream_config, vad_config_from_query
from .errors import SessionClosed, emit_error, log_event
from .session import Send, StreamSession
from .vad import VadState

# Raised by starlette/uvicorn when sending on a socket the client already left
TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


def make_sender(ws: WebSocket) -> Send:
    async def send(event: ProtocolEvent) -> None:
        # encoding errors are bugs and must not look like a disconnect
        payload = encode_event(event)
        try:
            await ws.send_text(payload)
        except TRANSPORT_ERRORS as e:
            raise SessionClosed(f"send failed: {e!r}") from e
    return send


async def run_session(ws: WebSocket, session: StreamSession) -> None:
    """Process inbound frames strictly in order until the client closes."""
    while True:
        data = await ws.receive()
        if data.get("type") == "websocket.disconnect":
            log_event("client_disconnect", session_id=session.id, code=data.get("code"))
            return
        if data.get("bytes") is not None:
            await session.handle_frame(data["bytes"])
        else:
            log_event("frame_ignored", session_id=session.id, kind="text" if data.get("text") is not None else data.get("type"))


async def handle(ws: WebSocket, settings: Optional[StreamSettings] = None, transcriber: Optional[Transcriber] = None):
    settings = settings or get_stream_config()
    await ws.accept()
    sid = str(uuid.uuid4())
    send = make_sender(ws)
    session: Optional[StreamSession] = None
    try:
        try:
            vad_cfg = vad_config_from_query(ws.query_params, settings)
        except ValueError as e:
            log_event("config_rejected", session_id=sid, error=str(e))
            await emit_error(send, "INVALID_CONFIG", str(e))
            await ws.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        session = StreamSession(
            id=sid,
            vad=VadState(config=vad_cfg),
            send=send,
            transcriber=transcriber,
            max_utterance_samples=settings.max_utterance_samples(),
            partials=PartialScheduler(interval_ms=settings.stream_partial_interval_ms),
        )
        log_event("session_open", session_id=sid, energy_threshold=vad_cfg.energy_threshold,
                  silence_threshold_chunks=vad_cfg.silence_threshold_chunks,
                  transcriber=type(transcriber).__name__ if transcriber else None)
        await run_session(ws, session)
    except (SessionClosed, WebSocketDisconnect) as e:
        log_event("transport_closed", session_id=sid, reason=repr(e))
    finally:
        log_event("session_close", session_id=sid,
                  frames=session.frames if session else 0,
                  utterances=session.utterances if session else 0)
