"""
voicegate - streaming voice activity front end

FastAPI app exposing the /ws audio streaming endpoint and a /health probe.
"""
from __future__ import annotations
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, WebSocket

from voicegate.stream.asr import Transcriber, WhisperTranscriber
from voicegate.stream.config import StreamSettings, get_stream_config
from voicegate.stream.websocket import handle as stream_ws_handle

settings = get_stream_config()

logging.basicConfig(
    level=settings.stream_log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="voicegate")


def get_settings() -> StreamSettings:
    return settings


@lru_cache(maxsize=1)
def _whisper() -> WhisperTranscriber:
    return WhisperTranscriber(settings.stream_model_whisper, language=settings.stream_language)


def get_transcriber() -> Optional[Transcriber]:
    """Transcriber shared by all sessions, or None when transcription is disabled"""
    if not settings.stream_transcribe:
        return None
    return _whisper()


@app.get("/health")
async def health(
    cfg: StreamSettings = Depends(get_settings),
    transcriber: Optional[Transcriber] = Depends(get_transcriber),
):
    return {
        "protocol": cfg.stream_protocol_version,
        "energy_threshold": cfg.stream_energy_threshold,
        "silence_threshold_chunks": cfg.stream_silence_threshold_chunks,
        "sample_rate": cfg.stream_sample_rate,
        "transcriber": transcriber is not None,
        "model_loaded": bool(getattr(transcriber, "loaded", transcriber is not None)),
    }


@app.websocket("/ws")
async def ws_primary(
    ws: WebSocket,
    cfg: StreamSettings = Depends(get_settings),
    transcriber: Optional[Transcriber] = Depends(get_transcriber),
):
    await stream_ws_handle(ws, settings=cfg, transcriber=transcriber)


def main():
    import uvicorn
    logger.info(f"Server listening on ws://{settings.stream_host}:{settings.stream_port}/ws")
    uvicorn.run(app, host=settings.stream_host, port=settings.stream_port)


if __name__ == "__main__":
    main()
