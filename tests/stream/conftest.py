"""
Pytest fixtures for streaming tests.
"""

import json
import pytest
import numpy as np

from voicegate.stream.codec import encode_frame


LOUD = np.full(160, 0.5, dtype=np.float32)   # RMS 0.5
QUIET = np.zeros(160, dtype=np.float32)      # RMS 0.0


def binary(samples):
    return {"type": "websocket.receive", "bytes": encode_frame(samples)}


def text_frame(payload):
    return {"type": "websocket.receive", "text": payload}


class FakeWebSocket:
    """Minimal stand-in for a starlette WebSocket driven by a frame script."""

    def __init__(self, frames, query_params=None, fail_send=False):
        self._inbound = list(frames)
        self.query_params = query_params or {}
        self.fail_send = fail_send
        self.accepted = False
        self.closed_code = None
        self.sent = []
        self.reads = 0

    async def accept(self):
        self.accepted = True

    async def receive(self):
        self.reads += 1
        if self._inbound:
            return self._inbound.pop(0)
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_text(self, payload):
        if self.fail_send:
            raise RuntimeError('Cannot call "send" once a close message has been sent.')
        self.sent.append(json.loads(payload))

    async def close(self, code=1000):
        self.closed_code = code


class CannedTranscriber:
    """Transcriber double returning fixed text and recording what it was given."""

    def __init__(self, text="hello world"):
        self.text = text
        self.calls = []

    def transcribe(self, audio):
        self.calls.append(audio.copy())
        return self.text


@pytest.fixture
def fake_ws():
    return FakeWebSocket


@pytest.fixture
def frames():
    """Helpers building scripted inbound messages"""
    class Frames:
        @staticmethod
        def loud(n=1):
            return [binary(LOUD) for _ in range(n)]

        @staticmethod
        def quiet(n=1):
            return [binary(QUIET) for _ in range(n)]

        @staticmethod
        def level(value, n=1, size=160):
            return [binary(np.full(size, value, dtype=np.float32)) for _ in range(n)]

        @staticmethod
        def raw(data):
            return [{"type": "websocket.receive", "bytes": data}]

        @staticmethod
        def text(payload='{"type":"ping"}'):
            return [text_frame(payload)]

        @staticmethod
        def disconnect():
            return [{"type": "websocket.disconnect", "code": 1000}]
    return Frames


@pytest.fixture
def canned_transcriber():
    return CannedTranscriber()
