import asyncio
import threading
import time

import numpy as np
import pytest
import uvicorn

from voicegate import client
from voicegate.app import app, get_transcriber


@pytest.fixture
def live_url():
    app.dependency_overrides[get_transcriber] = lambda: None
    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=0, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    deadline = time.time() + 10
    while not server.started:
        assert time.time() < deadline, "server did not start"
        time.sleep(0.02)
    port = server.servers[0].sockets[0].getsockname()[1]
    yield f"ws://127.0.0.1:{port}/ws"
    server.should_exit = True
    thread.join(timeout=5)
    app.dependency_overrides.clear()


def test_client_prints_events_until_quiet(live_url, capsys):
    chunk = client.CHUNK_SAMPLES
    audio = np.concatenate([
        np.full(3 * chunk, 0.3, dtype=np.float32),
        np.zeros(20 * chunk, dtype=np.float32),
    ])
    events = asyncio.run(client.run(live_url, audio, quiet_s=0.5))
    assert events == [
        {"type": "status", "text": "listening"},
        {"type": "status", "text": "processing"},
    ]
    out = capsys.readouterr().out
    assert out.count("EVENT") == 2


def test_synthetic_wave_has_bursts_and_silence():
    wave = client.synthetic_wave(bursts=2)
    assert wave.dtype == np.float32
    assert wave.size == 2 * (int(0.8 * client.SAMPLE_RATE) + client.SAMPLE_RATE)
    assert np.abs(wave).max() <= 1.0
    assert not wave[-client.SAMPLE_RATE:].any()
