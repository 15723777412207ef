"""Development client: stream float32 audio to a running server and print its events.

    python -m voicegate.client [--url ws://127.0.0.1:8000/ws] [--wav speech.wav]
"""
import argparse, asyncio, json, wave
import numpy as np
import websockets

from voicegate.stream.codec import encode_frame

SAMPLE_RATE = 16000
# 32ms chunks, so 15 silent chunks is roughly half a second
CHUNK_SAMPLES = 512


def synthetic_wave(sr: int = SAMPLE_RATE, bursts: int = 3) -> np.ndarray:
    """Noise bursts separated by one second of silence"""
    rng = np.random.default_rng(0)
    segments = []
    for _ in range(bursts):
        samples = int(0.8 * sr)
        noise = rng.normal(0, 0.18, samples).astype(np.float32)
        env = np.hanning(samples).astype(np.float32)
        segments.append(np.clip(noise * env, -1.0, 1.0))
        segments.append(np.zeros(sr, dtype=np.float32))
    return np.concatenate(segments)


def read_wav(path: str) -> np.ndarray:
    with wave.open(path, 'rb') as w:
        if w.getsampwidth() != 2 or w.getframerate() != SAMPLE_RATE or w.getnchannels() != 1:
            raise SystemExit('WAV must be mono 16kHz 16-bit PCM')
        pcm = w.readframes(w.getnframes())
    return np.frombuffer(pcm, dtype='<i2').astype(np.float32) / 32768.0


async def receive_events(ws, quiet_s: float, sending_done: asyncio.Event) -> list:
    """Print events until the stream is sent and no event arrives for quiet_s"""
    events = []
    while True:
        try:
            msg = await asyncio.wait_for(ws.recv(), timeout=quiet_s)
        except asyncio.TimeoutError:
            if sending_done.is_set():
                return events
            continue
        except websockets.ConnectionClosed:
            return events
        event = json.loads(msg)
        print('EVENT', event)
        events.append(event)


async def run(url: str, audio: np.ndarray, quiet_s: float) -> list:
    print('Connecting to', url)
    async with websockets.connect(url, max_size=2**23) as ws:
        sending_done = asyncio.Event()
        receiver = asyncio.create_task(receive_events(ws, quiet_s, sending_done))
        for i in range(0, len(audio), CHUNK_SAMPLES):
            await ws.send(encode_frame(audio[i:i + CHUNK_SAMPLES]))
            await asyncio.sleep(CHUNK_SAMPLES / SAMPLE_RATE)
        sending_done.set()
        return await receiver


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--url', default='ws://127.0.0.1:8000/ws')
    parser.add_argument('--wav', help='mono 16kHz 16-bit WAV to stream instead of the synthetic signal')
    parser.add_argument('--quiet', type=float, default=5.0, help='seconds without events before exiting')
    args = parser.parse_args()
    audio = read_wav(args.wav) if args.wav else synthetic_wave()
    asyncio.run(run(args.url, audio, args.quiet))


if __name__ == '__main__':
    main()
