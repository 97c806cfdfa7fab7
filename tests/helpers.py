"""
Test doubles shared by the audio tests.

- FakeStreamFactory: replaces sounddevice.OutputStream; tests pump the
  audio callback by hand
- FakeSynthesizer: replaces ToneSynthesizer; tones finish instantly or
  when the test calls complete()
"""
import asyncio

import numpy as np

from audio.voice_manager import ToneInterrupted
from core.models import Note


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def pump(self, frames=None):
        """Run one audio callback and return the block it wrote."""
        frames = frames or self.kwargs["blocksize"]
        outdata = np.zeros((frames, 2), dtype=np.float32)
        self.callback(outdata, frames, None, None)
        return outdata


class FakeStreamFactory:
    def __init__(self):
        self.streams = []

    def __call__(self, **kwargs):
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream

    @property
    def stream(self):
        return self.streams[-1]


class FakeSynthesizer:
    """Records every tone request."""

    def __init__(self, auto_complete=True, fail_at=None):
        """
        Args:
            auto_complete: Tones finish on the next loop iteration
            fail_at: Index of the call that raises RuntimeError
        """
        self.auto_complete = auto_complete
        self.fail_at = fail_at
        self.calls = []
        self.stop_calls = 0
        self.closed = False
        self._pending = None

    async def produce_tone(self, frequency, duration_ms, sample_source=None):
        self.calls.append((frequency, duration_ms, sample_source))
        if self.fail_at is not None and len(self.calls) - 1 == self.fail_at:
            raise RuntimeError("synthesizer exploded")

        if self.auto_complete:
            await asyncio.sleep(0)
            return

        self._pending = asyncio.get_running_loop().create_future()
        await self._pending

    def complete(self):
        """Let the tone in flight end naturally."""
        pending, self._pending = self._pending, None
        pending.set_result(None)

    def stop_all(self):
        self.stop_calls += 1
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.set_exception(ToneInterrupted())

    def close(self):
        self.closed = True


async def wait_until(predicate, timeout=2.0):
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached")
        await asyncio.sleep(0)


def make_notes(*pitches, duration=500):
    return [Note(pitch=p, duration=duration) for p in pitches]
