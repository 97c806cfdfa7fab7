"""
Shared audio output context.

One sounddevice output stream, opened lazily on the first tone and reused
until close(). Consumers receive the context by reference; there is no
module-level instance.
"""
import asyncio
from typing import Callable, Optional

import numpy as np

from audio.dsp import clip_audio, stereo_from_mono
from audio.voice_manager import Voice, VoiceManager


def _open_device_stream(**kwargs):
    import sounddevice as sd
    return sd.OutputStream(latency='low', **kwargs)


class AudioContext:
    """
    Output stream plus the voices mixed into it.

    Lifecycle:
    - acquire(): open and start the stream if it is not running
    - start_voice(): render-ready buffer -> sounding Voice
    - stop_all(): silence everything (idempotent)
    - close(): silence everything and release the device
    """

    def __init__(self, sample_rate: int = 44100, buffer_size: int = 512,
                 device: Optional[str] = None,
                 stream_factory: Optional[Callable] = None):
        """
        Args:
            sample_rate: Output sample rate (Hz)
            buffer_size: Frames per audio callback
            device: Output device name ("Default" or None = system default)
            stream_factory: Callable taking sounddevice.OutputStream keyword
                arguments and returning a stream (injected by tests)
        """
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.device = None if device in (None, "", "Default") else device
        self.stream_factory = stream_factory or _open_device_stream

        self.voice_manager = VoiceManager()
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def acquire(self):
        """Open the output stream on first use."""
        if self._stream is not None:
            return self._stream

        stream = self.stream_factory(
            samplerate=self.sample_rate,
            channels=2,
            blocksize=self.buffer_size,
            dtype='float32',
            device=self.device,
            callback=self._audio_callback,
        )
        stream.start()
        self._stream = stream
        print(f"[AUDIO] Output stream opened ({self.sample_rate} Hz, {self.buffer_size} frames)")
        return stream

    def _audio_callback(self, outdata, frames, time_info, status):
        """Called by sounddevice for each audio chunk."""
        if status:
            print(f"[AUDIO] {status}")
        outdata[:] = self.render_frame(frames)

    def render_frame(self, frames: int) -> np.ndarray:
        """
        Mix active voices into one stereo block.

        Returns:
            Stereo block (frames x 2, float32)
        """
        output = self.voice_manager.render_frame(frames)

        # Normalize to prevent clipping
        peak = np.max(np.abs(output)) if frames else 0.0
        if peak > 0.8:
            output = output / peak * 0.8

        return stereo_from_mono(clip_audio(output)).astype(np.float32)

    def start_voice(self, audio_buffer: np.ndarray) -> Voice:
        """
        Queue a rendered tone for output.

        Must be called from a running event loop; the voice's `done`
        future belongs to that loop.
        """
        self.acquire()
        voice = Voice(audio_buffer, asyncio.get_running_loop())
        self.voice_manager.add(voice)
        return voice

    def stop_all(self) -> int:
        """Interrupt every sounding voice."""
        return self.voice_manager.stop_all()

    def close(self):
        """Silence everything and release the output stream."""
        self.stop_all()
        if self._stream is None:
            return
        stream = self._stream
        self._stream = None
        stream.stop()
        stream.close()
        print("[AUDIO] Output stream closed")
