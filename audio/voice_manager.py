"""
Voice management for tone playback.

A Voice is one pre-rendered tone being streamed to the output device:
1. The tone is rendered up front into a mono buffer
2. The audio callback pulls fixed-size chunks and tracks the play position
3. When the buffer is exhausted the voice resolves its completion future
   on the event loop that requested it
4. stop_all() interrupts every voice; its future fails with ToneInterrupted
"""
import asyncio
import threading
from typing import List, Optional

import numpy as np


class ToneInterrupted(Exception):
    """Raised to a tone's awaiter when the tone was silenced before its end."""


class Voice:
    """Manages state for a single playing tone."""

    def __init__(self, audio_buffer: np.ndarray,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            audio_buffer: Rendered tone (mono float32)
            loop: Event loop owning the completion future (None = no future)
        """
        self.audio_buffer = np.asarray(audio_buffer, dtype=np.float32)
        self.loop = loop
        self.done: Optional[asyncio.Future] = loop.create_future() if loop else None

        # State tracking
        self.position = 0  # Current playback position in samples
        self.is_finished = False

    def get_next_chunk(self, frames: int) -> np.ndarray:
        """
        Get next audio chunk for output.

        Args:
            frames: Number of frames to retrieve

        Returns:
            Mono chunk of exactly `frames` samples (zero padded)
        """
        end_pos = min(self.position + frames, len(self.audio_buffer))
        chunk = self.audio_buffer[self.position:end_pos]
        self.position = end_pos

        if self.position >= len(self.audio_buffer):
            self.finish()

        if len(chunk) < frames:
            chunk = np.concatenate([chunk, np.zeros(frames - len(chunk), dtype=np.float32)])

        return chunk

    def finish(self):
        """Mark the tone as played to its natural end."""
        if self.is_finished:
            return
        self.is_finished = True
        self._resolve(None)

    def interrupt(self):
        """Silence the tone; awaiters get ToneInterrupted."""
        if self.is_finished:
            return
        self.is_finished = True
        self._resolve(ToneInterrupted())

    def _resolve(self, error: Optional[Exception]):
        # Called from the audio thread as well as the loop thread
        if self.done is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self._set_outcome, error)

    def _set_outcome(self, error: Optional[Exception]):
        if self.done.done():
            return
        if error is None:
            self.done.set_result(None)
        else:
            self.done.set_exception(error)


class VoiceManager:
    """Manages the collection of voices currently sounding."""

    def __init__(self):
        self.active_voices: List[Voice] = []
        self._lock = threading.Lock()

    def add(self, voice: Voice):
        """Start streaming a voice. Empty voices complete immediately."""
        if len(voice.audio_buffer) == 0:
            voice.finish()
            return
        with self._lock:
            self.active_voices.append(voice)

    def render_frame(self, frames: int) -> np.ndarray:
        """
        Mix all active voices for the current frame.

        Args:
            frames: Number of frames to render

        Returns:
            Mono mix (float32)
        """
        output = np.zeros(frames, dtype=np.float32)

        with self._lock:
            for voice in self.active_voices:
                output += voice.get_next_chunk(frames)

            # Clean up finished voices
            self.active_voices = [v for v in self.active_voices if not v.is_finished]

        return output

    def stop_all(self) -> int:
        """
        Interrupt every active voice. Safe to call with nothing playing.

        Returns:
            Number of voices interrupted
        """
        with self._lock:
            voices = self.active_voices
            self.active_voices = []

        for voice in voices:
            voice.interrupt()
        return len(voices)

    def has_active_voices(self) -> bool:
        with self._lock:
            return bool(self.active_voices)
