"""
Tone synthesizer: one audio event per request.

produce_tone() renders either the ocarina voice or a user sample, hands the
buffer to the shared AudioContext and returns once the tone has played to
its natural end. stop_all() silences every in-flight tone; their awaiters
receive ToneInterrupted instead of a normal return.
"""
import asyncio
import io
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import requests
import soundfile as sf

from audio.context import AudioContext
from audio.dsp import mono_from_multichannel, resample_to_rate
from audio.voice_manager import ToneInterrupted
from core.constants import DEFAULT_FREQUENCY, pitch_to_frequency
from plugins.base import PluginCategory, ProcessContext
from plugins.registry import PluginRegistry

SampleSource = Union[bytes, str, Path]

__all__ = ["ToneSynthesizer", "ToneInterrupted", "SampleSource"]


class ToneSynthesizer:
    """Renders tones through tone plugins and plays them on an AudioContext."""

    def __init__(self, context: AudioContext,
                 registry: Optional[PluginRegistry] = None,
                 source_id: str = "OCARINA",
                 player_id: str = "SAMPLE_PLAYER",
                 fetch_timeout: float = 10.0):
        """
        Args:
            context: Shared output context
            registry: Plugin registry (a private one if omitted)
            source_id: Plugin used for synthesized tones
            player_id: Plugin used to shape samples
            fetch_timeout: Seconds allowed for downloading a sample URL
        """
        self.context = context
        self.registry = registry or PluginRegistry()
        self.source = self.registry.create_instance(source_id, PluginCategory.SOURCE)
        self.player = self.registry.create_instance(player_id, PluginCategory.PLAYER)
        self.fetch_timeout = fetch_timeout

        # Decoded samples keyed by URL/path (bytes are decoded every time)
        self._sample_cache: Dict[str, np.ndarray] = {}

        # Bumped by stop_all() so tones still decoding know they were silenced
        self._generation = 0

    @property
    def process_context(self) -> ProcessContext:
        return ProcessContext(sample_rate=self.context.sample_rate)

    # Rendering

    def render_tone(self, frequency: float, duration_ms: float) -> np.ndarray:
        """Render the synthesized voice."""
        params = {"frequency": float(frequency), "duration_ms": float(duration_ms)}
        return self.source.process(None, params, None, self.process_context)

    def render_sample(self, sample: np.ndarray, duration_ms: float) -> np.ndarray:
        """Shape an already decoded sample."""
        params = {"duration_ms": float(duration_ms)}
        return self.player.process(sample, params, None, self.process_context)

    def decode_sample(self, source: SampleSource) -> np.ndarray:
        """
        Decode a sample into mono float32 at the context rate.

        Args:
            source: Raw audio bytes, an http(s) URL or a file path

        Raises:
            requests.RequestException: If a URL cannot be fetched
            RuntimeError: If soundfile cannot decode the data
            OSError: If a file cannot be read
        """
        cache_key = None if isinstance(source, (bytes, bytearray)) else str(source)
        if cache_key is not None and cache_key in self._sample_cache:
            return self._sample_cache[cache_key]

        if isinstance(source, (bytes, bytearray)):
            data, sample_rate = sf.read(io.BytesIO(bytes(source)), dtype='float32')
        elif str(source).startswith(("http://", "https://")):
            response = requests.get(str(source), timeout=self.fetch_timeout)
            response.raise_for_status()
            data, sample_rate = sf.read(io.BytesIO(response.content), dtype='float32')
        else:
            data, sample_rate = sf.read(str(source), dtype='float32')

        audio = resample_to_rate(mono_from_multichannel(data), sample_rate, self.context.sample_rate)

        if cache_key is not None:
            self._sample_cache[cache_key] = audio
        return audio

    def render_from_sample(self, source: SampleSource, duration_ms: float) -> np.ndarray:
        """Sample path with the synthesized fallback on decode failure."""
        try:
            return self.render_sample(self.decode_sample(source), duration_ms)
        except (requests.RequestException, RuntimeError, OSError, ValueError, TypeError) as e:
            print(f"[SAMPLE] Could not decode sample, using synthesized tone: {e}")
            return self.render_tone(DEFAULT_FREQUENCY, duration_ms)

    # Playback

    async def produce_tone(self, frequency: float, duration_ms: float,
                           sample_source: Optional[SampleSource] = None):
        """
        Play one tone and wait until it has finished.

        Args:
            frequency: Fundamental in Hz (ignored for samples)
            duration_ms: Nominal length in milliseconds (>= 0)
            sample_source: Optional sample to play instead of synthesizing

        Raises:
            ToneInterrupted: If stop_all() silenced the tone
        """
        generation = self._generation
        duration_ms = max(0.0, float(duration_ms))

        if sample_source is not None:
            audio = await asyncio.to_thread(self.render_from_sample, sample_source, duration_ms)
        else:
            audio = self.render_tone(frequency, duration_ms)

        if generation != self._generation:
            raise ToneInterrupted()

        voice = self.context.start_voice(audio)
        await voice.done

    async def play_pitch(self, pitch: str, duration_ms: float = 500,
                         sample_source: Optional[SampleSource] = None) -> bool:
        """
        Live keyboard: play a single pitch outside any playback session.

        Returns:
            True if the tone finished, False if it was silenced
        """
        try:
            await self.produce_tone(pitch_to_frequency(pitch), duration_ms, sample_source)
        except ToneInterrupted:
            return False
        return True

    def stop_all(self) -> int:
        """Silence every in-flight tone. Safe to call at any time."""
        self._generation += 1
        return self.context.stop_all()

    def close(self):
        """Release the output device."""
        self._generation += 1
        self.context.close()
