"""
DSP utilities and building blocks.

Automation lanes, resampling and small buffer helpers.
"""
from math import gcd
from typing import List, Tuple

import numpy as np
from scipy.signal import resample_poly


class ParamTimeline:
    """
    Automation lane on a virtual clock.

    Records timed parameter changes (instant sets and linear ramps) and
    renders them to one value per sample. Events are applied in the order
    they were scheduled; an event timed before its predecessor is moved up
    to the predecessor's time, so very short notes still get a valid curve.

    Example:
        >>> env = ParamTimeline(0.0)
        >>> env.linear_ramp_to_value_at_time(1.0, 0.5)
        >>> env.render(4, 4)  # 4 samples at 4 Hz: t = 0, .25, .5, .75
        array([0. , 0.5, 1. , 1. ])
    """

    SET = "set"
    RAMP = "ramp"

    def __init__(self, initial_value: float = 0.0):
        """
        Args:
            initial_value: Value before the first event
        """
        self.initial_value = initial_value
        self._events: List[Tuple[str, float, float]] = []

    def set_value_at_time(self, value: float, time: float):
        """Jump to value at time (seconds)."""
        self._events.append((self.SET, time, value))

    def linear_ramp_to_value_at_time(self, value: float, time: float):
        """Ramp linearly from the previous event to value, arriving at time."""
        self._events.append((self.RAMP, time, value))

    def clear(self):
        """Drop all scheduled events."""
        self._events.clear()

    def render(self, num_samples: int, sample_rate: int) -> np.ndarray:
        """
        Render the lane.

        Args:
            num_samples: Number of samples to generate
            sample_rate: Sample rate in Hz

        Returns:
            Per-sample parameter values (float64)
        """
        t = np.arange(num_samples) / sample_rate
        output = np.full(num_samples, self.initial_value, dtype=np.float64)

        value = self.initial_value
        time = 0.0
        for kind, event_time, target in self._events:
            event_time = max(event_time, time)
            segment = (t >= time) & (t < event_time)

            if kind == self.RAMP and event_time > time:
                progress = (t[segment] - time) / (event_time - time)
                output[segment] = value + (target - value) * progress
            else:
                output[segment] = value

            value = target
            time = event_time

        output[t >= time] = value
        return output


def resample_to_rate(buffer: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """
    Resample audio with a polyphase filter.

    Args:
        buffer: Mono audio buffer
        source_rate: Rate the buffer was recorded at
        target_rate: Rate of the output stream

    Returns:
        Resampled audio (float32)
    """
    if source_rate == target_rate or len(buffer) == 0:
        return buffer.astype(np.float32)
    divisor = gcd(int(source_rate), int(target_rate))
    up = int(target_rate) // divisor
    down = int(source_rate) // divisor
    return resample_poly(buffer, up, down).astype(np.float32)


def mono_from_multichannel(buffer: np.ndarray) -> np.ndarray:
    """
    Average channels down to mono.

    Args:
        buffer: Audio buffer (frames,) or (frames, channels)

    Returns:
        Mono audio buffer (1D array)
    """
    if buffer.ndim == 1:
        return buffer
    return buffer.mean(axis=1)


def stereo_from_mono(buffer_mono: np.ndarray) -> np.ndarray:
    """
    Convert mono buffer to stereo by duplicating channels.

    Args:
        buffer_mono: Mono audio buffer (1D array)

    Returns:
        Stereo audio buffer (frames x 2)
    """
    return np.stack([buffer_mono, buffer_mono], axis=-1)


def clip_audio(buffer: np.ndarray, threshold: float = 1.0) -> np.ndarray:
    """
    Hard clip audio to prevent overflow.

    Args:
        buffer: Audio buffer
        threshold: Clipping threshold

    Returns:
        Clipped audio
    """
    return np.clip(buffer, -threshold, threshold)
