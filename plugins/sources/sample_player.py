"""
Sample playback plugin.

Shapes a decoded user recording into a tone: linear fade from the start
gain to silence over the requested duration, cut a short tail later.
"""
import numpy as np
from typing import Dict, Any, Optional

from audio.dsp import ParamTimeline
from plugins.base import (
    AudioProcessor,
    PluginMetadata,
    PluginCategory,
    ParameterSpec,
    ParameterType,
    ProcessContext,
)
from core.models import Note


class SamplePlayer(AudioProcessor):
    """Plays a user sample with a release ramp across the note."""

    def get_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id="SAMPLE_PLAYER",
            name="Sample Player",
            category=PluginCategory.PLAYER,
            version="1.0.0",
            description="Recorded sample with a linear release",
            parameters=[
                ParameterSpec(
                    name="duration_ms",
                    type=ParameterType.FLOAT,
                    default=500.0,
                    min_val=0.0,
                    max_val=60000.0,
                    display_name="Duration",
                    unit="ms",
                ),
                ParameterSpec(
                    name="start_gain",
                    type=ParameterType.FLOAT,
                    default=0.8,
                    min_val=0.0,
                    max_val=1.0,
                ),
                ParameterSpec(
                    name="stop_tail",
                    type=ParameterType.FLOAT,
                    default=0.05,
                    min_val=0.0,
                    max_val=1.0,
                    description="Playback continues this long past the nominal end",
                    unit="s",
                ),
            ]
        )

    def process(self,
                input_buffer: Optional[np.ndarray],
                params: Dict[str, Any],
                note: Optional[Note],
                context: ProcessContext) -> np.ndarray:
        """
        Args:
            input_buffer: Decoded sample (mono, already at context rate)
            params: duration_ms, start_gain, stop_tail
            note: Optional score note
            context: Audio processing context

        Returns:
            Shaped sample, no longer than the source recording
        """
        if input_buffer is None or len(input_buffer) == 0:
            return np.zeros(0, dtype=np.float32)

        params = self.get_metadata().resolve(params, note)
        sample_rate = context.sample_rate
        duration = max(0.0, params["duration_ms"]) / 1000.0

        stop_at = int(round((duration + params["stop_tail"]) * sample_rate))
        num_samples = min(len(input_buffer), stop_at)
        if num_samples <= 0:
            return np.zeros(0, dtype=np.float32)

        gain = ParamTimeline(params["start_gain"])
        gain.set_value_at_time(params["start_gain"], 0.0)
        gain.linear_ramp_to_value_at_time(0.0, duration)

        output = input_buffer[:num_samples] * gain.render(num_samples, sample_rate)
        return output.astype(np.float32)
