"""
Ocarina tone synthesizer plugin.

Warm, flute-like voice: a sine fundamental with two soft harmonics, a
delayed vibrato on the fundamental and an attack/release envelope.
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


class OcarinaSynth(AudioProcessor):
    """
    Additive ocarina voice.

    Features:
    - Fundamental + 2nd/3rd harmonic partials
    - Vibrato that fades in after the attack and out before the end
    - Linear attack, sustain, linear release scaled to the note length
    """

    def get_metadata(self) -> PluginMetadata:
        """Define plugin identity and parameters."""
        return PluginMetadata(
            id="OCARINA",
            name="Ocarina",
            category=PluginCategory.SOURCE,
            version="1.0.0",
            description="Additive ocarina tone with vibrato",
            parameters=[
                ParameterSpec(
                    name="frequency",
                    type=ParameterType.FLOAT,
                    default=523.25,
                    min_val=20.0,
                    max_val=4000.0,
                    description="Fundamental frequency",
                    unit="Hz",
                ),
                ParameterSpec(
                    name="duration_ms",
                    type=ParameterType.FLOAT,
                    default=500.0,
                    min_val=0.0,
                    max_val=60000.0,
                    display_name="Duration",
                    description="Nominal tone length",
                    unit="ms",
                ),
                # Envelope
                ParameterSpec(
                    name="peak_gain",
                    type=ParameterType.FLOAT,
                    default=0.35,
                    min_val=0.0,
                    max_val=1.0,
                    description="Sustain level of the amplitude envelope",
                ),
                ParameterSpec(
                    name="attack",
                    type=ParameterType.FLOAT,
                    default=0.04,
                    min_val=0.0,
                    max_val=1.0,
                    unit="s",
                ),
                ParameterSpec(
                    name="release",
                    type=ParameterType.FLOAT,
                    default=0.08,
                    min_val=0.0,
                    max_val=1.0,
                    unit="s",
                ),
                # Partials
                ParameterSpec(
                    name="harmonic2_gain",
                    type=ParameterType.FLOAT,
                    default=0.15,
                    min_val=0.0,
                    max_val=1.0,
                    display_name="2nd Harmonic",
                ),
                ParameterSpec(
                    name="harmonic3_gain",
                    type=ParameterType.FLOAT,
                    default=0.05,
                    min_val=0.0,
                    max_val=1.0,
                    display_name="3rd Harmonic",
                ),
                # Vibrato
                ParameterSpec(
                    name="vibrato_rate",
                    type=ParameterType.FLOAT,
                    default=5.5,
                    min_val=0.0,
                    max_val=20.0,
                    unit="Hz",
                ),
                ParameterSpec(
                    name="vibrato_depth",
                    type=ParameterType.FLOAT,
                    default=0.008,
                    min_val=0.0,
                    max_val=0.1,
                    description="Frequency deviation as a fraction of the fundamental",
                ),
                ParameterSpec(
                    name="vibrato_fade_in",
                    type=ParameterType.FLOAT,
                    default=0.15,
                    min_val=0.0,
                    max_val=1.0,
                    unit="s",
                ),
                ParameterSpec(
                    name="vibrato_fade_out",
                    type=ParameterType.FLOAT,
                    default=0.05,
                    min_val=0.0,
                    max_val=1.0,
                    unit="s",
                ),
                ParameterSpec(
                    name="stop_tail",
                    type=ParameterType.FLOAT,
                    default=0.01,
                    min_val=0.0,
                    max_val=1.0,
                    description="Silence kept after the nominal end",
                    unit="s",
                ),
            ]
        )

    def amplitude_envelope(self, params: Dict[str, Any]) -> ParamTimeline:
        """Master gain: 0 -> peak over attack, hold, peak -> 0 over release."""
        duration = params["duration_ms"] / 1000.0
        peak = params["peak_gain"]

        envelope = ParamTimeline(0.0)
        envelope.set_value_at_time(0.0, 0.0)
        envelope.linear_ramp_to_value_at_time(peak, params["attack"])
        envelope.set_value_at_time(peak, duration - params["release"])
        envelope.linear_ramp_to_value_at_time(0.0, duration)
        return envelope

    def vibrato_envelope(self, params: Dict[str, Any]) -> ParamTimeline:
        """Vibrato depth in Hz, faded in and out."""
        duration = params["duration_ms"] / 1000.0
        depth_hz = params["frequency"] * params["vibrato_depth"]

        envelope = ParamTimeline(0.0)
        envelope.set_value_at_time(0.0, 0.0)
        envelope.linear_ramp_to_value_at_time(depth_hz, params["vibrato_fade_in"])
        envelope.set_value_at_time(depth_hz, duration - params["vibrato_fade_out"])
        envelope.linear_ramp_to_value_at_time(0.0, duration)
        return envelope

    def process(self,
                input_buffer: Optional[np.ndarray],
                params: Dict[str, Any],
                note: Optional[Note],
                context: ProcessContext) -> np.ndarray:
        """
        Generate ocarina audio.

        Args:
            input_buffer: Not used (source plugin)
            params: Tone parameters (frequency, duration_ms, ...)
            note: Optional score note
            context: Audio processing context

        Returns:
            Generated audio, duration_ms + stop_tail long
        """
        params = self.get_metadata().resolve(params, note)

        sample_rate = context.sample_rate
        frequency = params["frequency"]
        duration = max(0.0, params["duration_ms"]) / 1000.0
        params["duration_ms"] = duration * 1000.0

        num_samples = int(round((duration + params["stop_tail"]) * sample_rate))
        if num_samples <= 0:
            return np.zeros(0, dtype=np.float32)

        t = np.arange(num_samples) / sample_rate

        # Fundamental, frequency-modulated by the vibrato
        vibrato = self.vibrato_envelope(params).render(num_samples, sample_rate)
        vibrato *= np.sin(2 * np.pi * params["vibrato_rate"] * t)
        phase = 2 * np.pi * np.cumsum(frequency + vibrato) / sample_rate
        output = np.sin(phase)

        # Softer harmonics
        output += params["harmonic2_gain"] * np.sin(2 * np.pi * 2 * frequency * t)
        output += params["harmonic3_gain"] * np.sin(2 * np.pi * 3 * frequency * t)

        output *= self.amplitude_envelope(params).render(num_samples, sample_rate)
        return output.astype(np.float32)
