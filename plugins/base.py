"""
Tone plugin interface.

A plugin turns one tone request (frequency, duration and its own shaping
parameters) into a mono float32 buffer. Plugins never touch the output
device; the synthesizer hands their buffers to the voice manager.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional
import numpy as np

from core.constants import pitch_to_frequency


class ParameterType(Enum):
    FLOAT = "float"
    INT = "int"


class PluginCategory(Enum):
    """What a plugin needs as input."""
    SOURCE = "source"  # renders from nothing
    PLAYER = "player"  # shapes a decoded sample


@dataclass
class ParameterSpec:
    """
    One numeric tone parameter.

    Attributes:
        name: Key in the params dict (snake_case)
        type: FLOAT or INT
        default: Value used when the request does not set it
        min_val: Lowest accepted value
        max_val: Highest accepted value
        display_name: Label for listings (derived from name if omitted)
        description: One-line help text
        unit: Display unit ("Hz", "ms", "s")
    """
    name: str
    type: ParameterType
    default: float
    min_val: float
    max_val: float
    display_name: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Parameter name is required")
        if self.display_name is None:
            self.display_name = self.name.replace('_', ' ').title()
        if self.min_val >= self.max_val:
            raise ValueError(f"Parameter {self.name}: min_val must be < max_val")
        if not (self.min_val <= self.default <= self.max_val):
            raise ValueError(f"Parameter {self.name}: default must be within min/max range")

    def clamp(self, value: Any) -> float:
        """Coerce a requested value into range (and to int for INT)."""
        value = min(max(float(value), self.min_val), self.max_val)
        return int(round(value)) if self.type == ParameterType.INT else value


@dataclass
class PluginMetadata:
    """
    Plugin identity and parameters.

    Attributes:
        id: Registry ID (UPPER_SNAKE_CASE)
        name: Display name
        category: SOURCE or PLAYER
        version: X.Y.Z
        description: Short description
        parameters: Parameter specs, in display order
    """
    id: str
    name: str
    category: PluginCategory
    version: str
    description: str
    parameters: List[ParameterSpec]

    def __post_init__(self):
        if not self.id or not self.id.isupper():
            raise ValueError(f"Plugin ID must be UPPER_CASE: {self.id!r}")

        parts = self.version.split(".")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid version format: {self.version}. Expected X.Y.Z")

        param_names = [p.name for p in self.parameters]
        if len(param_names) != len(set(param_names)):
            raise ValueError(f"Duplicate parameter names in {self.id}")

    def defaults(self) -> Dict[str, Any]:
        """Parameter name -> default value."""
        return {p.name: p.default for p in self.parameters}

    def resolve(self, params: Dict[str, Any], note=None) -> Dict[str, Any]:
        """
        Complete parameter set for one tone.

        Defaults, then the note's pitch/duration, then explicit params;
        every declared parameter is clamped to its range. Unknown keys
        pass through untouched.
        """
        merged = tone_params(params, note, self.defaults())
        for spec in self.parameters:
            merged[spec.name] = spec.clamp(merged[spec.name])
        return merged


@dataclass
class ProcessContext:
    """Render settings shared by every plugin call."""
    sample_rate: int = 44100


class AudioProcessor(ABC):
    """
    Base class for tone plugins.

    Subclasses implement get_metadata() and process(). process() must be
    a pure function of its arguments: the synthesizer may call it from a
    worker thread while another tone is rendering.
    """

    @abstractmethod
    def get_metadata(self) -> PluginMetadata:
        raise NotImplementedError()

    @abstractmethod
    def process(self,
                input_buffer: Optional[np.ndarray],
                params: Dict[str, Any],
                note: Optional['Note'],
                context: ProcessContext) -> np.ndarray:
        """
        Render one tone.

        Args:
            input_buffer: None for SOURCE plugins; the decoded mono
                float32 sample for PLAYER plugins
            params: Requested parameter values ("frequency", "duration_ms"
                and the plugin's own keys); missing keys take defaults
            note: Score note the tone comes from, if any; fills in
                "frequency"/"duration_ms" when params do not set them
            context: Render settings

        Returns:
            Mono float32 buffer covering the duration plus the plugin's
            stop tail
        """
        raise NotImplementedError()


def tone_params(params: Dict[str, Any], note, defaults: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge defaults, note-derived values and explicit params.

    Explicit params win over the note, the note wins over defaults.
    """
    merged = dict(defaults)
    if note is not None:
        merged["frequency"] = pitch_to_frequency(note.pitch)
        merged["duration_ms"] = float(note.duration)
    merged.update(params)
    return merged
