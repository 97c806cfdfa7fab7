"""
Musical constants and utilities.

Diatonic pitch set, frequencies, staff positions, keyboard shortcuts, etc.
"""
from typing import Dict, List, Tuple

# The eight supported pitches, C5 through C6 on a white-key scale
DIATONIC_PITCHES: Tuple[str, ...] = ("C5", "D5", "E5", "F5", "G5", "A5", "B5", "C6")

# Equal-tempered frequencies (A4 = 440 Hz)
NOTE_FREQUENCIES: Dict[str, float] = {
    "C5": 523.25,
    "D5": 587.33,
    "E5": 659.25,
    "F5": 698.46,
    "G5": 783.99,
    "A5": 880.00,
    "B5": 987.77,
    "C6": 1046.50,
}

# Used for unknown pitches and for the sample-decode fallback tone
DEFAULT_FREQUENCY = NOTE_FREQUENCIES["C5"]

NOTE_LABELS: Dict[str, str] = {
    "C5": "C",
    "D5": "D",
    "E5": "E",
    "F5": "F",
    "G5": "G",
    "A5": "A",
    "B5": "B",
    "C6": "C'",
}

# Virtual keyboard (home row)
KEYBOARD_SHORTCUTS: Dict[str, str] = {
    "a": "C5",
    "s": "D5",
    "d": "E5",
    "f": "F5",
    "g": "G5",
    "h": "A5",
    "j": "B5",
    "k": "C6",
}

# Note length presets in milliseconds (quarter = 500ms, i.e. 120 BPM)
DURATION_OPTIONS: List[Tuple[str, int]] = [
    ("Whole (2s)", 2000),
    ("Half (1s)", 1000),
    ("Dotted Quarter (750ms)", 750),
    ("Quarter (500ms)", 500),
    ("Eighth (250ms)", 250),
]

# Tempo is a percentage of the authored speed
TEMPO_MIN = 50
TEMPO_MAX = 200
TEMPO_DEFAULT = 100

HOLE_COUNT = 4
HOLE_NAMES = ("top-left", "top-right", "bottom-left", "bottom-right")


def is_diatonic(pitch: str) -> bool:
    """Check if pitch is one of the eight supported pitches."""
    return pitch in NOTE_FREQUENCIES


def pitch_to_frequency(pitch: str) -> float:
    """
    Convert pitch name to frequency in Hz.

    Args:
        pitch: Pitch name (e.g., "C5", "A5")

    Returns:
        Frequency in Hz, C5 for unknown pitches

    Example:
        >>> pitch_to_frequency("A5")
        880.0
        >>> pitch_to_frequency("X9")
        523.25
    """
    return NOTE_FREQUENCIES.get(pitch, DEFAULT_FREQUENCY)


def pitch_index(pitch: str) -> int:
    """
    Get scale step of a pitch (0 = C5, 7 = C6).

    Raises:
        ValueError: If pitch is not diatonic
    """
    if pitch not in NOTE_FREQUENCIES:
        raise ValueError(f"Unknown pitch: {pitch}")
    return DIATONIC_PITCHES.index(pitch)


def clamp_tempo(tempo: float) -> int:
    """Clamp tempo percentage to the supported range."""
    return int(max(TEMPO_MIN, min(TEMPO_MAX, round(tempo))))
