"""
Immutable data models for Ocarina Studio.

All models are immutable dataclasses to support:
- Easy undo/redo via command pattern
- Safe sharing between the editor, the scheduler and the audio thread
- Lossless round-trips through the persistence layer
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Optional, Dict, Any, List

from core.constants import NOTE_FREQUENCIES, HOLE_COUNT

Fingering = Tuple[bool, bool, bool, bool]


class PlaybackState(Enum):
    """Transport state of the playback scheduler."""
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class Note:
    """
    Single note of an ocarina score.

    Attributes:
        pitch: Diatonic pitch name (C5-C6)
        duration: Authored duration in milliseconds
        fingering: Per-note fingering override (empty = use fingering map)
        lyric: Optional lyric syllable
    """
    pitch: str
    duration: int
    fingering: Tuple[bool, ...] = ()
    lyric: str = ""

    def __post_init__(self):
        """Validate note values."""
        if self.pitch not in NOTE_FREQUENCIES:
            raise ValueError(f"Unknown pitch: {self.pitch}")
        if int(self.duration) != self.duration or self.duration < 0:
            raise ValueError(f"Duration must be a non-negative integer, got {self.duration}")
        if len(self.fingering) not in (0, HOLE_COUNT):
            raise ValueError(f"Fingering must have 0 or {HOLE_COUNT} holes, got {len(self.fingering)}")
        # Normalize containers so equality and hashing are stable
        object.__setattr__(self, "duration", int(self.duration))
        object.__setattr__(self, "fingering", tuple(bool(h) for h in self.fingering))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "pitch": self.pitch,
            "duration": self.duration,
            "fingering": list(self.fingering),
        }
        if self.lyric:
            result["lyric"] = self.lyric
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        """Create Note from dictionary."""
        return cls(
            pitch=data["pitch"],
            duration=data["duration"],
            fingering=tuple(data.get("fingering", ())),
            lyric=data.get("lyric", ""),
        )

    def to_record(self) -> Tuple[str, int, List[bool], str]:
        """Convert to the flat tuple form exchanged with the storage backend."""
        return (self.pitch, self.duration, list(self.fingering), self.lyric)

    @classmethod
    def from_record(cls, record) -> "Note":
        """Create Note from a backend tuple (lyric is optional)."""
        pitch, duration, fingering = record[0], record[1], record[2]
        lyric = record[3] if len(record) > 3 else ""
        return cls(pitch=pitch, duration=duration, fingering=tuple(fingering), lyric=lyric or "")


@dataclass(frozen=True)
class Score:
    """
    Named note sequence.

    Insertion order is temporal order.

    Attributes:
        name: Score name (unique key in storage)
        notes: Ordered notes
        lyrics: Optional free-form lyrics text
    """
    name: str
    notes: Tuple[Note, ...] = field(default_factory=tuple)
    lyrics: Optional[str] = None

    def __post_init__(self):
        """Validate score."""
        if not self.name:
            raise ValueError("Score name is required")
        object.__setattr__(self, "notes", tuple(self.notes))

    @property
    def total_duration(self) -> int:
        """Authored length of the score in milliseconds."""
        return sum(n.duration for n in self.notes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": "1.0.0",
            "name": self.name,
            "notes": [n.to_dict() for n in self.notes],
            "lyrics": self.lyrics,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Score":
        """Create Score from dictionary."""
        return cls(
            name=data.get("name", "Untitled"),
            notes=tuple(Note.from_dict(n) for n in data.get("notes", [])),
            lyrics=data.get("lyrics"),
        )


@dataclass(frozen=True)
class PresetSong:
    """
    Entry of the preset song catalog.

    Attributes:
        id: Stable slug (e.g., "ode-to-joy")
        display_name: Human-readable title
        score: The song itself
    """
    id: str
    display_name: str
    score: Score


@dataclass(frozen=True)
class RecognitionResult:
    """
    Output of one score recognition run.

    Attributes:
        notes: Recognized notes, left to right
        confidence: Detection confidence (0.0-1.0)
    """
    notes: Tuple[Note, ...] = field(default_factory=tuple)
    confidence: float = 0.0

    def __post_init__(self):
        """Validate confidence range."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")
        object.__setattr__(self, "notes", tuple(self.notes))

    @classmethod
    def empty(cls) -> "RecognitionResult":
        """Result reported when recognition fails."""
        return cls(notes=(), confidence=0.0)


class EditorState:
    """
    Mutable state of the score editor.

    Manages:
    - Current note sequence (immutable tuple, replaced on every edit)
    - Selection cursor
    - Score name and unsaved-changes flag
    """

    def __init__(self, score_name: str = "My Ocarina Song"):
        """Initialize empty state."""
        self._notes: Tuple[Note, ...] = ()
        self._selected_index: Optional[int] = None
        self._score_name = score_name
        self._is_dirty = False

    def get_notes(self) -> Tuple[Note, ...]:
        """Get current note sequence."""
        return self._notes

    def set_notes(self, notes):
        """Replace the note sequence."""
        self._notes = tuple(notes)

    def get_selected_index(self) -> Optional[int]:
        """Get index of selected note (None = no selection)."""
        return self._selected_index

    def set_selected_index(self, index: Optional[int]):
        """Set selected note index."""
        if index is not None and not 0 <= index < len(self._notes):
            raise ValueError(f"Selection {index} out of range for {len(self._notes)} notes")
        self._selected_index = index

    def get_score_name(self) -> str:
        """Get score name."""
        return self._score_name

    def set_score_name(self, name: str):
        """Set score name."""
        self._score_name = name

    def is_dirty(self) -> bool:
        """Check if score has unsaved changes."""
        return self._is_dirty

    def mark_dirty(self):
        """Mark score as having unsaved changes."""
        self._is_dirty = True

    def mark_clean(self):
        """Mark score as saved."""
        self._is_dirty = False
