"""
Heuristic sheet-music recognizer.

Pipeline:
1. Grayscale (luma weights)
2. Staff lines: rows that are mostly dark
3. Noteheads: flood-filled dark blobs of notehead size
4. Vertical position on the staff -> diatonic pitch
5. Blob fill density -> duration

Images without a detectable staff or without noteheads degrade to a
fixed demo melody at low confidence.
"""
import asyncio
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numba import jit

from core.constants import DIATONIC_PITCHES
from core.fingering import Fingering, FingeringMap, resolve_note
from core.models import Note, RecognitionResult
from recognition.image import ImageSource, RecognitionError, load_image

RECOGNIZED_SCORE_NAME = "Recognized Score"

DEMO_SEQUENCE = ("C5", "E5", "G5", "A5", "G5", "E5", "C5", "D5", "F5", "A5", "G5", "E5")
DEMO_DURATION_MS = 500

DETECTED_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.1


@dataclass
class RecognizerConfig:
    """Thresholds and limits of the recognition pipeline."""
    staff_threshold: int = 128       # gray below this counts toward a staff line
    staff_min_fraction: float = 0.3  # of image width
    staff_min_gap: int = 3           # rows; closer lines are merged
    max_staff_lines: int = 5
    notehead_threshold: int = 100    # gray at or below this is notehead ink
    min_radius: float = 4
    max_radius: float = 20
    max_blob_pixels: int = 500
    filled_density: float = 0.6
    dedupe_distance: float = 15
    max_notes: int = 32
    filled_duration_ms: int = 500
    open_duration_ms: int = 1000

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "RecognizerConfig":
        """Build from the settings dict (whole dict or its "recognition" category)."""
        section = settings.get("recognition", settings)
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})


@dataclass(frozen=True)
class Notehead:
    x: float
    y: float
    filled: bool
    radius: float


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """RGB(A) pixels -> integer luma (H x W, int32), rounded half up."""
    rgb = pixels[:, :, :3].astype(np.float64)
    luma = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return np.floor(luma + 0.5).astype(np.int32)


def staff_row_mask(gray: np.ndarray, config: RecognizerConfig) -> np.ndarray:
    """Per row: True if its dark-pixel count exceeds the staff fraction of the width."""
    width = gray.shape[1]
    dark_counts = (gray < config.staff_threshold).sum(axis=1)
    return dark_counts > width * config.staff_min_fraction


def remove_staff_lines(gray: np.ndarray, config: RecognizerConfig) -> np.ndarray:
    """
    Copy of the image with staff-line pixels blanked to white.

    Each run of staff rows is cleared column by column, except where the
    pixel just above or just below the run is ink: there a notehead (or
    stem) crosses the line and its pixels are kept.
    """
    cleaned = gray.copy()
    rows = staff_row_mask(gray, config)
    ink = gray <= config.notehead_threshold
    height, width = gray.shape
    no_ink = np.zeros(width, dtype=bool)

    y = 0
    while y < height:
        if not rows[y]:
            y += 1
            continue
        top = y
        while y < height and rows[y]:
            y += 1
        bottom = y - 1

        above = ink[top - 1] if top > 0 else no_ink
        below = ink[bottom + 1] if bottom + 1 < height else no_ink
        cleaned[top:bottom + 1, ~(above | below)] = 255

    return cleaned


def find_staff_lines(gray: np.ndarray, config: RecognizerConfig) -> List[int]:
    """
    Rows whose dark-pixel count exceeds the staff fraction of the width.

    Returns:
        Up to max_staff_lines row indices, top to bottom
    """
    staff_lines: List[int] = []
    for y in np.nonzero(staff_row_mask(gray, config))[0]:
        y = int(y)
        if not staff_lines or y - staff_lines[-1] > config.staff_min_gap:
            staff_lines.append(y)

    return staff_lines[:config.max_staff_lines]


@jit(nopython=True)
def flood_fill(gray, visited, start_x, start_y, threshold, max_pixels):
    """
    Breadth-first fill of the 4-connected region of ink around a pixel
    (JIT-compiled for speed).

    Marks filled pixels in `visited` and stops after max_pixels.

    Returns:
        (pixel_count, sum_x, sum_y, min_x, max_x, min_y, max_y)
    """
    height, width = gray.shape

    # Every accepted pixel enqueues 4 neighbours
    capacity = 4 * max_pixels + 1
    queue_x = np.empty(capacity, dtype=np.int64)
    queue_y = np.empty(capacity, dtype=np.int64)
    queue_x[0] = start_x
    queue_y[0] = start_y
    head = 0
    tail = 1

    count = 0
    sum_x = 0.0
    sum_y = 0.0
    min_x = width
    max_x = -1
    min_y = height
    max_y = -1

    while head < tail and count < max_pixels:
        x = queue_x[head]
        y = queue_y[head]
        head += 1

        if x < 0 or x >= width or y < 0 or y >= height:
            continue
        if visited[y, x] != 0 or gray[y, x] > threshold:
            continue

        visited[y, x] = 1
        count += 1
        sum_x += x
        sum_y += y
        min_x = min(min_x, x)
        max_x = max(max_x, x)
        min_y = min(min_y, y)
        max_y = max(max_y, y)

        queue_x[tail] = x + 1
        queue_y[tail] = y
        queue_x[tail + 1] = x - 1
        queue_y[tail + 1] = y
        queue_x[tail + 2] = x
        queue_y[tail + 2] = y + 1
        queue_x[tail + 3] = x
        queue_y[tail + 3] = y - 1
        tail += 4

    return count, sum_x, sum_y, min_x, max_x, min_y, max_y


def find_noteheads(gray: np.ndarray, config: RecognizerConfig) -> List[Notehead]:
    """
    Detect notehead-sized blobs, left to right, with near-duplicates removed.

    Staff lines are erased first so they neither count as blobs nor join
    neighbouring noteheads into one region.
    """
    gray = remove_staff_lines(gray, config)
    height, width = gray.shape
    margin = int(config.min_radius)
    visited = np.zeros((height, width), dtype=np.uint8)

    ink = gray <= config.notehead_threshold
    ink[:margin, :] = False
    ink[height - margin:, :] = False
    ink[:, :margin] = False
    ink[:, width - margin:] = False

    noteheads: List[Notehead] = []
    for y, x in zip(*np.nonzero(ink)):
        if visited[y, x]:
            continue

        count, sum_x, sum_y, min_x, max_x, min_y, max_y = flood_fill(
            gray, visited, int(x), int(y), int(config.notehead_threshold), int(config.max_blob_pixels)
        )
        if count == 0:
            continue

        radius = math.sqrt(count / math.pi)
        if not (config.min_radius <= radius <= config.max_radius):
            continue

        density = count / max((max_x - min_x + 1) * (max_y - min_y + 1), 1)
        noteheads.append(Notehead(
            x=sum_x / count,
            y=sum_y / count,
            filled=density > config.filled_density,
            radius=radius,
        ))

    noteheads.sort(key=lambda n: n.x)

    kept: List[Notehead] = []
    for notehead in noteheads:
        if not any(abs(k.x - notehead.x) < config.dedupe_distance and
                   abs(k.y - notehead.y) < config.dedupe_distance for k in kept):
            kept.append(notehead)

    return kept[:config.max_notes]


def map_position_to_pitch(y: float, staff_lines: Sequence[int]) -> str:
    """
    Vertical position -> diatonic pitch.

    The bottom staff line is C5 and the top line C6; positions in between
    are spread linearly. Noteheads in the margin outside the staff clamp
    to the nearest end.
    """
    top_line = staff_lines[0]
    bottom_line = staff_lines[-1]
    staff_height = max(bottom_line - top_line, 1)

    relative_pos = (bottom_line - y) / staff_height
    pitch_index = math.floor(relative_pos * (len(DIATONIC_PITCHES) - 1) + 0.5)
    pitch_index = max(0, min(len(DIATONIC_PITCHES) - 1, pitch_index))
    return DIATONIC_PITCHES[pitch_index]


def demo_notes() -> Tuple[Note, ...]:
    """Fallback melody used when nothing could be read from the image."""
    return tuple(Note(pitch=pitch, duration=DEMO_DURATION_MS) for pitch in DEMO_SEQUENCE)


def extract_notes(pixels: np.ndarray,
                  config: Optional[RecognizerConfig] = None) -> Tuple[Tuple[Note, ...], bool]:
    """
    Run the pipeline on a pixel grid.

    Returns:
        (notes, detected) where detected is False if the demo melody was used
    """
    config = config or RecognizerConfig()
    gray = to_grayscale(pixels)

    staff_lines = find_staff_lines(gray, config)
    if len(staff_lines) < 2:
        return demo_notes(), False

    notes = []
    for notehead in find_noteheads(gray, config):
        duration = config.filled_duration_ms if notehead.filled else config.open_duration_ms
        notes.append(Note(pitch=map_position_to_pitch(notehead.y, staff_lines), duration=duration))

    if not notes:
        return demo_notes(), False

    return tuple(notes), True


def annotate_fingerings(result: RecognitionResult,
                        user_map: Optional[FingeringMap] = None) -> List[Tuple[Note, Fingering]]:
    """Pair each recognized note with the fingering to display for it."""
    return [(note, resolve_note(note, user_map)) for note in result.notes]


class ScoreRecognizer:
    """
    Turns a score image into a RecognitionResult.

    Attributes:
        is_processing: True while recognize() is running
        error: Message of the last failed recognition, else None
    """

    def __init__(self, config: Optional[RecognizerConfig] = None):
        self.config = config or RecognizerConfig()
        self.is_processing = False
        self.error: Optional[str] = None

    def analyze(self, source: ImageSource) -> RecognitionResult:
        """
        Synchronous recognition.

        Raises:
            RecognitionError: If the image cannot be decoded or read
        """
        pixels = load_image(source)
        notes, detected = extract_notes(pixels, self.config)
        confidence = DETECTED_CONFIDENCE if detected else FALLBACK_CONFIDENCE
        return RecognitionResult(notes=notes, confidence=confidence)

    async def recognize(self, source: ImageSource) -> RecognitionResult:
        """
        Recognize off the event loop.

        Failures are reported through `error` with an empty result.
        """
        self.is_processing = True
        self.error = None
        try:
            result = await asyncio.to_thread(self.analyze, source)
        except RecognitionError as e:
            self.error = str(e)
            print(f"[RECOGNIZE] Recognition failed: {e}")
            return RecognitionResult.empty()
        finally:
            self.is_processing = False

        print(f"[RECOGNIZE] {len(result.notes)} notes, confidence {result.confidence:.0%}")
        return result
