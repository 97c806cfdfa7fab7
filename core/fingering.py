"""
Fingering lookup for the 4-hole ocarina.

Holes are arranged in a 2x2 grid:
[top-left, top-right, bottom-left, bottom-right]
True = closed (covered), False = open.

A user-edited map is always layered over the static default table, so a
FingeringMap handed out by this module covers all eight diatonic pitches.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from core.constants import DIATONIC_PITCHES, HOLE_COUNT
from core.models import Fingering

FingeringMap = Dict[str, Fingering]

ALL_OPEN: Fingering = (False, False, False, False)

# C5 = all covered, progressively opening holes going up the scale
DEFAULT_FINGERINGS: Dict[str, Fingering] = {
    "C5": (True,  True,  True,  True),    # All covered
    "D5": (True,  True,  True,  False),   # Bottom-right open
    "E5": (True,  True,  False, False),   # Bottom row open
    "F5": (True,  False, False, False),   # Only top-left covered
    "G5": (True,  True,  False, True),    # Special fingering
    "A5": (False, True,  False, False),   # Only top-right covered
    "B5": (False, False, True,  False),   # Only bottom-left covered
    "C6": (False, False, False, False),   # All open
}


def resolve(pitch: str, user_map: Optional[FingeringMap] = None) -> Fingering:
    """
    Get fingering for a pitch.

    Args:
        pitch: Pitch name
        user_map: Optional user-edited map layered over the defaults

    Returns:
        User entry if present, else static default, else all open
    """
    if user_map is not None and pitch in user_map:
        return user_map[pitch]
    return DEFAULT_FINGERINGS.get(pitch, ALL_OPEN)


def resolve_note(note, user_map: Optional[FingeringMap] = None) -> Fingering:
    """Fingering for a note, honoring its per-note override."""
    if len(note.fingering) == HOLE_COUNT:
        return tuple(note.fingering)
    return resolve(note.pitch, user_map)


def build_default_map() -> FingeringMap:
    """Fresh copy of the static default table."""
    return dict(DEFAULT_FINGERINGS)


def reset_to_defaults() -> FingeringMap:
    """Discard all user edits."""
    return build_default_map()


def toggle_hole(fingering_map: Optional[FingeringMap], pitch: str, hole_index: int) -> FingeringMap:
    """
    Flip a single hole of one pitch.

    Pure: the input map is never modified. Pitches missing from the input
    are seeded from the defaults first.

    Args:
        fingering_map: Current map (None = defaults)
        pitch: Pitch whose fingering changes
        hole_index: Hole to flip (0-3)

    Returns:
        New fully-populated map
    """
    if not 0 <= hole_index < HOLE_COUNT:
        raise ValueError(f"Hole index must be 0-{HOLE_COUNT - 1}, got {hole_index}")

    updated = build_default_map()
    if fingering_map:
        updated.update(fingering_map)

    holes = list(updated.get(pitch, ALL_OPEN))
    holes[hole_index] = not holes[hole_index]
    updated[pitch] = tuple(holes)
    return updated


def map_from_tuples(entries: Optional[Iterable[Tuple[str, List[bool]]]]) -> Optional[FingeringMap]:
    """
    Build a map from the backend's (pitch, holes) list.

    Entries whose hole list is not exactly 4 long are dropped and missing
    pitches are backfilled from the defaults.

    Returns:
        Full map, or None when nothing has been stored yet
    """
    entries = list(entries or [])
    if not entries:
        return None

    loaded: FingeringMap = {}
    for pitch, holes in entries:
        if len(holes) == HOLE_COUNT:
            loaded[pitch] = tuple(bool(h) for h in holes)

    for pitch in DIATONIC_PITCHES:
        if pitch not in loaded:
            loaded[pitch] = DEFAULT_FINGERINGS[pitch]
    return loaded


def map_to_tuples(fingering_map: Optional[FingeringMap]) -> List[Tuple[str, List[bool]]]:
    """Flatten a map into the backend's 8-entry (pitch, holes) list."""
    fingering_map = fingering_map or {}
    return [
        (pitch, list(fingering_map.get(pitch, DEFAULT_FINGERINGS[pitch])))
        for pitch in DIATONIC_PITCHES
    ]


def render_fingering(fingering: Fingering) -> str:
    """Compact text form, e.g. '● ● ○ ○'."""
    return " ".join("●" if closed else "○" for closed in fingering)
