"""
Built-in preset song library.

Melodies are written as "PITCH:LENGTH" tokens, where LENGTH is one of
E (eighth, 250ms), Q (quarter, 500ms), DQ (dotted quarter, 750ms),
H (half, 1000ms), HQ (half + quarter, 1500ms) or W (whole, 2000ms).
"""
from typing import Dict, List, Optional, Tuple

from core.models import Note, PresetSong, Score

LENGTHS: Dict[str, int] = {
    "E": 250,
    "Q": 500,
    "DQ": 750,
    "H": 1000,
    "HQ": 1500,
    "W": 2000,
}

_SCARBOROUGH_VERSE = """
    A5:Q C5:H  D5:Q D5:Q E5:Q  F5:H E5:Q  D5:H C5:Q  E5:Q G5:Q E5:Q  D5:HQ
    A5:Q C5:H  D5:Q D5:Q E5:Q  F5:H A5:Q  G5:H F5:Q  E5:HQ
    C5:Q D5:Q E5:Q  F5:H E5:Q  D5:Q C5:Q D5:Q  E5:HQ
"""

_GREENSLEEVES_PHRASE = """
    C6:DQ D5:E E5:H  F5:Q E5:DQ D5:E  C5:H A5:Q  A5:DQ B5:E C6:H
    D5:Q C5:DQ B5:E  A5:H G5:Q  F5:DQ G5:E A5:H  E5:HQ
"""

_AMAZING_GRACE_VERSE = """
    C5:Q  F5:H A5:Q  F5:H A5:Q  C6:H A5:Q  F5:H A5:Q  E5:HQ
    D5:H F5:Q  A5:H G5:Q  F5:HQ
"""

_RISING_SUN_PHRASE = """
    A5:Q C6:Q D5:Q  F5:H D5:Q  F5:Q A5:Q C6:Q  E5:HQ
    A5:Q C6:Q D5:Q  F5:H D5:Q  A5:HQ
"""

_TWINKLE_A = "C5:Q C5:Q G5:Q G5:Q  A5:Q A5:Q G5:H  F5:Q F5:Q E5:Q E5:Q  D5:Q D5:Q C5:H"
_TWINKLE_B = "G5:Q G5:Q F5:Q F5:Q  E5:Q E5:Q D5:H"

_ODE_A = "E5:Q E5:Q F5:Q G5:Q  G5:Q F5:Q E5:Q D5:Q  C5:Q C5:Q D5:Q E5:Q"

_AULD_LANG_SYNE_LINE = """
    F5:Q F5:Q F5:Q A5:Q  G5:H F5:Q A5:Q  C6:H A5:Q F5:Q  A5:H G5:H
    F5:Q F5:Q A5:Q C6:Q  D5:H C5:Q A5:Q  F5:H F5:Q A5:Q
"""

_MELODIES: List[Tuple[str, str, str]] = [
    (
        "scarborough-fair", "Scarborough Fair",
        _SCARBOROUGH_VERSE * 2,
    ),
    (
        "greensleeves", "Greensleeves",
        "A5:Q" + _GREENSLEEVES_PHRASE * 2 + """
        G5:DQ A5:E B5:H  C6:Q B5:DQ A5:E  G5:H E5:Q
        F5:DQ G5:E A5:H  E5:HQ
        G5:DQ A5:E B5:H  C6:Q B5:DQ A5:E  G5:H F5:Q
        E5:DQ D5:E C5:H  A5:HQ
        """,
    ),
    (
        "amazing-grace", "Amazing Grace",
        _AMAZING_GRACE_VERSE * 3,
    ),
    (
        "danny-boy", "Danny Boy",
        """
        C5:Q E5:Q  G5:H E5:Q G5:Q  A5:H G5:Q E5:Q  G5:H E5:Q D5:Q  C5:W
        C5:Q E5:Q  G5:H E5:Q G5:Q  A5:H B5:Q C6:Q  B5:W
        B5:Q C6:Q  B5:H A5:Q G5:Q  A5:H G5:Q E5:Q  G5:W
        G5:Q A5:Q  B5:H A5:Q G5:Q  A5:H G5:Q E5:Q  D5:W
        C5:Q E5:Q  G5:H E5:Q G5:Q  A5:H G5:Q E5:Q  G5:H E5:Q D5:Q  C5:W
        """,
    ),
    (
        "ode-to-joy", "Ode to Joy",
        _ODE_A + " E5:DQ D5:E D5:H  " + _ODE_A + " D5:DQ C5:E C5:H"
        + """
        D5:Q D5:Q E5:Q C5:Q  D5:Q E5:E F5:E E5:Q C5:Q
        D5:Q E5:E F5:E E5:Q D5:Q  C5:Q D5:Q G5:H
        """
        + _ODE_A + " D5:DQ C5:E C5:H",
    ),
    (
        "twinkle-twinkle", "Twinkle Twinkle Little Star",
        " ".join([_TWINKLE_A, _TWINKLE_B, _TWINKLE_B, _TWINKLE_A, _TWINKLE_A]),
    ),
    (
        "house-of-rising-sun", "House of the Rising Sun",
        _RISING_SUN_PHRASE
        + """
        A5:Q C6:Q D5:Q  F5:H D5:Q  F5:Q A5:Q C6:Q  E5:HQ
        E5:Q G5:Q E5:Q  D5:H C5:Q  D5:HQ
        """
        + _RISING_SUN_PHRASE
        + " A5:Q C6:Q D5:Q  F5:H D5:Q  F5:Q A5:Q C6:Q  E5:HQ",
    ),
    (
        "auld-lang-syne", "Auld Lang Syne",
        "C5:Q" + _AULD_LANG_SYNE_LINE + " G5:W" + _AULD_LANG_SYNE_LINE + " F5:W",
    ),
]


def parse_melody(text: str) -> Tuple[Note, ...]:
    """
    Parse "PITCH:LENGTH" tokens into notes.

    Example:
        >>> parse_melody("C5:Q G5:H")
        (Note(pitch='C5', duration=500, ...), Note(pitch='G5', duration=1000, ...))
    """
    notes = []
    for token in text.split():
        pitch, _, length = token.partition(":")
        if length not in LENGTHS:
            raise ValueError(f"Unknown note length in token: {token}")
        notes.append(Note(pitch=pitch, duration=LENGTHS[length]))
    return tuple(notes)


PRESET_SONGS: List[PresetSong] = [
    PresetSong(id=song_id, display_name=name,
               score=Score(name=name, notes=parse_melody(melody)))
    for song_id, name, melody in _MELODIES
]


def get_local_preset(song_id: str) -> Optional[PresetSong]:
    """Find a preset in the built-in library."""
    for song in PRESET_SONGS:
        if song.id == song_id:
            return song
    return None
