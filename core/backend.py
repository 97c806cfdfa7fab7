"""
Storage backend interface.

Scores, uploaded samples, the user fingering map and the preset catalog
live in a remote data service. The studio only talks to it through
StudioBackend; InMemoryBackend is the reference implementation used for
offline runs and tests.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from core.fingering import FingeringMap, build_default_map, map_from_tuples
from core.models import PresetSong, Score
from core.presets import PRESET_SONGS, get_local_preset

FingeringTuples = List[Tuple[str, List[bool]]]


class StudioBackend(ABC):
    """Operations the studio needs from the data service."""

    # Scores

    @abstractmethod
    def save_score(self, name: str, score: Score):
        raise NotImplementedError()

    @abstractmethod
    def get_score(self, name: str) -> Score:
        """Raises KeyError if no score has that name."""
        raise NotImplementedError()

    @abstractmethod
    def get_all_scores(self) -> List[Score]:
        raise NotImplementedError()

    @abstractmethod
    def delete_score(self, name: str):
        raise NotImplementedError()

    # Samples (pitch -> playable URL/path or raw bytes)

    @abstractmethod
    def upload_sample(self, pitch: str, blob):
        raise NotImplementedError()

    @abstractmethod
    def get_sample(self, pitch: str) -> Optional[object]:
        raise NotImplementedError()

    @abstractmethod
    def get_all_samples(self) -> Dict[str, object]:
        raise NotImplementedError()

    @abstractmethod
    def delete_sample(self, pitch: str):
        raise NotImplementedError()

    # Fingering map

    @abstractmethod
    def load_fingering_map(self) -> FingeringTuples:
        raise NotImplementedError()

    @abstractmethod
    def save_fingering_map(self, entries: FingeringTuples):
        raise NotImplementedError()

    # Preset catalog

    @abstractmethod
    def get_preset_song_list(self) -> List[Tuple[str, str]]:
        """List of (id, display_name)."""
        raise NotImplementedError()

    @abstractmethod
    def get_preset_song(self, song_id: str) -> PresetSong:
        """Raises KeyError if the catalog has no such song."""
        raise NotImplementedError()

    @abstractmethod
    def add_preset_song(self, song_id: str, display_name: str, score: Score):
        raise NotImplementedError()


class InMemoryBackend(StudioBackend):
    """Dictionary-backed StudioBackend."""

    def __init__(self):
        self._scores: Dict[str, Score] = {}
        self._samples: Dict[str, object] = {}
        self._fingering: FingeringTuples = []
        self._presets: Dict[str, PresetSong] = {}

    def save_score(self, name: str, score: Score):
        self._scores[name] = score

    def get_score(self, name: str) -> Score:
        if name not in self._scores:
            raise KeyError(f"Score not found: {name}")
        return self._scores[name]

    def get_all_scores(self) -> List[Score]:
        return list(self._scores.values())

    def delete_score(self, name: str):
        if name not in self._scores:
            raise KeyError(f"Score not found: {name}")
        del self._scores[name]

    def upload_sample(self, pitch: str, blob):
        self._samples[pitch] = blob

    def get_sample(self, pitch: str) -> Optional[object]:
        return self._samples.get(pitch)

    def get_all_samples(self) -> Dict[str, object]:
        return dict(self._samples)

    def delete_sample(self, pitch: str):
        self._samples.pop(pitch, None)

    def load_fingering_map(self) -> FingeringTuples:
        return [(pitch, list(holes)) for pitch, holes in self._fingering]

    def save_fingering_map(self, entries: FingeringTuples):
        self._fingering = [(pitch, list(holes)) for pitch, holes in entries]

    def get_preset_song_list(self) -> List[Tuple[str, str]]:
        return [(song.id, song.display_name) for song in self._presets.values()]

    def get_preset_song(self, song_id: str) -> PresetSong:
        if song_id not in self._presets:
            raise KeyError(f"Preset song not found: {song_id}")
        return self._presets[song_id]

    def add_preset_song(self, song_id: str, display_name: str, score: Score):
        if song_id in self._presets:
            raise ValueError(f"Preset song already exists: {song_id}")
        self._presets[song_id] = PresetSong(id=song_id, display_name=display_name, score=score)


def seed_preset_songs(backend: StudioBackend) -> List[str]:
    """
    Add every built-in preset the catalog is missing.

    Returns:
        IDs that were added
    """
    existing = {song_id for song_id, _ in backend.get_preset_song_list()}
    added = []
    for song in PRESET_SONGS:
        if song.id in existing:
            continue
        try:
            backend.add_preset_song(song.id, song.display_name, song.score)
            added.append(song.id)
        except (KeyError, ValueError, IOError) as e:
            print(f"[BACKEND] Skipped seeding '{song.id}': {e}")
    if added:
        print(f"[BACKEND] Seeded {len(added)} preset songs")
    return added


def load_preset(backend: Optional[StudioBackend], song_id: str) -> PresetSong:
    """
    Fetch a preset, falling back to the built-in library.

    Raises:
        KeyError: If neither the backend nor the library has it
    """
    if backend is not None:
        try:
            return backend.get_preset_song(song_id)
        except (KeyError, IOError) as e:
            print(f"[BACKEND] Preset '{song_id}' unavailable, using local copy: {e}")

    song = get_local_preset(song_id)
    if song is None:
        raise KeyError(f"Preset song not found: {song_id}")
    return song


def hydrate_fingering_map(backend: Optional[StudioBackend]) -> FingeringMap:
    """Stored fingering map backfilled from defaults (defaults if nothing stored)."""
    if backend is None:
        return build_default_map()
    loaded = map_from_tuples(backend.load_fingering_map())
    return loaded if loaded is not None else build_default_map()


def sample_overrides(backend: Optional[StudioBackend]) -> Dict[str, object]:
    """Pitch -> sample source map for the playback scheduler."""
    if backend is None:
        return {}
    return {pitch: blob for pitch, blob in backend.get_all_samples().items() if blob}
