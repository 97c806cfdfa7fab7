"""
Score editor model.

Ordered note list with a selection cursor. The sequence it produces is the
input of the playback scheduler and the target of recognition results.
"""
from typing import Callable, List, Optional, Tuple

from core.commands import (
    AddNoteCommand,
    ClearScoreCommand,
    CommandHistory,
    DeleteNoteCommand,
    InsertNoteCommand,
    LoadScoreCommand,
    UpdateNoteCommand,
)
from core.models import EditorState, Note, Score


class ScoreEditor:
    """
    Editing facade over EditorState + CommandHistory.

    Every mutation is undoable. Listeners are called after each change so a
    view can redraw the staff.
    """

    def __init__(self, score_name: str = "My Ocarina Song",
                 default_duration: int = 500, undo_limit: int = 100):
        """
        Args:
            score_name: Initial score name
            default_duration: Duration (ms) used when none is given
            undo_limit: Maximum undo history length
        """
        self.state = EditorState(score_name)
        self.history = CommandHistory(self.state, max_history=undo_limit)
        self.default_duration = default_duration
        self._listeners: List[Callable[["ScoreEditor"], None]] = []

    # Read-only view

    @property
    def notes(self) -> Tuple[Note, ...]:
        return self.state.get_notes()

    @property
    def selected_index(self) -> Optional[int]:
        return self.state.get_selected_index()

    @property
    def score_name(self) -> str:
        return self.state.get_score_name()

    @property
    def selected_note(self) -> Optional[Note]:
        index = self.selected_index
        return None if index is None else self.notes[index]

    def is_dirty(self) -> bool:
        return self.state.is_dirty()

    def add_listener(self, callback: Callable[["ScoreEditor"], None]):
        """Register a change callback."""
        self._listeners.append(callback)

    def _run(self, command):
        self.history.execute(command)
        self._notify()

    def _notify(self):
        for callback in self._listeners:
            callback(self)

    # Edits

    def add_note(self, pitch: str, duration: Optional[int] = None):
        """Add a note after the selection (or at the end) and select it."""
        if duration is None:
            duration = self.default_duration
        self._run(AddNoteCommand(Note(pitch=pitch, duration=duration)))

    def insert_note_at(self, index: int, pitch: str, duration: Optional[int] = None):
        """Insert a note at index and select it."""
        if duration is None:
            duration = self.default_duration
        self._run(InsertNoteCommand(index, Note(pitch=pitch, duration=duration)))

    def delete_note(self, index: int):
        """Delete the note at index."""
        self._run(DeleteNoteCommand(index))

    def update_note(self, index: int, **changes):
        """Replace the note at index with one carrying the given changes."""
        self._run(UpdateNoteCommand(index, **changes))

    def select_note(self, index: Optional[int]):
        """Move the selection cursor (None clears it)."""
        self.state.set_selected_index(index)
        self._notify()

    def set_score_name(self, name: str):
        self.state.set_score_name(name)
        self.state.mark_dirty()
        self._notify()

    def load_score(self, notes, name: Optional[str] = None):
        """Replace the sequence and clear the selection."""
        self._run(LoadScoreCommand(notes, name))

    def clear_score(self):
        """Remove every note."""
        self._run(ClearScoreCommand())

    def undo(self) -> bool:
        done = self.history.undo()
        if done:
            self._notify()
        return done

    def redo(self) -> bool:
        done = self.history.redo()
        if done:
            self._notify()
        return done

    # Persistence bridge

    def to_score(self, lyrics: Optional[str] = None) -> Score:
        """Snapshot the editor as a Score."""
        return Score(name=self.score_name, notes=self.notes, lyrics=lyrics)

    def mark_saved(self):
        self.state.mark_clean()
        self._notify()
