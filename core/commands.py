"""
Command pattern for undo/redo support.

All editor modifications go through commands to enable:
- Full undo/redo history
- Consistent selection-cursor bookkeeping
- Dirty tracking for the save prompt
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Tuple
from dataclasses import replace
from core.models import EditorState, Note


class Command(ABC):
    """Base class for all commands."""

    def __init__(self):
        self._previous_notes: Optional[Tuple[Note, ...]] = None
        self._previous_selection: Optional[int] = None
        self._previous_name: Optional[str] = None

    def _snapshot(self, state: EditorState):
        """Store state needed for undo."""
        self._previous_notes = state.get_notes()
        self._previous_selection = state.get_selected_index()
        self._previous_name = state.get_score_name()

    @abstractmethod
    def execute(self, state: EditorState) -> EditorState:
        """
        Execute command and return new state.

        Args:
            state: Current editor state

        Returns:
            Editor state after command execution
        """
        raise NotImplementedError()

    def undo(self, state: EditorState) -> EditorState:
        """
        Undo command and return previous state.

        Args:
            state: Current editor state

        Returns:
            Editor state before command execution
        """
        if self._previous_notes is None:
            raise ValueError("Command has not been executed yet")

        state.set_notes(self._previous_notes)
        state.set_selected_index(self._previous_selection)
        state.set_score_name(self._previous_name)
        state.mark_dirty()

        return state

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable command description for UI."""
        raise NotImplementedError()


class AddNoteCommand(Command):
    """Add a note after the selection (or at the end) and select it."""

    def __init__(self, note: Note):
        """
        Args:
            note: Note to add
        """
        super().__init__()
        self.note = note

    def execute(self, state: EditorState) -> EditorState:
        """Insert note after the selected one."""
        self._snapshot(state)

        notes = list(state.get_notes())
        selected = state.get_selected_index()
        insert_at = selected + 1 if selected is not None else len(notes)
        notes.insert(insert_at, self.note)

        state.set_notes(notes)
        state.set_selected_index(insert_at)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Add Note"


class InsertNoteCommand(Command):
    """Insert a note at an explicit position and select it."""

    def __init__(self, index: int, note: Note):
        """
        Args:
            index: Position to insert at (0 to len(notes))
            note: Note to insert
        """
        super().__init__()
        self.index = index
        self.note = note

    def execute(self, state: EditorState) -> EditorState:
        """Insert note at index."""
        notes = list(state.get_notes())
        if not 0 <= self.index <= len(notes):
            raise ValueError(f"Insert position {self.index} out of range")

        self._snapshot(state)
        notes.insert(self.index, self.note)

        state.set_notes(notes)
        state.set_selected_index(self.index)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Insert Note"


class DeleteNoteCommand(Command):
    """Delete a note, keeping the selection on a sensible neighbor."""

    def __init__(self, index: int):
        """
        Args:
            index: Index of note to delete
        """
        super().__init__()
        self.index = index

    def execute(self, state: EditorState) -> EditorState:
        """Remove note at index."""
        notes = list(state.get_notes())
        if not 0 <= self.index < len(notes):
            raise ValueError(f"Note index {self.index} out of range")

        self._snapshot(state)
        del notes[self.index]

        selected = state.get_selected_index()
        if selected is not None:
            if selected == self.index:
                selected = selected - 1 if selected > 0 else None
            elif selected > self.index:
                selected -= 1

        state.set_notes(notes)
        state.set_selected_index(selected)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Delete Note"


class UpdateNoteCommand(Command):
    """Replace a note with a copy carrying the given field changes."""

    def __init__(self, index: int, **changes):
        """
        Args:
            index: Index of note to update
            **changes: Note fields to change (pitch, duration, fingering, lyric)
        """
        super().__init__()
        self.index = index
        self.changes = changes

    def execute(self, state: EditorState) -> EditorState:
        """Swap in the updated note."""
        notes = list(state.get_notes())
        if not 0 <= self.index < len(notes):
            raise ValueError(f"Note index {self.index} out of range")

        updated = replace(notes[self.index], **self.changes)

        self._snapshot(state)
        notes[self.index] = updated

        state.set_notes(notes)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Edit Note"


class LoadScoreCommand(Command):
    """Replace the whole sequence (preset, saved score or recognition result)."""

    def __init__(self, notes, name: Optional[str] = None):
        """
        Args:
            notes: New note sequence
            name: New score name (None keeps the current one)
        """
        super().__init__()
        self.notes = tuple(notes)
        self.name = name

    def execute(self, state: EditorState) -> EditorState:
        """Load notes and clear the selection."""
        self._snapshot(state)

        state.set_notes(self.notes)
        state.set_selected_index(None)
        if self.name:
            state.set_score_name(self.name)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Load Score"


class ClearScoreCommand(Command):
    """Remove every note."""

    def execute(self, state: EditorState) -> EditorState:
        """Empty the sequence."""
        self._snapshot(state)

        state.set_notes(())
        state.set_selected_index(None)
        state.mark_dirty()

        return state

    @property
    def description(self) -> str:
        return "Clear Score"


class CommandHistory:
    """Manages undo/redo command history."""

    def __init__(self, editor_state: EditorState, max_history: int = 100):
        """
        Args:
            editor_state: Editor state to operate on
            max_history: Maximum number of commands to keep
        """
        self.editor_state = editor_state
        self.max_history = max_history
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []

    def execute(self, command: Command):
        """Execute command and add to history."""
        command.execute(self.editor_state)

        self._undo_stack.append(command)

        # Limit history size
        if len(self._undo_stack) > self.max_history:
            self._undo_stack.pop(0)

        # Clear redo stack when new command is executed
        self._redo_stack.clear()

    def undo(self) -> bool:
        """Undo last command. Returns True if successful."""
        if not self.can_undo():
            return False

        command = self._undo_stack.pop()
        command.undo(self.editor_state)
        self._redo_stack.append(command)

        return True

    def redo(self) -> bool:
        """Redo last undone command. Returns True if successful."""
        if not self.can_redo():
            return False

        command = self._redo_stack.pop()
        command.execute(self.editor_state)
        self._undo_stack.append(command)

        return True

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self._redo_stack) > 0

    def clear(self):
        """Clear all command history."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    def get_undo_description(self) -> Optional[str]:
        """Get description of command that would be undone."""
        if self.can_undo():
            return self._undo_stack[-1].description
        return None

    def get_redo_description(self) -> Optional[str]:
        """Get description of command that would be redone."""
        if self.can_redo():
            return self._redo_stack[-1].description
        return None
