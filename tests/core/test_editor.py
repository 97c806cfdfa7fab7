"""Tests for the score editor and its undoable commands."""
import pytest

from core.commands import AddNoteCommand, CommandHistory, DeleteNoteCommand
from core.editor import ScoreEditor
from core.models import EditorState, Note


def pitches(editor):
    return [n.pitch for n in editor.notes]


def test_add_note_appends_and_selects():
    editor = ScoreEditor()
    editor.add_note("C5")
    editor.add_note("E5", 250)

    assert pitches(editor) == ["C5", "E5"]
    assert editor.notes[0].duration == 500
    assert editor.notes[1].duration == 250
    assert editor.selected_index == 1
    assert editor.is_dirty()


def test_add_note_inserts_after_selection():
    editor = ScoreEditor()
    for pitch in ("C5", "D5", "E5"):
        editor.add_note(pitch)
    editor.select_note(0)

    editor.add_note("G5")

    assert pitches(editor) == ["C5", "G5", "D5", "E5"]
    assert editor.selected_index == 1


def test_insert_note_at_position():
    editor = ScoreEditor()
    editor.add_note("C5")
    editor.insert_note_at(0, "A5")

    assert pitches(editor) == ["A5", "C5"]
    assert editor.selected_index == 0
    with pytest.raises(ValueError):
        editor.insert_note_at(5, "A5")


def test_delete_selected_note_selects_previous():
    editor = ScoreEditor()
    for pitch in ("C5", "D5", "E5"):
        editor.add_note(pitch)

    editor.delete_note(2)
    assert editor.selected_index == 1

    editor.select_note(0)
    editor.delete_note(0)
    assert editor.selected_index is None
    assert pitches(editor) == ["D5"]


def test_delete_before_selection_shifts_it():
    editor = ScoreEditor()
    for pitch in ("C5", "D5", "E5"):
        editor.add_note(pitch)
    editor.select_note(2)

    editor.delete_note(0)

    assert editor.selected_index == 1
    assert editor.selected_note.pitch == "E5"


def test_update_note_replaces_whole_note():
    editor = ScoreEditor()
    editor.add_note("C5")
    original = editor.notes[0]

    editor.update_note(0, pitch="F5", fingering=(True, False, True, False))

    assert editor.notes[0] == Note(pitch="F5", duration=500, fingering=(True, False, True, False))
    assert original.pitch == "C5"
    with pytest.raises(ValueError):
        editor.update_note(0, pitch="Q1")


def test_load_and_clear_score():
    editor = ScoreEditor()
    editor.add_note("C5")

    editor.load_score([Note("G5", 500), Note("A5", 500)], name="Loaded")
    assert pitches(editor) == ["G5", "A5"]
    assert editor.selected_index is None
    assert editor.score_name == "Loaded"

    editor.clear_score()
    assert editor.notes == ()


def test_undo_redo_restores_notes_and_selection():
    editor = ScoreEditor()
    editor.add_note("C5")
    editor.add_note("D5")
    editor.delete_note(1)

    assert editor.undo()
    assert pitches(editor) == ["C5", "D5"]
    assert editor.selected_index == 1

    assert editor.redo()
    assert pitches(editor) == ["C5"]
    assert editor.selected_index == 0


def test_undo_limit_drops_oldest():
    editor = ScoreEditor(undo_limit=2)
    for pitch in ("C5", "D5", "E5"):
        editor.add_note(pitch)

    assert editor.undo()
    assert editor.undo()
    assert not editor.undo()
    assert pitches(editor) == ["C5"]


def test_listeners_and_saved_flag():
    editor = ScoreEditor("Song")
    changes = []
    editor.add_listener(lambda e: changes.append(len(e.notes)))

    editor.add_note("C5")
    score = editor.to_score(lyrics="la")
    editor.mark_saved()

    assert changes == [1, 1]
    assert score.name == "Song" and score.lyrics == "la"
    assert not editor.is_dirty()


def test_command_history_descriptions():
    state = EditorState()
    history = CommandHistory(state)

    history.execute(AddNoteCommand(Note("C5", 500)))
    assert history.get_undo_description() == "Add Note"
    assert history.get_redo_description() is None

    history.undo()
    assert history.get_redo_description() == "Add Note"

    with pytest.raises(ValueError):
        history.execute(DeleteNoteCommand(3))
