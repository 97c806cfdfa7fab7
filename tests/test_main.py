"""Tests for the command line entry point (commands that need no audio device)."""
import json

import numpy as np
import pytest
from PIL import Image

import main
from core.persistence import ScoreFile
from core.settings import load_settings


@pytest.fixture
def config(tmp_path):
    return str(tmp_path / "settings.json")


def test_presets_lists_every_song(config, capsys):
    assert main.main(["--config", config, "presets"]) == 0

    out = capsys.readouterr().out
    for song_id in ("scarborough-fair", "ode-to-joy", "auld-lang-syne"):
        assert song_id in out


def test_fingering_for_one_pitch(config, capsys):
    assert main.main(["--config", config, "fingering", "E5"]) == 0

    out = capsys.readouterr().out
    assert "E5" in out
    assert "● ● ○ ○" in out


def test_recognize_and_save(config, tmp_path, capsys):
    page = np.full((120, 200, 3), 255, dtype=np.uint8)
    for y in (30, 40, 50, 60, 70):
        page[y, :, :] = 0
    yy, xx = np.mgrid[:120, :200]
    page[(xx - 100) ** 2 + (yy - 70) ** 2 <= 36] = 0
    image_path = tmp_path / "score.png"
    Image.fromarray(page).save(image_path)
    out_path = tmp_path / "recognized"

    assert main.main(["--config", config, "recognize", str(image_path), "--save", str(out_path)]) == 0

    assert "60% confidence" in capsys.readouterr().out
    score = ScoreFile.load(out_path.with_suffix(".ocarina"))
    assert score.name == "Recognized Score"
    assert [n.pitch for n in score.notes] == ["C5"]


def test_recognize_unreadable_image_fails(config, tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"nope")
    assert main.main(["--config", config, "recognize", str(bad)]) == 1


def test_play_unknown_preset_reports_error(config, capsys):
    assert main.main(["--config", config, "play", "no-such-song"]) == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_parse_sample_args():
    assert main.parse_sample_args(["C5=/tmp/c5.wav"]) == {"C5": "/tmp/c5.wav"}
    assert main.parse_sample_args(None) == {}
    with pytest.raises(ValueError):
        main.parse_sample_args(["H9=x.wav"])


def test_editor_uses_configured_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"editor": {"default_duration_ms": 250, "undo_limit": 1}}))
    editor = main.build_editor(load_settings(path))

    editor.add_note("C5")
    editor.add_note("D5")

    assert [n.duration for n in editor.notes] == [250, 250]
    assert editor.score_name == "My Ocarina Song"
    assert editor.undo()
    assert not editor.undo()
