"""
Ocarina Studio
Main entry point
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

from audio.context import AudioContext
from audio.scheduler import PlaybackScheduler
from audio.synthesizer import ToneSynthesizer
from core.backend import InMemoryBackend, load_preset, seed_preset_songs
from core.constants import KEYBOARD_SHORTCUTS, NOTE_LABELS, clamp_tempo, is_diatonic
from core.editor import ScoreEditor
from core.fingering import build_default_map, resolve, render_fingering
from core.models import Score
from core.persistence import SCORE_SUFFIX, ScoreFile
from core.presets import PRESET_SONGS
from core.settings import load_settings
from plugins.registry import initialize_registry
from recognition.recognizer import (
    RECOGNIZED_SCORE_NAME,
    RecognizerConfig,
    ScoreRecognizer,
    annotate_fingerings,
)


def build_synthesizer(settings) -> ToneSynthesizer:
    """Audio context + synthesizer from the "audio" settings."""
    audio = settings["audio"]
    context = AudioContext(
        sample_rate=audio["sample_rate"],
        buffer_size=audio["buffer_size"],
        device=audio["output_device"],
    )
    return ToneSynthesizer(context, initialize_registry())


def build_editor(settings) -> ScoreEditor:
    """Empty editor configured from the "editor" settings."""
    options = settings["editor"]
    return ScoreEditor(
        options["default_score_name"],
        default_duration=options["default_duration_ms"],
        undo_limit=options["undo_limit"],
    )


def resolve_score(target: str) -> Score:
    """A .ocarina file path or a preset song ID."""
    if target.endswith(SCORE_SUFFIX) or Path(target).exists():
        print(f"[LOAD] {target}")
        return ScoreFile.load(Path(target))

    backend = InMemoryBackend()
    seed_preset_songs(backend)
    return load_preset(backend, target).score


def parse_sample_args(entries: Optional[List[str]]) -> Dict[str, str]:
    """PITCH=PATH_OR_URL pairs -> sample override map."""
    samples = {}
    for entry in entries or []:
        pitch, _, source = entry.partition("=")
        if not is_diatonic(pitch) or not source:
            raise ValueError(f"Invalid sample override '{entry}', expected PITCH=PATH")
        samples[pitch] = source
    return samples


async def run_playback(score: Score, settings, tempo: float, repeat: bool,
                       samples: Dict[str, str]):
    playback = settings["playback"]
    scheduler = PlaybackScheduler(
        build_synthesizer(settings),
        tempo=tempo,
        repeat=repeat,
        settle_delay_ms=playback["settle_delay_ms"],
    )

    def show_progress(state, index):
        if index is not None:
            print(f"  [{index + 1}/{len(score.notes)}] {score.notes[index].pitch}")

    scheduler.add_listener(show_progress)
    try:
        scheduler.play(score.notes, samples)
        await scheduler.wait_stopped()
    finally:
        await scheduler.shutdown()


async def run_keys(keys: str, settings, duration_ms: int):
    synthesizer = build_synthesizer(settings)
    try:
        for key in keys.lower():
            pitch = KEYBOARD_SHORTCUTS.get(key)
            if pitch is None:
                print(f"[PLAY] No note on key '{key}'")
                continue
            print(f"[PLAY] {key} -> {pitch}")
            await synthesizer.play_pitch(pitch, duration_ms)
    finally:
        synthesizer.close()


def cmd_play(args, settings) -> int:
    score = resolve_score(args.target)
    tempo = clamp_tempo(args.tempo if args.tempo is not None else settings["playback"]["tempo"])
    repeat = args.repeat or settings["playback"]["repeat"]
    samples = parse_sample_args(args.sample)

    print(f"=== {score.name} ({len(score.notes)} notes) ===")
    try:
        asyncio.run(run_playback(score, settings, tempo, repeat, samples))
    except KeyboardInterrupt:
        print("[STOP] Interrupted")
    return 0


def cmd_keys(args, settings) -> int:
    duration = args.duration if args.duration is not None else settings["editor"]["default_duration_ms"]
    try:
        asyncio.run(run_keys(args.keys, settings, duration))
    except KeyboardInterrupt:
        print("[STOP] Interrupted")
    return 0


def cmd_recognize(args, settings) -> int:
    recognizer = ScoreRecognizer(RecognizerConfig.from_settings(settings))
    result = asyncio.run(recognizer.recognize(Path(args.image)))
    if recognizer.error:
        print(f"Recognition failed: {recognizer.error}", file=sys.stderr)
        return 1

    print(f"{len(result.notes)} notes, {round(result.confidence * 100)}% confidence")
    for index, (note, fingering) in enumerate(annotate_fingerings(result, build_default_map()), 1):
        print(f"  {index:2d}. {note.pitch:<3} {note.duration:5d} ms  {render_fingering(fingering)}")

    if args.save:
        editor = build_editor(settings)
        editor.load_score(result.notes, name=RECOGNIZED_SCORE_NAME)
        path = ScoreFile.save(editor.to_score(), Path(args.save))
        editor.mark_saved()
        print(f"[SAVE] {path}")
    return 0


def cmd_presets(args, settings) -> int:
    for song in PRESET_SONGS:
        seconds = song.score.total_duration / 1000.0
        print(f"  {song.id:<28} {song.display_name} ({len(song.score.notes)} notes, {seconds:.1f}s)")
    return 0


def cmd_fingering(args, settings) -> int:
    pitches = [args.pitch] if args.pitch else list(KEYBOARD_SHORTCUTS.values())
    for pitch in pitches:
        print(f"  {pitch:<3} {NOTE_LABELS.get(pitch, '?'):<2} {render_fingering(resolve(pitch))}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ocarina-studio", description="Ocarina composition and playback studio")
    p.add_argument("--config", dest="config", default=None, help="Settings file (default ~/.ocarina_studio/settings.json)")
    sub = p.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Play a .ocarina score or a preset song")
    play.add_argument("target", help="Score file or preset ID")
    play.add_argument("--tempo", type=float, default=None, help="Tempo percentage (50-200)")
    play.add_argument("--repeat", action="store_true", help="Loop until interrupted")
    play.add_argument("--sample", action="append", metavar="PITCH=PATH",
                      help="Play a recorded sample for a pitch (file path or URL)")
    play.set_defaults(func=cmd_play)

    keys = sub.add_parser("keys", help="Play notes by keyboard letter (a s d f g h j k)")
    keys.add_argument("keys", help="Letters to play in order")
    keys.add_argument("--duration", type=int, default=None,
                      help="Milliseconds per note (default: editor.default_duration_ms)")
    keys.set_defaults(func=cmd_keys)

    recognize = sub.add_parser("recognize", help="Read notes from a sheet music image")
    recognize.add_argument("image", help="Image file")
    recognize.add_argument("--save", default=None, help="Write the result to a .ocarina file")
    recognize.set_defaults(func=cmd_recognize)

    presets = sub.add_parser("presets", help="List the built-in songs")
    presets.set_defaults(func=cmd_presets)

    fingering = sub.add_parser("fingering", help="Show fingerings")
    fingering.add_argument("pitch", nargs="?", default=None, help="Pitch (default: all)")
    fingering.set_defaults(func=cmd_fingering)

    return p


def main(argv=None) -> int:
    """Launch Ocarina Studio."""
    args = build_parser().parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    try:
        return args.func(args, settings)
    except (IOError, ValueError, KeyError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
