"""Tests for the playback scheduler transport state machine."""
import asyncio

import pytest

from audio.scheduler import PlaybackScheduler, SessionToken, effective_duration_ms
from core.constants import pitch_to_frequency
from core.models import PlaybackState
from tests.helpers import FakeSynthesizer, make_notes, wait_until


def record_changes(scheduler):
    seen = []
    scheduler.add_listener(lambda state, index: seen.append((state, index)))
    return seen


def played_indices(seen):
    return [index for _, index in seen if index is not None]


def test_effective_duration_scales_inversely_with_tempo():
    assert effective_duration_ms(500, 100) == 500
    assert effective_duration_ms(500, 200) == 250
    assert effective_duration_ms(500, 50) == 1000


def test_tempo_is_validated():
    with pytest.raises(ValueError):
        PlaybackScheduler(FakeSynthesizer(), tempo=20)

    scheduler = PlaybackScheduler(FakeSynthesizer())
    with pytest.raises(ValueError):
        scheduler.set_tempo(250)
    scheduler.set_tempo(150)
    assert scheduler.tempo == 150


def test_play_empty_sequence_is_noop():
    synth = FakeSynthesizer()
    scheduler = PlaybackScheduler(synth)

    assert scheduler.play([]) is None
    assert scheduler.state == PlaybackState.STOPPED
    assert scheduler.current_index is None
    assert synth.calls == []


def test_play_visits_every_index_in_order_then_stops():
    async def scenario():
        synth = FakeSynthesizer()
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)
        seen = record_changes(scheduler)
        notes = make_notes("C5", "E5", "G5")

        scheduler.play(notes)
        assert scheduler.state == PlaybackState.PLAYING
        await asyncio.wait_for(scheduler.wait_stopped(), 1)

        assert played_indices(seen) == [0, 1, 2]
        assert seen[-1] == (PlaybackState.STOPPED, None)
        assert scheduler.current_index is None
        assert scheduler.resume_cursor == 0
        assert [call[0] for call in synth.calls] == [pitch_to_frequency(n.pitch) for n in notes]

    asyncio.run(scenario())


def test_pause_then_resume_continues_at_suspended_note():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)
        notes = make_notes("C5", "D5", "E5", "F5")

        scheduler.play(notes)
        await wait_until(lambda: len(synth.calls) == 1)
        synth.complete()
        await wait_until(lambda: len(synth.calls) == 2)
        assert scheduler.current_index == 1

        scheduler.pause()
        assert scheduler.state == PlaybackState.PAUSED
        assert scheduler.current_index == 1
        await wait_until(lambda: scheduler.resume_cursor == 1)

        scheduler.pause()
        assert scheduler.state == PlaybackState.PLAYING
        await wait_until(lambda: len(synth.calls) == 3)

        assert synth.calls[2][0] == pitch_to_frequency("D5")
        assert scheduler.current_index == 1
        scheduler.stop()

    asyncio.run(scenario())


def test_immediate_resume_waits_for_the_paused_run():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("C5", "D5", "E5"))
        await wait_until(lambda: len(synth.calls) == 1)
        synth.complete()
        await wait_until(lambda: len(synth.calls) == 2)

        scheduler.pause()
        scheduler.pause()
        await wait_until(lambda: len(synth.calls) == 3)

        assert synth.calls[2][0] == pitch_to_frequency("D5")
        scheduler.stop()

    asyncio.run(scenario())


def test_stop_from_any_state_resets_session():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)
        notes = make_notes("C5", "D5", "E5")

        # playing
        scheduler.play(notes)
        await wait_until(lambda: len(synth.calls) == 1)
        scheduler.stop()
        assert (scheduler.state, scheduler.current_index) == (PlaybackState.STOPPED, None)

        # paused
        scheduler.play(notes)
        await wait_until(lambda: len(synth.calls) == 2)
        scheduler.pause()
        assert scheduler.state == PlaybackState.PAUSED
        scheduler.stop()
        assert (scheduler.state, scheduler.current_index) == (PlaybackState.STOPPED, None)

        # stopped
        scheduler.stop()
        assert (scheduler.state, scheduler.current_index) == (PlaybackState.STOPPED, None)

        # The cancelled runs never come back to life
        for _ in range(20):
            await asyncio.sleep(0)
        assert len(synth.calls) == 2
        assert scheduler.state == PlaybackState.STOPPED
        assert scheduler.resume_cursor == 0

    asyncio.run(scenario())


def test_repeat_restarts_without_stopping():
    async def scenario():
        synth = FakeSynthesizer()
        scheduler = PlaybackScheduler(synth, repeat=True, settle_delay_ms=0)
        seen = record_changes(scheduler)

        scheduler.play(make_notes("C5", "E5", "G5"))
        await wait_until(lambda: len(synth.calls) >= 7)
        before_stop = list(seen)
        scheduler.stop()

        assert played_indices(before_stop)[:7] == [0, 1, 2, 0, 1, 2, 0]
        assert all(state == PlaybackState.PLAYING for state, _ in before_stop)
        assert scheduler.state == PlaybackState.STOPPED

    asyncio.run(scenario())


def test_tempo_change_applies_to_next_note():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("C5", "D5", duration=500))
        await wait_until(lambda: len(synth.calls) == 1)
        scheduler.set_tempo(200)
        synth.complete()
        await wait_until(lambda: len(synth.calls) == 2)
        synth.complete()
        await asyncio.wait_for(scheduler.wait_stopped(), 1)

        assert [call[1] for call in synth.calls] == [500, 250]

    asyncio.run(scenario())


def test_slow_tempo_doubles_durations():
    async def scenario():
        synth = FakeSynthesizer()
        scheduler = PlaybackScheduler(synth, tempo=50, settle_delay_ms=0)
        scheduler.play(make_notes("C5", "G5", duration=250))
        await asyncio.wait_for(scheduler.wait_stopped(), 1)
        assert [call[1] for call in synth.calls] == [500, 500]

    asyncio.run(scenario())


def test_sample_overrides_follow_pitch_and_resume_uses_new_map():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("E5", "G5"), {"E5": b"e-sample"})
        await wait_until(lambda: len(synth.calls) == 1)
        assert synth.calls[0][2] == b"e-sample"

        scheduler.pause()
        scheduler.set_samples({"E5": b"new-e"})
        scheduler.pause()
        await wait_until(lambda: len(synth.calls) == 2)
        assert synth.calls[1][2] == b"new-e"

        synth.complete()
        await wait_until(lambda: len(synth.calls) == 3)
        assert synth.calls[2][2] is None
        scheduler.stop()

    asyncio.run(scenario())


def test_play_while_playing_replaces_session():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("C5", "D5", "E5"))
        await wait_until(lambda: len(synth.calls) == 1)

        scheduler.play(make_notes("G5"))
        assert synth.stop_calls >= 1
        await wait_until(lambda: len(synth.calls) == 2)
        assert synth.calls[1][0] == pitch_to_frequency("G5")
        assert scheduler.current_index == 0

        synth.complete()
        await asyncio.wait_for(scheduler.wait_stopped(), 1)
        assert len(synth.calls) == 2

    asyncio.run(scenario())


def test_settle_delay_runs_before_first_tone():
    async def scenario():
        synth = FakeSynthesizer()
        scheduler = PlaybackScheduler(synth, settle_delay_ms=20)

        scheduler.play(make_notes("C5"))
        await asyncio.sleep(0)
        assert synth.calls == []
        await asyncio.wait_for(scheduler.wait_stopped(), 1)
        assert len(synth.calls) == 1

    asyncio.run(scenario())


def test_synthesizer_failure_aborts_to_stopped(capsys):
    async def scenario():
        synth = FakeSynthesizer(fail_at=1)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("C5", "D5", "E5"))
        await asyncio.wait_for(scheduler.wait_stopped(), 1)

        assert scheduler.state == PlaybackState.STOPPED
        assert scheduler.current_index is None
        assert len(synth.calls) == 2

    asyncio.run(scenario())
    assert "[PLAYBACK ERROR]" in capsys.readouterr().out


def test_shutdown_stops_and_closes_synthesizer():
    async def scenario():
        synth = FakeSynthesizer(auto_complete=False)
        scheduler = PlaybackScheduler(synth, settle_delay_ms=0)

        scheduler.play(make_notes("C5", "D5"))
        await wait_until(lambda: len(synth.calls) == 1)
        await scheduler.shutdown()

        assert synth.closed
        assert scheduler.state == PlaybackState.STOPPED

    asyncio.run(scenario())


def test_session_token_dispositions():
    token = SessionToken()
    assert token.is_active
    token.disposition = SessionToken.PAUSED
    assert not token.is_active
