"""Tests for ToneSynthesizer against a fake output stream."""
import asyncio
import io

import numpy as np
import pytest
import requests
import soundfile as sf

from audio.context import AudioContext
from audio.synthesizer import ToneSynthesizer, ToneInterrupted
from core.constants import DEFAULT_FREQUENCY
from tests.helpers import FakeStreamFactory, wait_until

SAMPLE_RATE = 8000


def make_synth():
    factory = FakeStreamFactory()
    context = AudioContext(sample_rate=SAMPLE_RATE, buffer_size=256, stream_factory=factory)
    return ToneSynthesizer(context), factory


def wav_bytes(seconds, rate=SAMPLE_RATE, level=0.5):
    buffer = io.BytesIO()
    sf.write(buffer, np.full(int(seconds * rate), level, dtype=np.float32), rate, format="WAV")
    return buffer.getvalue()


def test_stream_opens_lazily_and_is_reused():
    async def scenario():
        synth, factory = make_synth()
        assert factory.streams == []

        first = asyncio.create_task(synth.produce_tone(523.25, 50))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())
        assert len(factory.streams) == 1
        assert factory.stream.started
        assert factory.stream.kwargs["samplerate"] == SAMPLE_RATE

        while not first.done():
            factory.stream.pump()
            await asyncio.sleep(0)
        await first

        second = asyncio.create_task(synth.produce_tone(659.25, 50))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())
        assert len(factory.streams) == 1
        synth.stop_all()
        with pytest.raises(ToneInterrupted):
            await second

    asyncio.run(scenario())


def test_tone_completes_after_buffer_is_played():
    async def scenario():
        synth, factory = make_synth()
        task = asyncio.create_task(synth.produce_tone(523.25, 100))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())

        blocks = []
        # 100ms + 10ms tail at 8kHz = 880 samples = 4 blocks of 256
        for _ in range(4):
            assert not task.done()
            blocks.append(factory.stream.pump())
            await asyncio.sleep(0)

        await asyncio.wait_for(task, 1)
        audio = np.concatenate(blocks)
        assert np.max(np.abs(audio)) > 0.1
        assert np.allclose(audio[:, 0], audio[:, 1])

    asyncio.run(scenario())


def test_stop_all_interrupts_in_flight_tone():
    async def scenario():
        synth, factory = make_synth()
        task = asyncio.create_task(synth.produce_tone(523.25, 500))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())

        assert synth.stop_all() == 1
        with pytest.raises(ToneInterrupted):
            await task
        assert not np.any(factory.stream.pump())

    asyncio.run(scenario())


def test_stop_all_is_idempotent():
    synth, _ = make_synth()
    assert synth.stop_all() == 0
    assert synth.stop_all() == 0


def test_play_pitch_reports_interruption():
    async def scenario():
        synth, factory = make_synth()
        task = asyncio.create_task(synth.play_pitch("A5", 300))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())
        synth.stop_all()
        assert await task is False

    asyncio.run(scenario())


def test_close_releases_stream():
    async def scenario():
        synth, factory = make_synth()
        task = asyncio.create_task(synth.produce_tone(523.25, 300))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())
        synth.close()
        with pytest.raises(ToneInterrupted):
            await task
        assert factory.stream.closed
        assert not synth.context.is_open

    asyncio.run(scenario())


def test_sample_is_shaped_with_release_ramp(tmp_path):
    path = tmp_path / "c5.wav"
    path.write_bytes(wav_bytes(1.0))
    synth, _ = make_synth()

    audio = synth.render_from_sample(str(path), 200)

    # Cut 50ms after the nominal end
    assert len(audio) == int((0.2 + 0.05) * SAMPLE_RATE)
    assert audio[0] == pytest.approx(0.4, abs=1e-3)
    assert audio[int(0.1 * SAMPLE_RATE)] == pytest.approx(0.2, abs=1e-2)
    assert np.allclose(audio[int(0.2 * SAMPLE_RATE):], 0.0)


def test_short_sample_ends_with_its_buffer():
    synth, _ = make_synth()
    audio = synth.render_from_sample(wav_bytes(0.1), 500)
    assert len(audio) == int(0.1 * SAMPLE_RATE)


def test_sample_is_resampled_to_context_rate():
    synth, _ = make_synth()
    decoded = synth.decode_sample(wav_bytes(1.0, rate=16000))
    assert len(decoded) == SAMPLE_RATE


def test_undecodable_sample_falls_back_to_default_tone(capsys):
    synth, _ = make_synth()

    audio = synth.render_from_sample(b"definitely not audio", 200)

    assert np.allclose(audio, synth.render_tone(DEFAULT_FREQUENCY, 200))
    assert "[SAMPLE]" in capsys.readouterr().out


def test_sample_url_is_fetched(monkeypatch):
    payload = wav_bytes(0.5)
    requested = []

    class Response:
        content = payload

        def raise_for_status(self):
            pass

    def fake_get(url, timeout):
        requested.append(url)
        return Response()

    monkeypatch.setattr(requests, "get", fake_get)
    synth, _ = make_synth()

    first = synth.decode_sample("https://samples.example/e5.wav")
    second = synth.decode_sample("https://samples.example/e5.wav")

    assert len(first) == int(0.5 * SAMPLE_RATE)
    assert second is first
    assert requested == ["https://samples.example/e5.wav"]


def test_unreachable_sample_url_falls_back(monkeypatch, capsys):
    def fake_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", fake_get)
    synth, _ = make_synth()

    audio = synth.render_from_sample("https://samples.example/missing.wav", 100)

    assert np.allclose(audio, synth.render_tone(DEFAULT_FREQUENCY, 100))
    assert "offline" in capsys.readouterr().out


def test_sample_tone_plays_through_context():
    async def scenario():
        synth, factory = make_synth()
        task = asyncio.create_task(synth.produce_tone(880.0, 100, wav_bytes(0.05)))
        await wait_until(lambda: synth.context.voice_manager.has_active_voices())

        block = factory.stream.pump(512)
        await asyncio.wait_for(task, 1)
        assert np.max(np.abs(block)) > 0

    asyncio.run(scenario())
