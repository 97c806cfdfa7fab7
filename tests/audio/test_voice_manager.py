"""Tests for voices, the voice manager and the audio context mixer."""
import asyncio

import numpy as np
import pytest

from audio.context import AudioContext
from audio.voice_manager import ToneInterrupted, Voice, VoiceManager
from tests.helpers import FakeStreamFactory


def test_voice_chunks_are_padded_and_finish():
    voice = Voice(np.ones(5, dtype=np.float32))

    first = voice.get_next_chunk(3)
    assert first.tolist() == [1, 1, 1]
    assert not voice.is_finished

    second = voice.get_next_chunk(3)
    assert second.tolist() == [1, 1, 0]
    assert voice.is_finished


def test_manager_mixes_and_drops_finished_voices():
    manager = VoiceManager()
    manager.add(Voice(np.full(4, 0.25, dtype=np.float32)))
    manager.add(Voice(np.full(2, 0.5, dtype=np.float32)))

    block = manager.render_frame(4)

    assert block.tolist() == pytest.approx([0.75, 0.75, 0.25, 0.25])
    assert not manager.has_active_voices()


def test_stop_all_interrupts_everything_once():
    manager = VoiceManager()
    voices = [Voice(np.ones(100, dtype=np.float32)) for _ in range(3)]
    for voice in voices:
        manager.add(voice)

    assert manager.stop_all() == 3
    assert all(v.is_finished for v in voices)
    assert manager.stop_all() == 0


def test_completion_future_resolves_on_loop():
    async def scenario():
        loop = asyncio.get_running_loop()
        manager = VoiceManager()

        finished = Voice(np.ones(8, dtype=np.float32), loop)
        silenced = Voice(np.ones(8000, dtype=np.float32), loop)
        manager.add(finished)
        manager.add(silenced)

        manager.render_frame(8)
        await asyncio.wait_for(finished.done, 1)

        manager.stop_all()
        with pytest.raises(ToneInterrupted):
            await asyncio.wait_for(silenced.done, 1)

    asyncio.run(scenario())


def test_empty_voice_completes_immediately():
    async def scenario():
        manager = VoiceManager()
        voice = Voice(np.zeros(0, dtype=np.float32), asyncio.get_running_loop())
        manager.add(voice)
        await asyncio.wait_for(voice.done, 1)
        assert not manager.has_active_voices()

    asyncio.run(scenario())


def test_context_normalizes_loud_mix_to_stereo():
    context = AudioContext(sample_rate=8000, buffer_size=4, stream_factory=FakeStreamFactory())
    context.voice_manager.add(Voice(np.full(4, 2.0, dtype=np.float32)))

    block = context.render_frame(4)

    assert block.shape == (4, 2)
    assert np.allclose(block, 0.8)


def test_context_passes_device_settings_to_stream():
    factory = FakeStreamFactory()
    context = AudioContext(sample_rate=22050, buffer_size=128, device="Default", stream_factory=factory)

    context.acquire()
    context.acquire()

    assert len(factory.streams) == 1
    kwargs = factory.stream.kwargs
    assert kwargs["samplerate"] == 22050
    assert kwargs["blocksize"] == 128
    assert kwargs["channels"] == 2
    assert kwargs["device"] is None

    context.close()
    context.close()
    assert factory.stream.closed
    assert not context.is_open
