"""
Playback scheduler: the transport state machine.

Walks a note sequence one tone at a time on the asyncio event loop. Each
run (play or resume) owns a SessionToken; pause() and stop() change the
token's disposition and the run checks it right before and right after
every note, recording where to resume.

States: STOPPED -> PLAYING -> {PAUSED <-> PLAYING} -> STOPPED
"""
import asyncio
import traceback
from typing import Callable, Dict, List, Optional, Sequence

from audio.voice_manager import ToneInterrupted
from core.constants import TEMPO_DEFAULT, TEMPO_MAX, TEMPO_MIN, pitch_to_frequency
from core.models import Note, PlaybackState

StateListener = Callable[[PlaybackState, Optional[int]], None]


def effective_duration_ms(duration: float, tempo: float) -> float:
    """Authored duration scaled by tempo percentage (200 halves, 50 doubles)."""
    return duration * (100.0 / tempo)


def validate_tempo(tempo: float) -> float:
    if not (TEMPO_MIN <= tempo <= TEMPO_MAX):
        raise ValueError(f"Tempo must be {TEMPO_MIN}-{TEMPO_MAX}%, got {tempo}")
    return tempo


class SessionToken:
    """Disposition of one playback run."""

    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"

    def __init__(self):
        self.disposition = self.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.disposition == self.ACTIVE

    def __repr__(self):
        return f"SessionToken({self.disposition})"


class PlaybackScheduler:
    """
    Drives a ToneSynthesizer through a note sequence.

    The synthesizer only needs `async produce_tone(frequency, duration_ms,
    sample_source)`, `stop_all()` and `close()`.

    Observers read `state`/`current_index` or register a listener; they
    never mutate the session.
    """

    def __init__(self, synthesizer, tempo: float = TEMPO_DEFAULT,
                 repeat: bool = False, settle_delay_ms: float = 50):
        """
        Args:
            synthesizer: Tone producer
            tempo: Tempo percentage (50-200)
            repeat: Loop the sequence
            settle_delay_ms: Pause between cancelling an old session and
                starting the first tone of a new one
        """
        self.synthesizer = synthesizer
        self._tempo = validate_tempo(tempo)
        self._repeat = bool(repeat)
        self.settle_delay_ms = settle_delay_ms

        # Session
        self._state = PlaybackState.STOPPED
        self._current_index: Optional[int] = None
        self._notes: Sequence[Note] = ()
        self._samples: Dict[str, object] = {}
        self._resume_cursor = 0
        self._token: Optional[SessionToken] = None
        self._task: Optional[asyncio.Task] = None

        self._listeners: List[StateListener] = []
        self._stopped = asyncio.Event()
        self._stopped.set()

    # Observed state

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def current_index(self) -> Optional[int]:
        return self._current_index

    @property
    def tempo(self) -> float:
        return self._tempo

    @property
    def repeat(self) -> bool:
        return self._repeat

    @property
    def resume_cursor(self) -> int:
        return self._resume_cursor

    def add_listener(self, callback: StateListener):
        """Call callback(state, current_index) on every change."""
        self._listeners.append(callback)

    def _publish(self, state: PlaybackState, index: Optional[int]):
        self._state = state
        self._current_index = index
        if state == PlaybackState.STOPPED:
            self._stopped.set()
        else:
            self._stopped.clear()
        for callback in list(self._listeners):
            callback(state, index)

    async def wait_stopped(self):
        """Wait until the transport is stopped."""
        await self._stopped.wait()

    # Settings

    def set_tempo(self, tempo: float):
        """Applies from the next note on."""
        self._tempo = validate_tempo(tempo)

    def set_repeat(self, repeat: bool):
        self._repeat = bool(repeat)

    def set_samples(self, samples: Optional[Dict[str, object]]):
        """Replace the pitch -> sample override map (next note on)."""
        self._samples = dict(samples or {})

    # Transport

    def play(self, notes: Sequence[Note],
             samples: Optional[Dict[str, object]] = None) -> Optional[asyncio.Task]:
        """
        Start a fresh session at the first note.

        Any running session is cancelled first. Does nothing for an empty
        sequence.

        Returns:
            The run task, or None if there was nothing to play
        """
        notes = tuple(notes)
        if not notes:
            return None

        loop = asyncio.get_running_loop()
        previous = self._task
        self._cancel_session()

        self._notes = notes
        self._samples = dict(samples or {})
        self._resume_cursor = 0
        self._token = SessionToken()
        self._publish(PlaybackState.PLAYING, None)

        print(f"[PLAY] {len(notes)} notes at {self._tempo}% tempo")
        self._task = loop.create_task(self._run(self._token, previous, settle=True))
        return self._task

    def pause(self) -> Optional[asyncio.Task]:
        """
        Toggle pause.

        PLAYING -> PAUSED silences the current tone. PAUSED -> PLAYING
        resumes at the preserved cursor with the current tempo and samples.

        Returns:
            The resumed run task when resuming, else None
        """
        if self._state == PlaybackState.PLAYING:
            self._token.disposition = SessionToken.PAUSED
            self.synthesizer.stop_all()
            self._publish(PlaybackState.PAUSED, self._current_index)
            print(f"[PAUSE] At note {self._current_index}")
            return None

        if self._state == PlaybackState.PAUSED:
            loop = asyncio.get_running_loop()
            previous = self._task
            self._token = SessionToken()
            self._publish(PlaybackState.PLAYING, self._current_index)
            print("[RESUME] Continuing playback")
            self._task = loop.create_task(self._run(self._token, previous, settle=False))
            return self._task

        return None

    def stop(self):
        """Cancel the session and reset to stopped, whatever the state."""
        was_stopped = self._state == PlaybackState.STOPPED
        self._cancel_session()
        self._resume_cursor = 0
        self._publish(PlaybackState.STOPPED, None)
        if not was_stopped:
            print("[STOP] Playback stopped")

    async def shutdown(self):
        """Stop playback, wait for the run to unwind, release audio."""
        self.stop()
        if self._task is not None and not self._task.done():
            await asyncio.wait([self._task])
        self._task = None
        self.synthesizer.close()

    def _cancel_session(self):
        if self._token is not None:
            self._token.disposition = SessionToken.CANCELLED
        self.synthesizer.stop_all()

    # Iteration

    async def _run(self, token: SessionToken, previous: Optional[asyncio.Task], settle: bool):
        # The previous run records its resume cursor before it returns
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        if settle and self.settle_delay_ms > 0:
            await asyncio.sleep(self.settle_delay_ms / 1000.0)
        if not token.is_active:
            return

        try:
            while await self._play_from_cursor(token):
                if not self._repeat:
                    self._finish(token)
                    return
                self._resume_cursor = 0
                print("[PLAYBACK] Repeating from the start")
        except Exception as e:
            print(f"[PLAYBACK ERROR] {e}")
            traceback.print_exc()
            if token is self._token:
                token.disposition = SessionToken.CANCELLED
                self.synthesizer.stop_all()
                self._resume_cursor = 0
                self._publish(PlaybackState.STOPPED, None)

    async def _play_from_cursor(self, token: SessionToken) -> bool:
        """
        Play notes from the resume cursor to the end.

        Returns:
            True if the sequence completed, False if paused or cancelled
        """
        notes = self._notes
        index = self._resume_cursor

        while index < len(notes):
            if not token.is_active:
                self._suspend(token, index)
                return False

            note = notes[index]
            self._publish(PlaybackState.PLAYING, index)
            duration = effective_duration_ms(note.duration, self._tempo)

            try:
                await self.synthesizer.produce_tone(
                    pitch_to_frequency(note.pitch),
                    duration,
                    self._samples.get(note.pitch),
                )
            except ToneInterrupted:
                # Silenced mid-note: play it again on resume
                self._suspend(token, index)
                return False

            if not token.is_active:
                self._suspend(token, index + 1)
                return False

            index += 1

        return True

    def _suspend(self, token: SessionToken, cursor: int):
        # Cancelled runs leave the cursor to stop()/play()
        if token.disposition == SessionToken.PAUSED:
            self._resume_cursor = cursor

    def _finish(self, token: SessionToken):
        if token is not self._token:
            return
        self._resume_cursor = 0
        self._publish(PlaybackState.STOPPED, None)
        print("[PLAYBACK] Finished")
