"""Local wake-word gate in front of remote listening."""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable

from .constants import (
    EVENT_DATA,
    EVENT_PROCESS_EXIT_COMPLETE,
    EVENT_SILENCE,
    EVENT_START_COMPLETE,
)
from .decoder import DecoderSession

logger = logging.getLogger(__name__)


class GateState(enum.Enum):
    IDLE = "idle"
    LOCAL_LISTENING = "local_listening"
    HANDOFF_TO_REMOTE = "handoff_to_remote"
    REMOTE_LISTENING = "remote_listening"


class WakeWordGate:
    """Spot a wake word on-device before handing over to remote listening.

    Each call to :meth:`start` opens a fresh microphone stream from
    *microphone_factory* and feeds its audio to *decoder*.  Utterances
    are opened when the stream starts, restarted on every silence and
    closed when the stream exits, so the decoder hypothesis never spans
    a pause.  The first hypothesis containing *wake_word* triggers the
    handoff:

    1. ``on_keyword(hypothesis)`` while the microphone is still held,
    2. the microphone is stopped,
    3. ``on_handoff()`` to start remote listening.

    Matching is a case-sensitive substring test, since partial
    hypotheses often embed the wake word in a longer guess.
    """

    def __init__(
        self,
        wake_word: str,
        decoder: DecoderSession,
        microphone_factory: Callable[[], Any],
        on_handoff: Callable[[], Any],
        on_keyword: Callable[[str], Any] | None = None,
        log: logging.Logger | None = None,
    ):
        if not wake_word:
            raise ValueError("wake_word must not be empty")
        self.wake_word = wake_word
        self._decoder = decoder
        self._microphone_factory = microphone_factory
        self._on_handoff = on_handoff
        self._on_keyword = on_keyword
        self._log = log or logger

        self._state = GateState.IDLE
        self._mic: Any = None
        self._in_utterance = False
        self.utterances = 0

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def active(self) -> bool:
        """True while the gate owns the microphone."""
        return self._state is GateState.LOCAL_LISTENING

    @property
    def in_utterance(self) -> bool:
        return self._in_utterance

    def start(self) -> None:
        """Begin listening locally for the wake word."""
        if self.active:
            return

        # A stopped stream cannot be restarted, so every episode gets its own.
        mic = self._microphone_factory()
        mic.on(EVENT_START_COMPLETE, lambda: self._on_start_complete(mic))
        mic.on(EVENT_PROCESS_EXIT_COMPLETE, lambda: self._on_process_exit(mic))
        mic.on(EVENT_SILENCE, lambda: self._on_silence(mic))
        mic.on(EVENT_DATA, lambda data: self._on_data(mic, data))
        self._mic = mic
        self._state = GateState.LOCAL_LISTENING

        self._log.debug("Starting microphone for local listening")
        try:
            mic.start()
        except BaseException:
            self._mic = None
            self._state = GateState.IDLE
            self._end_utterance()
            raise

    def stop(self) -> None:
        """Abandon local listening and release the microphone."""
        mic, self._mic = self._mic, None
        if self._state in (GateState.LOCAL_LISTENING, GateState.HANDOFF_TO_REMOTE):
            self._state = GateState.IDLE
        if mic is not None:
            mic.stop()

    def reset(self) -> None:
        """Return to IDLE once remote listening is over."""
        self.stop()
        self._state = GateState.IDLE

    # --- Utterance boundaries ---

    def _start_utterance(self) -> None:
        if self._in_utterance:
            self._decoder.end_utt()
        self._decoder.start_utt()
        self._in_utterance = True
        self.utterances += 1

    def _end_utterance(self) -> None:
        if self._in_utterance:
            self._decoder.end_utt()
            self._in_utterance = False

    def _owns(self, mic: Any) -> bool:
        return mic is self._mic

    def _on_start_complete(self, mic: Any) -> None:
        if not self._owns(mic):
            return
        self._log.debug("Starting utterance on local decoder")
        self._start_utterance()

    def _on_process_exit(self, mic: Any) -> None:
        # a stream released by the handoff still closes its utterance
        if not (self._owns(mic) or self._mic is None):
            return
        self._log.debug("Ending utterance on local decoder")
        self._end_utterance()

    def _on_silence(self, mic: Any) -> None:
        if not (self.active and self._owns(mic)):
            return
        self._log.debug("New utterance on local decoder")
        self._start_utterance()

    # --- Frames ---

    def _on_data(self, mic: Any, data: bytes) -> None:
        if not (self.active and self._owns(mic)) or not data or not self._in_utterance:
            return
        self._decoder.process_raw(data, False, False)
        hyp = self._decoder.hyp()
        if hyp is None:
            return

        hypothesis = hyp.hypstr
        self._log.debug("Local: %s", hypothesis)
        if hypothesis and self.wake_word in hypothesis:
            self._handoff(mic, hypothesis)

    def _handoff(self, mic: Any, hypothesis: str) -> None:
        # stop() may run on another thread while a frame is being decoded
        if not self._owns(mic):
            return
        self._state = GateState.HANDOFF_TO_REMOTE
        self._log.debug("Wake word %s heard in %r", self.wake_word, hypothesis)
        if self._on_keyword is not None:
            self._on_keyword(hypothesis)

        if not self._owns(mic):
            if self._state is GateState.HANDOFF_TO_REMOTE:
                self._state = GateState.IDLE
            return
        self._mic = None
        mic.stop()

        self._state = GateState.REMOTE_LISTENING
        self._on_handoff()
