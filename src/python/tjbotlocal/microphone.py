"""Microphone capture stream with TJBot-style events.

Audio is captured with ``sounddevice`` as signed 16-bit mono PCM at the
decoder's sample rate.  The PortAudio callback only queues blocks; a
single dispatcher thread emits the events, so handlers never run
concurrently and may call :meth:`MicrophoneStream.stop` themselves.
"""

from __future__ import annotations

import logging
import queue
import re
import threading
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable

import numpy as np

from .constants import (
    BLOCK_SIZE,
    CHANNELS,
    EVENT_DATA,
    EVENT_PROCESS_EXIT_COMPLETE,
    EVENT_SILENCE,
    EVENT_START_COMPLETE,
    MICROPHONE_EVENTS,
    SAMPLE_DTYPE,
    SAMPLE_RATE,
    SILENCE_BLOCKS,
    SILENCE_RMS_THRESHOLD,
)

if TYPE_CHECKING:
    from .config import Configuration

logger = logging.getLogger(__name__)

_ALSA_NAME = re.compile(r"^(?:plug)?hw:(\d+),(\d+)$")
_STOP = object()


def list_input_devices() -> list[tuple[int, str]]:
    """Return (index, name) for every device with capture channels."""
    import sounddevice as sd

    return [
        (i, dev["name"])
        for i, dev in enumerate(sd.query_devices())
        if dev["max_input_channels"] > 0
    ]


def resolve_device(device_id: str | int | None) -> int | str | None:
    """Map a TJBot microphone id onto a sounddevice device.

    ALSA ids such as ``plughw:1,0`` are matched against the ``(hw:1,0)``
    suffix PortAudio puts in device names.  Device indices change
    between reboots, so searching by name is preferred over a fixed
    index.  Returns None for the default device.
    """
    if device_id is None or device_id == "default":
        return None
    if isinstance(device_id, int):
        return device_id
    device_id = str(device_id).strip()
    if device_id.isdigit():
        return int(device_id)

    match = _ALSA_NAME.match(device_id)
    if match:
        needle = f"(hw:{match.group(1)},{match.group(2)})"
        for index, name in list_input_devices():
            if needle in name:
                return index
        logger.warning("Microphone %s not found, using default device", device_id)
        return None

    return device_id


def rms_level(block: bytes) -> float:
    """RMS energy of a 16-bit PCM block, normalised to [0, 1]."""
    samples = np.frombuffer(block, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    # float64 avoids int16 overflow when squaring
    normalised = samples.astype(np.float64) / 32768.0
    return float(np.sqrt(np.mean(normalised**2)))


class MicrophoneStream:
    """Single-use microphone capture stream.

    Emits ``startComplete`` once capture is running, ``data`` with each
    audio block (bytes), ``silence`` after *silence_blocks* consecutive
    quiet blocks, and ``processExitComplete`` once capture has ended.
    A stopped stream cannot be started again; open a new one.
    """

    def __init__(
        self,
        device: int | str | None = None,
        sample_rate: int = SAMPLE_RATE,
        block_size: int = BLOCK_SIZE,
        silence_threshold: float = SILENCE_RMS_THRESHOLD,
        silence_blocks: int = SILENCE_BLOCKS,
        stream_factory: Callable[..., Any] | None = None,
    ):
        self.device = device
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.silence_threshold = silence_threshold
        self.silence_blocks = silence_blocks
        self._stream_factory = stream_factory

        self._handlers: dict[str, list[Callable[..., Any]]] = defaultdict(list)
        self._queue: queue.Queue[Any] = queue.Queue()
        self._stream: Any = None
        self._thread: threading.Thread | None = None
        self._running = False
        self._used = False
        self._silent_count = 0

    @property
    def running(self) -> bool:
        return self._running

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe *handler* to *event*."""
        if event not in MICROPHONE_EVENTS:
            raise ValueError(f"Unknown microphone event: {event!r}")
        self._handlers[event].append(handler)

    def start(self) -> None:
        """Open the audio device and begin dispatching events."""
        if self._used:
            raise RuntimeError("Microphone stream cannot be restarted; open a new one")
        self._used = True

        factory = self._stream_factory
        if factory is None:
            import sounddevice as sd

            factory = sd.RawInputStream
        self._stream = factory(
            samplerate=self.sample_rate,
            blocksize=self.block_size,
            device=self.device,
            channels=CHANNELS,
            dtype=SAMPLE_DTYPE,
            callback=self._callback,
        )
        # Blocks captured before the dispatcher runs wait in the queue
        # behind startComplete.
        self._running = True
        try:
            self._stream.start()
        except BaseException:
            self._running = False
            self._stream.close()
            raise
        self._thread = threading.Thread(
            target=self._dispatch, name="tjbotlocal-microphone", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Release the audio device.

        Safe to call from an event handler.  Blocks still queued are
        dropped and ``processExitComplete`` is the last event emitted.
        """
        if not self._running:
            return
        self._running = False
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._queue.put(_STOP)

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self) -> MicrophoneStream:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # --- Internals ---

    def _callback(self, indata, frames, time_info, status) -> None:
        if self._running:
            self._queue.put(bytes(indata))

    def _emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            handler(*args)

    def _dispatch(self) -> None:
        self._emit(EVENT_START_COMPLETE)
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    break
                if self._running:
                    self._handle_block(item)
            finally:
                self._queue.task_done()
        self._emit(EVENT_PROCESS_EXIT_COMPLETE)

    def _handle_block(self, block: bytes) -> None:
        self._emit(EVENT_DATA, block)
        if not self._running:
            return
        if rms_level(block) < self.silence_threshold:
            self._silent_count += 1
            if self._silent_count >= self.silence_blocks:
                self._silent_count = 0
                self._emit(EVENT_SILENCE)
        else:
            self._silent_count = 0


def open_microphone(configuration: Configuration) -> MicrophoneStream:
    """Create a fresh microphone stream for one listening episode."""
    return MicrophoneStream(device=resolve_device(configuration.microphone_device_id))
