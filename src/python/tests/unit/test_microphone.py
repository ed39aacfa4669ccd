"""Unit tests for MicrophoneStream and device resolution."""

import sys
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from tjbotlocal.config import Configuration
from tjbotlocal.constants import SAMPLE_RATE
from tjbotlocal.microphone import (
    MicrophoneStream,
    list_input_devices,
    open_microphone,
    resolve_device,
    rms_level,
)

LOUD = b"\xff\x3f" * 160  # ~0.5 full scale
QUIET = b"\x00\x00" * 160

DEVICES = [
    (0, "HDA Intel PCH: ALC3246 Analog (hw:0,0)"),
    (2, "USB PnP Sound Device: Audio (hw:1,0)"),
]


class FakeInputStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.stopped = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True


class BrokenInputStream(FakeInputStream):
    def start(self):
        raise OSError("PortAudio error")


@pytest.fixture
def streams():
    return []


@pytest.fixture
def make_mic(streams):
    def factory(**kwargs):
        stream = FakeInputStream(**kwargs)
        streams.append(stream)
        return stream

    def make(**kwargs):
        return MicrophoneStream(stream_factory=factory, **kwargs)

    return make


def record(mic):
    events = []
    mic.on("startComplete", lambda: events.append("start"))
    mic.on("data", lambda data: events.append(("data", data)))
    mic.on("silence", lambda: events.append("silence"))
    mic.on("processExitComplete", lambda: events.append("exit"))
    return events


def feed(mic, stream, *blocks):
    callback = stream.kwargs["callback"]
    for block in blocks:
        callback(block, len(block) // 2, None, None)
    mic._queue.join()


# ---------------------------------------------------------------------------
# Device resolution
# ---------------------------------------------------------------------------

class TestResolveDevice:
    @pytest.fixture(autouse=True)
    def devices(self):
        with patch("tjbotlocal.microphone.list_input_devices", return_value=DEVICES):
            yield

    def test_plughw_matches_alsa_suffix(self):
        assert resolve_device("plughw:1,0") == 2

    def test_hw_matches_alsa_suffix(self):
        assert resolve_device("hw:0,0") == 0

    def test_unknown_alsa_device_falls_back_to_default(self):
        assert resolve_device("plughw:5,0") is None

    def test_default(self):
        assert resolve_device("default") is None
        assert resolve_device(None) is None

    def test_index(self):
        assert resolve_device("7") == 7
        assert resolve_device(4) == 4

    def test_name_passed_through(self):
        assert resolve_device("USB PnP") == "USB PnP"


class TestListInputDevices:
    def test_only_capture_devices(self):
        fake_sd = SimpleNamespace(
            query_devices=lambda: [
                {"name": "speaker", "max_input_channels": 0},
                {"name": "mic", "max_input_channels": 1},
            ]
        )
        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            assert list_input_devices() == [(1, "mic")]


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------

class TestRmsLevel:
    def test_silence_is_zero(self):
        assert rms_level(QUIET) == 0.0

    def test_empty_block(self):
        assert rms_level(b"") == 0.0

    def test_loud_block(self):
        assert rms_level(LOUD) == pytest.approx(0.5, abs=0.01)


# ---------------------------------------------------------------------------
# Stream lifecycle
# ---------------------------------------------------------------------------

class TestStream:
    def test_opens_16khz_mono_int16(self, make_mic, streams):
        mic = make_mic(device=2)
        mic.start()
        mic.stop()

        kwargs = streams[0].kwargs
        assert kwargs["samplerate"] == SAMPLE_RATE
        assert kwargs["channels"] == 1
        assert kwargs["dtype"] == "int16"
        assert kwargs["device"] == 2

    def test_events_in_order(self, make_mic, streams):
        mic = make_mic()
        events = record(mic)
        mic.start()
        feed(mic, streams[0], LOUD, LOUD)
        mic.stop()

        assert events == ["start", ("data", LOUD), ("data", LOUD), "exit"]

    def test_stop_releases_device(self, make_mic, streams):
        mic = make_mic()
        mic.start()
        assert streams[0].started
        assert mic.running

        mic.stop()

        assert streams[0].stopped
        assert streams[0].closed
        assert not mic.running

    def test_stop_twice_is_harmless(self, make_mic):
        mic = make_mic()
        events = record(mic)
        mic.start()
        mic.stop()
        mic.stop()
        assert events.count("exit") == 1

    def test_stop_before_start_is_noop(self, make_mic, streams):
        make_mic().stop()
        assert streams == []

    def test_cannot_restart(self, make_mic):
        mic = make_mic()
        mic.start()
        mic.stop()
        with pytest.raises(RuntimeError):
            mic.start()

    def test_unknown_event_rejected(self, make_mic):
        with pytest.raises(ValueError):
            make_mic().on("finished", lambda: None)

    def test_context_manager_stops(self, make_mic, streams):
        with make_mic() as mic:
            mic.start()
        assert streams[0].closed
        assert not mic.running

    def test_stop_from_handler_drops_queued_blocks(self, make_mic, streams):
        mic = make_mic()
        events = record(mic)
        mic.on("data", lambda data: mic.stop())
        mic.start()

        callback = streams[0].kwargs["callback"]
        callback(LOUD, 160, None, None)
        callback(LOUD, 160, None, None)
        mic._thread.join(timeout=5)

        assert events == ["start", ("data", LOUD), "exit"]


    def test_failed_start_releases_device(self, streams):
        def factory(**kwargs):
            stream = BrokenInputStream(**kwargs)
            streams.append(stream)
            return stream

        mic = MicrophoneStream(stream_factory=factory)
        events = record(mic)

        with pytest.raises(OSError):
            mic.start()

        assert streams[0].closed
        assert not mic.running
        assert mic._thread is None
        assert events == []
        mic.stop()


class TestSilence:
    def test_silence_after_consecutive_quiet_blocks(self, make_mic, streams):
        mic = make_mic(silence_blocks=2)
        events = record(mic)
        mic.start()
        feed(mic, streams[0], QUIET, QUIET)
        mic.stop()

        assert events == ["start", ("data", QUIET), ("data", QUIET), "silence", "exit"]

    def test_loud_block_resets_count(self, make_mic, streams):
        mic = make_mic(silence_blocks=2)
        events = record(mic)
        mic.start()
        feed(mic, streams[0], QUIET, LOUD, QUIET)
        mic.stop()

        assert "silence" not in events

    def test_silence_repeats_for_long_pauses(self, make_mic, streams):
        mic = make_mic(silence_blocks=2)
        events = record(mic)
        mic.start()
        feed(mic, streams[0], QUIET, QUIET, QUIET, QUIET)
        mic.stop()

        assert events.count("silence") == 2


class TestOpenMicrophone:
    def test_uses_configured_device(self):
        cfg = Configuration({"listen": {"microphoneDeviceId": "3"}})
        mic = open_microphone(cfg)
        assert isinstance(mic, MicrophoneStream)
        assert mic.device == 3

    def test_each_call_gives_a_new_stream(self):
        cfg = Configuration({"listen": {"microphoneDeviceId": "default"}})
        assert open_microphone(cfg) is not open_microphone(cfg)
