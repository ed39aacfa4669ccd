"""Top-level conftest for the TJBotLocal test suite."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from tjbotlocal.backend import TJBotBackend
from tjbotlocal.controller import TJBotLocal


# ---------------------------------------------------------------------------
# CLI options
# ---------------------------------------------------------------------------

def pytest_addoption(parser):
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require a microphone and pocketsphinx models",
    )
    parser.addoption(
        "--mic-device",
        action="store",
        default="default",
        help="Microphone device id for hardware tests (default: default)",
    )


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "hardware: requires a microphone and local models")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-hardware"):
        skip_hw = pytest.mark.skip(reason="need --run-hardware option to run")
        for item in items:
            if "hardware" in item.keywords:
                item.add_marker(skip_hw)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class FakeMicrophone:
    """Microphone double that emits events on demand.

    ``start()`` emits ``startComplete`` and ``stop()`` emits
    ``processExitComplete``, like a real stream does once its
    dispatcher has run.  Every start/stop is appended to *order*.
    """

    def __init__(self, order=None):
        self.handlers = {}
        self.order = order if order is not None else []
        self.started = False
        self.stopped = False

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, *args):
        for handler in list(self.handlers.get(event, [])):
            handler(*args)

    def start(self):
        self.started = True
        self.order.append("mic.start")
        self.emit("startComplete")

    def stop(self):
        if self.stopped:
            return
        self.stopped = True
        self.order.append("mic.stop")
        self.emit("processExitComplete")


class FakeDecoder:
    """Decoder double replaying scripted hypotheses.

    Each ``process_raw`` call advances to the next entry of *hypotheses*;
    ``None`` entries mean the decoder has no hypothesis yet.
    """

    def __init__(self, hypotheses=()):
        self.hypotheses = list(hypotheses)
        self.frames = []
        self.started = 0
        self.ended = 0
        self.open = False
        self._current = None

    def start_utt(self):
        assert not self.open, "utterance already open"
        self.open = True
        self.started += 1

    def end_utt(self):
        assert self.open, "no utterance open"
        self.open = False
        self.ended += 1

    def process_raw(self, data, no_search=False, full_utt=False):
        assert self.open, "processing outside an utterance"
        self.frames.append((data, no_search, full_utt))
        self._current = self.hypotheses.pop(0) if self.hypotheses else None
        return len(data) // 2

    def hyp(self):
        if self._current is None:
            return None
        return SimpleNamespace(hypstr=self._current, best_score=0, prob=0)


class MicrophoneFactory:
    def __init__(self, order):
        self.order = order
        self.created = []

    def __call__(self, *args):
        mic = FakeMicrophone(self.order)
        self.created.append(mic)
        return mic

    @property
    def current(self):
        return self.created[-1]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def order():
    """Shared call-order record for microphone and robot doubles."""
    return []


@pytest.fixture
def mock_robot(order):
    """Return a MagicMock that satisfies the TJBotBackend protocol."""
    robot = MagicMock(spec=TJBotBackend)
    robot.listen.side_effect = lambda callback: order.append("robot.listen")
    robot.shine.side_effect = lambda color: order.append(f"robot.shine:{color}")
    return robot


@pytest.fixture
def decoder():
    return FakeDecoder()


@pytest.fixture
def microphones(order):
    """Factory creating FakeMicrophones; keeps every one it made."""
    return MicrophoneFactory(order)


@pytest.fixture
def make_bot(mock_robot, decoder, microphones):
    """Build a TJBotLocal wired to the doubles."""

    def make(hardware=("microphone", "speaker", "led"), configuration=None):
        return TJBotLocal(
            list(hardware),
            configuration,
            {},
            robot=mock_robot,
            decoder_factory=lambda cfg: decoder,
            microphone_factory=microphones,
        )

    return make
