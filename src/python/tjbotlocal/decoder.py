"""Local speech decoder session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .constants import ENGINE_POCKETSPHINX, SAMPLE_RATE
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .config import Configuration


class Hypothesis(Protocol):
    hypstr: str


@runtime_checkable
class DecoderSession(Protocol):
    """Streaming decoder interface used by the wake-word gate.

    Matches the pocketsphinx ``Decoder`` methods the gate calls.
    """

    def start_utt(self) -> None:
        """Open a new utterance."""
        ...

    def end_utt(self) -> None:
        """Close the open utterance."""
        ...

    def process_raw(self, data: bytes, no_search: bool = False, full_utt: bool = False) -> int:
        """Feed raw 16-bit PCM to the open utterance."""
        ...

    def hyp(self) -> Hypothesis | None:
        """Current best hypothesis for the open utterance, if any."""
        ...


def create_decoder(configuration: Configuration) -> DecoderSession:
    """Create a pocketsphinx decoder from the ``locallisten`` settings."""
    engine = configuration.engine
    if engine != ENGINE_POCKETSPHINX:
        raise ConfigurationError(
            f"Unsupported local listening engine {engine!r}; "
            f"only {ENGINE_POCKETSPHINX!r} is available"
        )

    from pocketsphinx import Decoder

    return Decoder(
        hmm=configuration.get("locallisten", "acousticModel"),
        dict=configuration.get("locallisten", "dictionary"),
        lm=configuration.get("locallisten", "languageModel"),
        samprate=SAMPLE_RATE,
    )
