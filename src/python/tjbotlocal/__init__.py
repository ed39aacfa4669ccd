"""TJBot with on-device wake-word spotting in front of cloud listening."""

from .backend import TJBotBackend
from .config import Configuration, merge_configuration
from .constants import VERSION as __version__
from .controller import TJBotLocal
from .decoder import DecoderSession, create_decoder
from .errors import CapabilityError, ConfigurationError, ConstructionError, TJBotLocalError
from .gate import GateState, WakeWordGate
from .microphone import MicrophoneStream, open_microphone

__all__ = [
    "CapabilityError",
    "Configuration",
    "ConfigurationError",
    "ConstructionError",
    "DecoderSession",
    "GateState",
    "MicrophoneStream",
    "TJBotBackend",
    "TJBotLocal",
    "TJBotLocalError",
    "WakeWordGate",
    "create_decoder",
    "merge_configuration",
    "open_microphone",
]
