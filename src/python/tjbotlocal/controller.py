"""High-level TJBotLocal wrapper tying the robot and the wake-word gate together."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Callable

from .backend import TJBotBackend
from .config import DEFAULTS, Configuration
from .constants import (
    CAP_LISTEN,
    CAP_SPEAK,
    HW_LED,
    HW_MICROPHONE,
    HW_SPEAKER,
    LISTEN_LANGUAGES,
    STATUS,
    VERSION,
)
from .decoder import DecoderSession, create_decoder
from .errors import CapabilityError, ConfigurationError, ConstructionError
from .gate import GateState, WakeWordGate
from .log import SILLY, VERBOSE, get_logger
from .microphone import MicrophoneStream, open_microphone

RobotFactory = Callable[[list[str], Any, Any], TJBotBackend]
DecoderFactory = Callable[[Configuration], DecoderSession]
MicrophoneFactory = Callable[[Configuration], MicrophoneStream]


class TJBotLocal:
    """TJBot that listens for its name on-device before using the cloud.

    Listening is gated by a local keyword spotter: :meth:`listen` keeps
    the microphone and speech decoder local until the robot's name is
    heard, then hands over to the wrapped robot's own remote listening.
    Every other operation is forwarded to the wrapped robot unchanged.

    The wrapped robot is passed in as *robot*, or built by
    *robot_factory* from the same ``(hardware, configuration,
    credentials)`` arguments.
    """

    version = VERSION
    status = list(STATUS)
    default_configuration = MappingProxyType(DEFAULTS)
    configuration_parameters = list(DEFAULTS)

    def __init__(
        self,
        hardware: Iterable[str],
        configuration: Mapping[str, Any] | None = None,
        credentials: Mapping[str, Any] | None = None,
        *,
        robot: TJBotBackend | None = None,
        robot_factory: RobotFactory | None = None,
        decoder_factory: DecoderFactory | None = None,
        microphone_factory: MicrophoneFactory | None = None,
    ):
        hardware = list(hardware)
        if robot is None:
            if robot_factory is None:
                raise ConstructionError(
                    "TJBotLocal needs the robot it wraps; pass robot= or robot_factory="
                )
            robot = robot_factory(hardware, configuration, credentials)
        self._robot = robot

        self.configuration = Configuration(configuration)
        self.hardware = hardware

        # Logger owned by this instance; no process-wide level is set.
        self._log = get_logger(
            f"tjbotlocal.{self.configuration.robot_name}",
            self.configuration.log_level,
            log_path=self.configuration.log_file,
        )

        self._decoder_factory = decoder_factory or create_decoder
        self._microphone_factory = microphone_factory or open_microphone

        self._has_led = HW_LED in hardware
        self._has_speaker = False
        self._decoder: DecoderSession | None = None
        self._gate: WakeWordGate | None = None
        self._listen_callback: Callable[[str], Any] | None = None
        self._last_handoff: float | None = None
        self._suspended = False

        for device in hardware:
            if device == HW_MICROPHONE:
                self._setup_microphone()
                self._setup_local_listening()
            elif device == HW_SPEAKER:
                self._setup_local_speaking()

        self._log.info("TJBot is listening for keywords locally without cloud access.")
        self._log.log(VERBOSE, "TJBot-Local library version %s", self.version)
        self._log.log(SILLY, "TJBot-Local configuration: %r", self.configuration)

    # --- Hardware initialization ---

    def _setup_microphone(self) -> None:
        self._log.log(VERBOSE, "TJBot-Local initializing microphone")

    def _open_microphone(self) -> MicrophoneStream:
        return self._microphone_factory(self.configuration)

    def _setup_local_listening(self) -> None:
        self._log.log(
            VERBOSE, "TJBot-Local initializing engine %s", self.configuration.engine
        )
        if not self.configuration.wake_word:
            raise ConfigurationError("robot.name must be set to listen for a wake word")
        self._decoder = self._decoder_factory(self.configuration)
        self._gate = WakeWordGate(
            wake_word=self.configuration.wake_word,
            decoder=self._decoder,
            microphone_factory=self._open_microphone,
            on_keyword=self._on_keyword,
            on_handoff=self._on_handoff,
            log=self._log,
        )

    def _setup_local_speaking(self) -> None:
        self._has_speaker = True

    def _assert_capability(self, capability: str) -> None:
        """Raise if TJBotLocal cannot perform *capability*.

        The robot's own check runs first and its errors propagate
        unchanged.
        """
        self._robot.assert_capability(capability)

        if capability == CAP_LISTEN and self._decoder is None:
            raise CapabilityError(
                "TJBot-Local is not configured to listen. "
                "Please check that the microphone is listed in the hardware "
                "and the local recognizer models are configured."
            )

    # --- Properties ---

    @property
    def languages(self) -> dict[str, list[str]]:
        robot_languages = getattr(self._robot, "languages", None) or {}
        return {
            "listen": list(LISTEN_LANGUAGES),
            "speak": list(robot_languages.get("speak", [])),
        }

    @property
    def state(self) -> GateState:
        """Current wake-word gate state (IDLE without a microphone)."""
        return self._gate.state if self._gate is not None else GateState.IDLE

    @property
    def has_speaker(self) -> bool:
        return self._has_speaker

    # --- Utility ---

    def get_tjbot(self) -> TJBotBackend:
        """Return the wrapped robot."""
        return self._robot

    def sleep(self, msec: int) -> None:
        self._robot.sleep(msec)

    # --- Analyze tone / converse ---

    def analyze_tone(self, text: str) -> Any:
        return self._robot.analyze_tone(text)

    def converse(
        self,
        workspace_id: str,
        message: str,
        callback: Callable[[Any], Any] | None = None,
    ) -> Any:
        return self._robot.converse(workspace_id, message, callback)

    # --- Listen ---

    def listen(self, callback: Callable[[str], Any]) -> None:
        """Listen for spoken utterances.

        With local listening enabled the robot's name must be heard
        locally first; *callback* is then handed to the robot's remote
        listening unchanged and receives each recognised transcript.
        """
        if not self.configuration.local_listen_enabled:
            self._robot.listen(callback)
            return

        self._assert_capability(CAP_LISTEN)
        self._listen_callback = callback
        self._suspended = False

        if self._within_grace_period():
            self._log.debug("Within grace period, listening remotely")
            if self._has_led:
                self._robot.shine(self.configuration.color_remote_listen)
            self._robot.listen(callback)
            return

        if self._has_led:
            self._robot.shine(self.configuration.color_local_listen)
        self._gate.start()

    def pause_listening(self) -> None:
        """Pause listening; an active local episode releases the microphone."""
        if self.configuration.local_listen_enabled:
            self._assert_capability(CAP_LISTEN)
            if self._gate.active:
                self._gate.stop()
                self._suspended = True
        self._robot.pause_listening()

    def resume_listening(self) -> None:
        """Resume listening, restarting a local episode suspended by a pause."""
        if self.configuration.local_listen_enabled:
            self._assert_capability(CAP_LISTEN)
        self._robot.resume_listening()
        if self._suspended:
            self._suspended = False
            if self._has_led:
                self._robot.shine(self.configuration.color_local_listen)
            self._gate.start()

    def stop_listening(self) -> None:
        """Stop listening both locally and remotely."""
        if self.configuration.local_listen_enabled:
            self._assert_capability(CAP_LISTEN)
            self._gate.reset()
            self._suspended = False
            self._listen_callback = None
        self._robot.stop_listening()

    def _within_grace_period(self) -> bool:
        grace = self.configuration.grace_period
        if grace < 0 or self._last_handoff is None:
            return False
        return time.monotonic() - self._last_handoff < grace

    def _on_keyword(self, hypothesis: str) -> None:
        if self._has_led:
            self._robot.shine(self.configuration.color_remote_listen)

    def _on_handoff(self) -> None:
        self._last_handoff = time.monotonic()
        self._robot.listen(self._listen_callback)

    # --- See ---

    def see(self, classifier_ids: list[str] | None = None) -> Any:
        """Take a picture and identify the objects present."""
        return self._robot.see(classifier_ids or [])

    def recognize_objects_in_photo(
        self, file_path: str, classifier_ids: list[str] | None = None
    ) -> Any:
        return self._robot.recognize_objects_in_photo(file_path, classifier_ids)

    def read(self) -> Any:
        """Take a picture and read the identified text."""
        return self._robot.read()

    def recognize_text_in_photo(self, file_path: str) -> Any:
        return self._robot.recognize_text_in_photo(file_path)

    def take_photo(self, file_path: str | None = None) -> Any:
        """Capture an image, saved at *file_path* or a temporary location."""
        return self._robot.take_photo(file_path)

    # --- Shine ---

    def shine(self, color: str) -> None:
        self._robot.shine(color)

    def pulse(self, color: str, duration: float = 1.0) -> None:
        """Pulse the LED once; *duration* should be 0.5 to 3 seconds."""
        self._robot.pulse(color, duration)

    def shine_colors(self) -> list[str]:
        return self._robot.shine_colors()

    def random_color(self) -> str:
        return self._robot.random_color()

    # --- Speak ---

    def speak(self, message: str) -> Any:
        if self.configuration.local_speak_enabled:
            self._assert_capability(CAP_SPEAK)
        return self._robot.speak(message)

    def play(self, sound_file: str) -> Any:
        return self._robot.play(sound_file)

    # --- Translate ---

    def translate(self, text: str, source_language: str, target_language: str) -> Any:
        return self._robot.translate(text, source_language, target_language)

    def identify_language(self, text: str) -> Any:
        return self._robot.identify_language(text)

    def is_translatable(self, source_language: str, target_language: str) -> Any:
        return self._robot.is_translatable(source_language, target_language)

    # --- Wave ---

    def arm_back(self) -> None:
        self._robot.arm_back()

    def raise_arm(self) -> None:
        self._robot.raise_arm()

    def lower_arm(self) -> None:
        self._robot.lower_arm()

    def wave(self) -> Any:
        return self._robot.wave()
