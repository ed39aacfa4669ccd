"""Protocol for the wrapped TJBot robot."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class TJBotBackend(Protocol):
    """Operations TJBotLocal forwards to the robot it wraps.

    This is the mockable boundary for testing.  The robot owns the
    cloud services (speech, vision, translation, tone, assistant) and
    the GPIO hardware (LED, arm servo, camera).
    """

    def assert_capability(self, capability: str) -> None:
        """Raise if the robot cannot perform *capability*."""
        ...

    # --- Listen ---

    def listen(self, callback: Callable[[str], Any]) -> None:
        """Start remote listening; *callback* receives each transcript."""
        ...

    def pause_listening(self) -> None: ...

    def resume_listening(self) -> None: ...

    def stop_listening(self) -> None: ...

    # --- Speak ---

    def speak(self, message: str) -> Any: ...

    def play(self, sound_file: str) -> Any: ...

    # --- Shine ---

    def shine(self, color: str) -> None: ...

    def pulse(self, color: str, duration: float = 1.0) -> None: ...

    def shine_colors(self) -> list[str]: ...

    def random_color(self) -> str: ...

    # --- Wave ---

    def arm_back(self) -> None: ...

    def raise_arm(self) -> None: ...

    def lower_arm(self) -> None: ...

    def wave(self) -> Any: ...

    # --- See ---

    def see(self, classifier_ids: list[str] | None = None) -> Any: ...

    def recognize_objects_in_photo(
        self, file_path: str, classifier_ids: list[str] | None = None
    ) -> Any: ...

    def read(self) -> Any: ...

    def recognize_text_in_photo(self, file_path: str) -> Any: ...

    def take_photo(self, file_path: str | None = None) -> Any: ...

    # --- Translate ---

    def translate(self, text: str, source_language: str, target_language: str) -> Any: ...

    def identify_language(self, text: str) -> Any: ...

    def is_translatable(self, source_language: str, target_language: str) -> Any: ...

    # --- Tone / converse / utility ---

    def analyze_tone(self, text: str) -> Any: ...

    def converse(
        self,
        workspace_id: str,
        message: str,
        callback: Callable[[Any], Any] | None = None,
    ) -> Any: ...

    def sleep(self, msec: int) -> None: ...
