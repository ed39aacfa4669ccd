"""Configuration merging for TJBotLocal."""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .constants import (
    DEFAULT_ACOUSTIC_MODEL,
    DEFAULT_DICTIONARY,
    DEFAULT_LANGUAGE_MODEL,
    DEFAULT_MICROPHONE_DEVICE,
    DEFAULT_ROBOT_NAME,
    DEFAULT_SPEAKER_DEVICE,
    ENGINE_POCKETSPHINX,
)


DEFAULTS: dict[str, dict[str, Any]] = {
    "log": {
        # error, warn, info, verbose, debug, silly
        "level": "info",
    },
    "robot": {
        "name": DEFAULT_ROBOT_NAME,
    },
    "listen": {
        # see `arecord -l` for a list of recording devices
        "microphoneDeviceId": DEFAULT_MICROPHONE_DEVICE,
        # seconds of silence before the remote session ends, -1 for never
        "inactivityTimeout": -1,
        "language": "en-US",
    },
    "locallisten": {
        "enabled": True,
        "colorLocalListen": "off",
        "colorRemoteListen": "blue",
        # seconds the keyword is not required after a handoff, -1 for never
        "gracePeriod": -1,
        "acousticModel": DEFAULT_ACOUSTIC_MODEL,
        "dictionary": DEFAULT_DICTIONARY,
        "languageModel": DEFAULT_LANGUAGE_MODEL,
        "engine": ENGINE_POCKETSPHINX,
    },
    "speak": {
        # see `aplay -l` for a list of playback devices
        "speakerDeviceId": DEFAULT_SPEAKER_DEVICE,
    },
    "localspeak": {
        "enabled": True,
        "audioPresynthesized": "./audio/synthesized",
        "useAudioCache": True,
        "audioCache": "./audio/cache",
    },
}


def merge_configuration(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Overlay *overrides* onto *defaults*, one top-level key at a time.

    The overlay is shallow: a section supplied by the caller replaces
    the default section wholesale, so sibling defaults inside that
    section are dropped.  Unknown keys are kept as given.
    """
    merged = copy.deepcopy(dict(defaults))
    for key, value in (overrides or {}).items():
        merged[key] = copy.deepcopy(value)
    return merged


class Configuration(Mapping[str, Any]):
    """Read-only merged configuration.

    Sections are returned as read-only views; the underlying data is a
    private deep copy, so neither the caller's overrides nor the module
    defaults can be changed through it.
    """

    def __init__(self, overrides: Mapping[str, Any] | None = None):
        self._data = merge_configuration(DEFAULTS, overrides)

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        overrides: Mapping[str, Any] | None = None,
    ) -> Configuration:
        """Load overrides from a YAML file. Missing file is silently ignored."""
        path = Path(path)
        loaded: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file must hold a mapping: {path}")
        return cls(merge_configuration(loaded, overrides))

    # --- Mapping protocol ---

    def __getitem__(self, key: str) -> Any:
        value = self._data[key]
        if isinstance(value, dict):
            return MappingProxyType(value)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Configuration({self._data!r})"

    def get(self, section: str, key: str | None = None, default: Any = None) -> Any:
        """Return a section, or a single value inside a section."""
        if key is None:
            return self[section] if section in self._data else default
        sub = self._data.get(section)
        if not isinstance(sub, dict):
            return default
        return sub.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable deep copy of the merged data."""
        return copy.deepcopy(self._data)

    # --- Values consumed by the library ---

    @property
    def log_level(self) -> str:
        return self.get("log", "level", "info")

    @property
    def log_file(self) -> str | None:
        return self.get("log", "file")

    @property
    def robot_name(self) -> str:
        return self.get("robot", "name", DEFAULT_ROBOT_NAME)

    @property
    def wake_word(self) -> str:
        """The keyword matched against local hypotheses (upper case)."""
        name = self.robot_name
        return str(name).upper() if name else ""

    @property
    def microphone_device_id(self) -> str:
        return self.get("listen", "microphoneDeviceId", DEFAULT_MICROPHONE_DEVICE)

    @property
    def local_listen_enabled(self) -> bool:
        return bool(self.get("locallisten", "enabled", False))

    @property
    def color_local_listen(self) -> str | None:
        return self.get("locallisten", "colorLocalListen")

    @property
    def color_remote_listen(self) -> str | None:
        return self.get("locallisten", "colorRemoteListen")

    @property
    def grace_period(self) -> float:
        return float(self.get("locallisten", "gracePeriod", -1))

    @property
    def engine(self) -> str | None:
        return self.get("locallisten", "engine")

    @property
    def local_speak_enabled(self) -> bool:
        return bool(self.get("localspeak", "enabled", False))
