"""Exceptions raised by TJBotLocal."""


class TJBotLocalError(Exception):
    """Base class for all TJBotLocal errors."""


class ConstructionError(TJBotLocalError):
    """TJBotLocal was created without the robot it wraps."""


class ConfigurationError(TJBotLocalError):
    """The configuration does not allow the requested operation."""


class CapabilityError(ConfigurationError):
    """A capability was requested that the hardware or setup cannot provide."""
