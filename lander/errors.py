"""Exception hierarchy for the lander core.

Only configuration errors are meant to escape to the caller. Recording and
channel errors are raised inside their worker threads, logged there, and
never reach the simulation loop.
"""


class LanderError(Exception):
    """Base class for all lander errors."""


class ConfigError(LanderError, ValueError):
    """Invalid static configuration, raised at load time."""


class RecordingError(LanderError, OSError):
    """A session recording could not be written, flushed or finalized."""


class ChannelError(LanderError):
    """A live telemetry channel failed to deliver a message."""
