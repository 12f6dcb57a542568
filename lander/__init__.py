"""Lander - Real-time lunar lander simulation and telemetry core.

This package provides the vehicle dynamics, pilot control mapping, game
state machine and the fixed-rate loop that turns simulation state into an
ordered, recorded telemetry stream.

Example:
    >>> from lander import LanderConfig, LatestSampleSlot, SimulationLoop, TelemetrySink
    >>>
    >>> config = LanderConfig.from_json("lander.json")
    >>> slot = LatestSampleSlot()           # fed by the gamepad reader thread
    >>> sink = TelemetrySink(config.loop)
    >>> SimulationLoop(config, slot, sink).run()
"""

__version__ = "0.1.0"

from lander.config import (
    AxisMapping,
    InitialPose,
    LanderConfig,
    LandingThresholds,
    LoopSettings,
    VehicleParameters,
)
from lander.control import (
    ControlCommand,
    ControlMapper,
    InputSample,
    InputSource,
    LatestSampleSlot,
    RateOfDescentController,
    ScriptedInput,
)
from lander.dynamics import ContactEvent, LanderDynamics, VehicleState
from lander.errors import ChannelError, ConfigError, LanderError, RecordingError
from lander.game import (
    GameSession,
    GameStateMachine,
    LandingReport,
    Outcome,
    Phase,
    evaluate_landing,
)
from lander.simulation import SimulationLoop, TelemetrySnapshot
from lander.telemetry import (
    MemoryChannel,
    SessionRecording,
    TelemetrySink,
    UdpChannel,
    list_recordings,
    read_recording,
)

__all__ = [
    "__version__",
    # Configuration
    "LanderConfig",
    "VehicleParameters",
    "LandingThresholds",
    "InitialPose",
    "AxisMapping",
    "LoopSettings",
    # Errors
    "LanderError",
    "ConfigError",
    "RecordingError",
    "ChannelError",
    # Dynamics
    "VehicleState",
    "LanderDynamics",
    "ContactEvent",
    # Control
    "ControlCommand",
    "ControlMapper",
    "InputSample",
    "InputSource",
    "LatestSampleSlot",
    "ScriptedInput",
    "RateOfDescentController",
    # Game
    "Phase",
    "Outcome",
    "GameSession",
    "GameStateMachine",
    "LandingReport",
    "evaluate_landing",
    # Simulation
    "SimulationLoop",
    "TelemetrySnapshot",
    # Telemetry
    "TelemetrySink",
    "MemoryChannel",
    "UdpChannel",
    "SessionRecording",
    "read_recording",
    "list_recordings",
]
