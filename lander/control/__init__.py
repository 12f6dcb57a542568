"""Control module: pilot input to thrust/torque commands.

Provides the gamepad mapper, non-blocking input sources and the
rate-of-descent throttle hold.
"""

from lander.control.command import ControlCommand
from lander.control.inputs import InputSource, LatestSampleSlot, ScriptedInput
from lander.control.mapper import ControlMapper, InputSample
from lander.control.pid import PIDController, RateOfDescentController

__all__ = [
    "ControlCommand",
    "ControlMapper",
    "InputSample",
    "InputSource",
    "LatestSampleSlot",
    "ScriptedInput",
    "PIDController",
    "RateOfDescentController",
]
