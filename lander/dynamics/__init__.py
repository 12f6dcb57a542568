"""Dynamics module for the lander.

This module provides the immutable vehicle state and the fixed-step
integrator that advances it from a control command.

Example:
    >>> from lander.config import VehicleParameters, InitialPose
    >>> from lander.dynamics import LanderDynamics, VehicleState
    >>>
    >>> vehicle = VehicleParameters()
    >>> state = VehicleState.initial(vehicle, InitialPose())
    >>> result = LanderDynamics(vehicle).advance(state, command, dt=1 / 30)
"""

from lander.dynamics.rigid_body import (
    ContactEvent,
    LanderDynamics,
    StepResult,
    sanitize_command,
)
from lander.dynamics.state import (
    VehicleState,
    euler_to_quaternion,
    normalize_quaternion,
    quaternion_multiply,
    quaternion_to_dcm,
    quaternion_to_euler,
    rotate_vector,
)

__all__ = [
    # State
    "VehicleState",
    # Quaternion utilities
    "quaternion_to_dcm",
    "euler_to_quaternion",
    "quaternion_to_euler",
    "quaternion_multiply",
    "normalize_quaternion",
    "rotate_vector",
    # Dynamics
    "LanderDynamics",
    "StepResult",
    "ContactEvent",
    "sanitize_command",
]
