"""PID control and the rate-of-descent hold.

:class:`PIDController` is a plain parallel-form PID with a clamped
integrator and optional output saturation. :class:`RateOfDescentController`
builds on it the way the Apollo lunar module's rate-of-descent mode worked:
the pilot sets a target vertical velocity and the controller picks the main
engine throttle.

Example:
    >>> from lander.control.pid import RateOfDescentController
    >>>
    >>> rod = RateOfDescentController(target=-6.0, max_thrust=45_000.0, gravity=1.62)
    >>> throttle = rod.compute_throttle(vertical_velocity=-8.0, mass=7300.0, tilt=0.0, dt=1 / 30)
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype

Limits = tuple[float, float]


def _clamp(value: float, limits: Limits | None) -> float:
    if limits is None:
        return value
    low, high = limits
    return min(max(value, low), high)


# =============================================================================
# PID Controller
# =============================================================================


@beartype
@dataclass
class PIDController:
    """Parallel-form PID: ``kp * e + ki * sum(e * dt) + kd * de/dt``.

    Attributes:
        kp, ki, kd: Gains
        output_limits: Saturation of the output, None for unbounded
        integral_limits: Bounds on the accumulated error (anti-windup)
    """
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0
    output_limits: Limits | None = None
    integral_limits: Limits | None = None

    _integral: float = field(default=0.0, init=False, repr=False)
    _last_error: float | None = field(default=None, init=False, repr=False)

    @property
    def integral(self) -> float:
        """Accumulated, clamped error integral."""
        return self._integral

    def reset(self) -> None:
        """Forget the integral and the previous error."""
        self._integral = 0.0
        self._last_error = None

    def update(self, error: float, dt: float) -> float:
        """Advance one step with the current error (setpoint - measurement).

        The derivative term is zero on the first update after a reset.
        Returns 0 without touching the history when dt is not positive.
        """
        if dt <= 0:
            return 0.0

        self._integral = _clamp(self._integral + error * dt, self.integral_limits)
        rate = 0.0 if self._last_error is None else (error - self._last_error) / dt
        self._last_error = error

        output = self.kp * error + self.ki * self._integral + self.kd * rate
        return float(_clamp(output, self.output_limits))


# =============================================================================
# Rate-of-Descent Controller
# =============================================================================


@beartype
class RateOfDescentController:
    """Vertical velocity hold driving the main engine throttle.

    The PID output is a desired vertical acceleration. Gravity is added
    back, the result scaled by the current mass and divided by the vertical
    component of the available thrust, so the same target works at any
    propellant load or moderate tilt.
    """

    def __init__(
        self,
        target: float,
        max_thrust: float,
        gravity: float,
        kp: float = 0.8,
        ki: float = 0.05,
        kd: float = 0.3,
    ) -> None:
        """Initialize the controller.

        Args:
            target: Initial target vertical velocity, positive up [m/s]
            max_thrust: Main engine thrust at full throttle [N]
            gravity: Gravitational acceleration magnitude [m/s^2]
            kp, ki, kd: PID gains on vertical velocity error
        """
        self.target = target
        self.max_thrust = max_thrust
        self.gravity = gravity
        self.pid = PIDController(kp=kp, ki=ki, kd=kd, integral_limits=(-20.0, 20.0))

    def adjust_target(self, delta: float) -> None:
        """Shift the target vertical velocity [m/s]."""
        self.target += delta

    def reset(self, target: float) -> None:
        """Set a new target and clear the PID history."""
        self.target = target
        self.pid.reset()

    def compute_throttle(self, vertical_velocity: float, mass: float, tilt: float, dt: float) -> float:
        """Throttle in [0, 1] driving vertical velocity towards the target.

        Args:
            vertical_velocity: Current vertical velocity, positive up [m/s]
            mass: Current total mass [kg]
            tilt: Angle of the thrust axis from vertical [rad]
            dt: Time step [s]
        """
        desired_accel = self.pid.update(self.target - vertical_velocity, dt)
        required_force = mass * (self.gravity + desired_accel)
        vertical_thrust = self.max_thrust * math.cos(tilt)
        if vertical_thrust <= 1e-9:
            return 0.0
        return float(np.clip(required_force / vertical_thrust, 0.0, 1.0))
