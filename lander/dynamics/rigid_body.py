"""Lander rigid body dynamics.

Computes forces and moments from a :class:`ControlCommand` and advances a
:class:`VehicleState` by one fixed timestep.

The equations use:
- Newton's second law for translational motion with constant gravity along -Z
- Euler's equations for rotational motion: M = I * alpha + omega x (I * omega)
- Quaternion composition with the rotation omega * dt for attitude

Integration is semi-implicit (symplectic) Euler: velocities are updated from
the accelerations first, then positions and attitude from the new
velocities. Explicit Euler gains energy on the oscillatory RCS corrections a
pilot makes near the ground; the symplectic update does not.

Example:
    >>> from lander.config import VehicleParameters, InitialPose
    >>> from lander.control.command import ControlCommand
    >>> from lander.dynamics import LanderDynamics, VehicleState
    >>>
    >>> vehicle = VehicleParameters()
    >>> dynamics = LanderDynamics(vehicle)
    >>> state = VehicleState.initial(vehicle, InitialPose())
    >>> result = dynamics.advance(state, ControlCommand(throttle=0.5), dt=1 / 30)
    >>> result.state.altitude, result.contact
"""

import logging
from typing import NamedTuple

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from lander.config import VehicleParameters
from lander.control.command import ControlCommand
from lander.dynamics.state import VehicleState, rotate_vector

logger = logging.getLogger(__name__)

# =============================================================================
# Results
# =============================================================================


class ContactEvent(NamedTuple):
    """Kinematics of the vehicle at the tick it reached the ground plane."""
    time: float                  # Simulation time of contact [s]
    vertical_velocity: float     # Signed, positive up [m/s]
    vertical_speed: float        # [m/s]
    horizontal_speed: float      # [m/s]
    tilt: float                  # Angle from vertical [rad]
    angular_speed: float         # [rad/s]
    x: float                     # Touchdown position [m]
    y: float


class StepResult(NamedTuple):
    """Outcome of one dynamics step."""
    state: VehicleState
    contact: ContactEvent | None
    command: ControlCommand      # Command actually applied, after clamping
    clamped: tuple[str, ...]     # Names of command components forced to zero


# =============================================================================
# Numba-Optimized Integration
# =============================================================================


@njit(cache=True)
def _euler_rotational_dynamics(
    px: float, py: float, pz: float,
    mx: float, my: float, mz: float,
    Ixx: float, Iyy: float, Izz: float,
) -> tuple[float, float, float]:
    """Euler equations for a diagonal inertia tensor."""
    # Gyroscopic terms
    gx = (Iyy - Izz) * py * pz
    gy = (Izz - Ixx) * pz * px
    gz = (Ixx - Iyy) * px * py

    return (
        (mx - gx) / Ixx,
        (my - gy) / Iyy,
        (mz - gz) / Izz,
    )


@njit(cache=True)
def _semi_implicit_euler_core(
    # Initial state
    px: float, py: float, pz: float,
    vx: float, vy: float, vz: float,
    q0: float, q1: float, q2: float, q3: float,
    wx: float, wy: float, wz: float,
    # Linear acceleration (world frame)
    ax: float, ay: float, az: float,
    # Angular acceleration (body frame)
    alx: float, aly: float, alz: float,
    damping: float,
    dt: float,
) -> tuple[float, ...]:
    """One symplectic Euler step: rates first, then positions and attitude."""
    # Velocities from accelerations
    vx_new = vx + ax * dt
    vy_new = vy + ay * dt
    vz_new = vz + az * dt

    wx_new = (wx + alx * dt) * damping
    wy_new = (wy + aly * dt) * damping
    wz_new = (wz + alz * dt) * damping

    # Positions from the new velocities
    px_new = px + vx_new * dt
    py_new = py + vy_new * dt
    pz_new = pz + vz_new * dt

    # Small rotation from the new body rates (axis-angle)
    rx = wx_new * dt
    ry = wy_new * dt
    rz = wz_new * dt
    angle = np.sqrt(rx*rx + ry*ry + rz*rz)
    if angle > 1e-12:
        s = np.sin(0.5 * angle) / angle
        d0 = np.cos(0.5 * angle)
    else:
        s = 0.5
        d0 = 1.0
    d1 = rx * s
    d2 = ry * s
    d3 = rz * s

    # Compose in the body frame: q_new = q * dq
    n0 = q0*d0 - q1*d1 - q2*d2 - q3*d3
    n1 = q0*d1 + q1*d0 + q2*d3 - q3*d2
    n2 = q0*d2 - q1*d3 + q2*d0 + q3*d1
    n3 = q0*d3 + q1*d2 - q2*d1 + q3*d0

    qnorm = np.sqrt(n0*n0 + n1*n1 + n2*n2 + n3*n3)
    if qnorm > 1e-10:
        n0 /= qnorm
        n1 /= qnorm
        n2 /= qnorm
        n3 /= qnorm

    return (
        px_new, py_new, pz_new,
        vx_new, vy_new, vz_new,
        n0, n1, n2, n3,
        wx_new, wy_new, wz_new,
    )


# =============================================================================
# Command Sanitizing
# =============================================================================


@beartype
def sanitize_command(command: ControlCommand) -> tuple[ControlCommand, tuple[str, ...]]:
    """Zero non-finite command components and clamp the rest to range.

    Returns:
        (clean command, names of the components that were zeroed)
    """
    zeroed: list[str] = []

    throttle = command.throttle
    if not np.isfinite(throttle):
        zeroed.append("throttle")
        throttle = 0.0

    vectors = {}
    for name in ("rcs_force", "rcs_torque"):
        vec = getattr(command, name).copy()
        bad = ~np.isfinite(vec)
        for axis in np.flatnonzero(bad):
            zeroed.append(f"{name}[{axis}]")
        vec[bad] = 0.0
        vectors[name] = np.clip(vec, -1.0, 1.0)

    nudge = command.vertical_velocity_nudge
    if not np.isfinite(nudge):
        zeroed.append("vertical_velocity_nudge")
        nudge = 0.0

    clean = ControlCommand(
        throttle=float(np.clip(throttle, 0.0, 1.0)),
        rcs_force=vectors["rcs_force"],
        rcs_torque=vectors["rcs_torque"],
        reset_requested=command.reset_requested,
        vertical_velocity_nudge=float(nudge),
    )
    return clean, tuple(zeroed)


# =============================================================================
# Dynamics Model
# =============================================================================


@beartype
class LanderDynamics:
    """Lunar lander dynamics model.

    Pure and deterministic: the same state, command and dt always produce the
    same next state. Nothing is mutated in place.

    Example:
        >>> dynamics = LanderDynamics(VehicleParameters())
        >>> next_state = dynamics.step(state, command, dt=1 / 30)
    """

    def __init__(self, vehicle: VehicleParameters) -> None:
        """Initialize dynamics model.

        Args:
            vehicle: Physical constants of the vehicle
        """
        self.vehicle = vehicle
        self._gravity = np.array([0.0, 0.0, -vehicle.gravity])
        self._inertia_factors = np.asarray(vehicle.inertia_factors, dtype=np.float64)

    def total_mass(self, state: VehicleState) -> float:
        """Vehicle mass including remaining propellant [kg]."""
        return self.vehicle.empty_mass + state.propellant_mass

    def inertia(self, state: VehicleState) -> NDArray[np.float64]:
        """Principal moments of inertia [kg*m^2]."""
        return self.total_mass(state) * self._inertia_factors

    def propellant_flow(self, state: VehicleState, command: ControlCommand) -> float:
        """Propellant consumed per second for a command [kg/s]."""
        if state.propellant_mass <= 0.0:
            return 0.0
        rcs_usage = float(np.abs(command.rcs_force).sum() + np.abs(command.rcs_torque).sum())
        return command.throttle * self.vehicle.main_burn_rate + rcs_usage * self.vehicle.rcs_burn_rate

    def burn_fraction(self, state: VehicleState, command: ControlCommand, dt: float) -> float:
        """Share of a tick the thrusters fire before the remaining propellant runs out."""
        demand = self.propellant_flow(state, command) * dt
        if demand <= state.propellant_mass:
            return 1.0
        return state.propellant_mass / demand

    def accelerations(
        self,
        state: VehicleState,
        command: ControlCommand,
        fraction: float = 1.0,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Compute linear (world frame) and angular (body frame) accelerations.

        Thrusters only act while propellant remains.

        Args:
            state: Current state
            command: Thruster command
            fraction: Scale on all thrust, below 1 on the tick the tank runs dry

        Returns:
            (linear acceleration [m/s^2], angular acceleration [rad/s^2])
        """
        vehicle = self.vehicle
        mass = self.total_mass(state)

        if state.propellant_mass > 0.0:
            force_body = command.rcs_force * vehicle.rcs_thrust
            force_body[2] += command.throttle * vehicle.max_thrust
            force_body *= fraction
            moment_body = fraction * command.rcs_torque * vehicle.rcs_torque
        else:
            force_body = np.zeros(3)
            moment_body = np.zeros(3)

        linear = rotate_vector(state.orientation, force_body) / mass + self._gravity

        Ixx, Iyy, Izz = self.inertia(state)
        wx, wy, wz = state.angular_velocity
        angular = np.array(_euler_rotational_dynamics(
            wx, wy, wz,
            moment_body[0], moment_body[1], moment_body[2],
            Ixx, Iyy, Izz,
        ))
        return linear, angular

    def advance(self, state: VehicleState, command: ControlCommand, dt: float) -> StepResult:
        """Advance the state by one fixed timestep and detect ground contact.

        Args:
            state: Current state
            command: Command for this tick
            dt: Time step [s]

        Returns:
            StepResult with the new state and an optional contact event
        """
        command, clamped = sanitize_command(command)

        linear, angular = self.accelerations(state, command, self.burn_fraction(state, command, dt))
        if not np.all(np.isfinite(linear)):
            command = ControlCommand(
                rcs_torque=command.rcs_torque,
                reset_requested=command.reset_requested,
                vertical_velocity_nudge=command.vertical_velocity_nudge,
            )
            clamped += ("throttle", "rcs_force")
            linear, angular = self.accelerations(state, command, self.burn_fraction(state, command, dt))
        if not np.all(np.isfinite(angular)):
            command = ControlCommand(
                throttle=command.throttle,
                rcs_force=command.rcs_force,
                reset_requested=command.reset_requested,
                vertical_velocity_nudge=command.vertical_velocity_nudge,
            )
            clamped += ("rcs_torque",)
            linear, angular = self.accelerations(state, command, self.burn_fraction(state, command, dt))
        if clamped:
            logger.warning("Clamped non-finite command components at t=%.3f s: %s",
                           state.time, ", ".join(clamped))

        p, v, q, w = state.position, state.velocity, state.orientation, state.angular_velocity
        result = _semi_implicit_euler_core(
            p[0], p[1], p[2],
            v[0], v[1], v[2],
            q[0], q[1], q[2], q[3],
            w[0], w[1], w[2],
            linear[0], linear[1], linear[2],
            angular[0], angular[1], angular[2],
            self.vehicle.angular_damping,
            dt,
        )
        if not np.all(np.isfinite(result)):
            logger.warning("Non-finite integration result at t=%.3f s, holding state", state.time)
            return StepResult(state.evolve(time=state.time + dt), None, ControlCommand.neutral(),
                              clamped + ("all",))

        if self.burn_fraction(state, command, dt) < 1.0:
            propellant = 0.0
        else:
            propellant = state.propellant_mass - self.propellant_flow(state, command) * dt
        new_state = VehicleState(
            position=np.array(result[0:3]),
            velocity=np.array(result[3:6]),
            orientation=np.array(result[6:10]),
            angular_velocity=np.array(result[10:13]),
            propellant_mass=max(0.0, propellant),
            time=state.time + dt,
        )

        contact = None
        ground = self.vehicle.ground_altitude
        if new_state.altitude <= ground:
            contact = ContactEvent(
                time=new_state.time,
                vertical_velocity=new_state.vertical_velocity,
                vertical_speed=new_state.vertical_speed,
                horizontal_speed=new_state.horizontal_speed,
                tilt=new_state.tilt,
                angular_speed=new_state.angular_speed,
                x=float(new_state.position[0]),
                y=float(new_state.position[1]),
            )
            position = new_state.position.copy()
            position[2] = ground
            new_state = new_state.evolve(position=position)

        return StepResult(new_state, contact, command, clamped)

    def step(self, state: VehicleState, command: ControlCommand, dt: float) -> VehicleState:
        """Advance the state by one fixed timestep.

        Same as :meth:`advance` without the contact and clamping details.
        """
        return self.advance(state, command, dt).state
