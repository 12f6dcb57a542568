"""Lander state and the quaternion helpers it is built on.

Frames: the world frame is a flat ground plane with X east, Y north and Z
up; the body frame has Z along the main engine thrust axis. Attitude is a
scalar-first unit quaternion [w, x, y, z] rotating body vectors into the
world frame, so an upright lander carries the identity quaternion.

State layout:
    position          world [m], z is altitude
    velocity          world [m/s]
    orientation       body-to-world quaternion
    angular_velocity  body rates [rad/s]
    propellant_mass   remaining descent propellant [kg]
    time              simulation time [s]
"""

from dataclasses import dataclass, replace

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from lander.config import InitialPose, VehicleParameters

WORLD_UP: NDArray[np.float64] = np.array([0.0, 0.0, 1.0])

# =============================================================================
# Quaternion Utilities
# =============================================================================

IDENTITY_QUATERNION: NDArray[np.float64] = np.array([1.0, 0.0, 0.0, 0.0])


@beartype
def normalize_quaternion(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale to unit norm; degenerate input becomes the identity."""
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or norm < 1e-10:
        return IDENTITY_QUATERNION.copy()
    return q / norm


@beartype
def quaternion_multiply(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product a * b (apply b first, then a)."""
    wa, va = a[0], a[1:]
    wb, vb = b[0], b[1:]
    return np.concatenate(([wa * wb - va @ vb], wa * vb + wb * va + np.cross(va, vb)))


def _skew(v: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ])


@beartype
def quaternion_to_dcm(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotation matrix of a quaternion.

    For a body-to-world quaternion the result maps body vectors to world.
    """
    q = normalize_quaternion(q)
    w, v = q[0], q[1:]
    return (w * w - v @ v) * np.eye(3) + 2.0 * np.outer(v, v) + 2.0 * w * _skew(v)


@beartype
def rotate_vector(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotate a vector by a quaternion (body to world for attitude quaternions)."""
    return quaternion_to_dcm(q) @ v


def _axis_quaternion(axis: int, angle: float) -> NDArray[np.float64]:
    q = np.zeros(4)
    q[0] = np.cos(0.5 * angle)
    q[1 + axis] = np.sin(0.5 * angle)
    return q


@beartype
def euler_to_quaternion(roll: float, pitch: float, yaw: float) -> NDArray[np.float64]:
    """Body-to-world quaternion from yaw-pitch-roll (Z-Y-X) angles in radians.

    Example:
        >>> euler_to_quaternion(0.0, 0.0, np.pi / 2)   # heading rotated 90 deg
        array([0.70710678, 0.        , 0.        , 0.70710678])
    """
    q = quaternion_multiply(_axis_quaternion(2, yaw), _axis_quaternion(1, pitch))
    return normalize_quaternion(quaternion_multiply(q, _axis_quaternion(0, roll)))


@beartype
def quaternion_to_euler(q: NDArray[np.float64]) -> tuple[float, float, float]:
    """(roll, pitch, yaw) in radians, inverse of :func:`euler_to_quaternion`.

    Pitch is clipped to +/-90 deg at gimbal lock.
    """
    dcm = quaternion_to_dcm(q)
    roll = np.arctan2(dcm[2, 1], dcm[2, 2])
    pitch = -np.arcsin(np.clip(dcm[2, 0], -1.0, 1.0))
    yaw = np.arctan2(dcm[1, 0], dcm[0, 0])
    return float(roll), float(pitch), float(yaw)


# =============================================================================
# State Class
# =============================================================================

_VECTOR_SHAPES = (
    ("position", (3,)),
    ("velocity", (3,)),
    ("orientation", (4,)),
    ("angular_velocity", (3,)),
)


@beartype
@dataclass(frozen=True, eq=False)
class VehicleState:
    """Immutable lander state.

    A new instance is produced every tick; arrays are read-only so a state
    handed to the telemetry sink can be read from other threads safely.

    Propellant is clamped at zero and the orientation renormalized on
    construction. Non-finite or wrongly shaped arrays raise ValueError.
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    orientation: NDArray[np.float64]
    angular_velocity: NDArray[np.float64]
    propellant_mass: float
    time: float = 0.0

    def __post_init__(self) -> None:
        """Validate, normalize and freeze state arrays."""
        for name, shape in _VECTOR_SHAPES:
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.shape != shape:
                raise ValueError(f"{name} must be shape {shape}, got {arr.shape}")
            if not np.all(np.isfinite(arr)):
                raise ValueError(f"{name} must be finite, got {arr}")
            if name == "orientation":
                arr = normalize_quaternion(arr)
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)

        if not np.isfinite(self.propellant_mass):
            raise ValueError(f"propellant_mass must be finite, got {self.propellant_mass}")
        object.__setattr__(self, "propellant_mass", max(0.0, float(self.propellant_mass)))

    @classmethod
    def initial(cls, vehicle: VehicleParameters, pose: InitialPose) -> "VehicleState":
        """Create the state a session starts from.

        Upright at the configured pose with full propellant and no rotation.
        """
        return cls(
            position=np.array([pose.x, pose.y, vehicle.ground_altitude + pose.altitude]),
            velocity=np.array([0.0, 0.0, pose.vertical_velocity]),
            orientation=euler_to_quaternion(0.0, 0.0, pose.yaw),
            angular_velocity=np.zeros(3),
            propellant_mass=vehicle.propellant_mass,
            time=0.0,
        )

    def evolve(self, **changes) -> "VehicleState":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)

    @property
    def thrust_axis(self) -> NDArray[np.float64]:
        """Main engine thrust direction (body +Z) in world frame."""
        return rotate_vector(self.orientation, WORLD_UP)

    @property
    def altitude(self) -> float:
        """Height of the body origin above z = 0 [m]."""
        return float(self.position[2])

    @property
    def vertical_velocity(self) -> float:
        """Signed vertical velocity, positive up [m/s]."""
        return float(self.velocity[2])

    @property
    def vertical_speed(self) -> float:
        """Vertical speed magnitude [m/s]."""
        return abs(float(self.velocity[2]))

    @property
    def horizontal_speed(self) -> float:
        """Horizontal speed magnitude [m/s]."""
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    @property
    def tilt(self) -> float:
        """Angle between the thrust axis and world up [rad]."""
        return float(np.arccos(np.clip(self.thrust_axis[2], -1.0, 1.0)))

    @property
    def angular_speed(self) -> float:
        """Angular rate magnitude [rad/s]."""
        return float(np.linalg.norm(self.angular_velocity))

    @property
    def euler_angles(self) -> tuple[float, float, float]:
        """(roll, pitch, yaw) [rad]."""
        return quaternion_to_euler(self.orientation)

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "orientation": self.orientation.tolist(),
            "angular_velocity": self.angular_velocity.tolist(),
            "propellant_mass": self.propellant_mass,
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VehicleState":
        """Rebuild a state from :meth:`to_dict` output."""
        return cls(
            position=np.asarray(data["position"], dtype=np.float64),
            velocity=np.asarray(data["velocity"], dtype=np.float64),
            orientation=np.asarray(data["orientation"], dtype=np.float64),
            angular_velocity=np.asarray(data["angular_velocity"], dtype=np.float64),
            propellant_mass=float(data["propellant_mass"]),
            time=float(data.get("time", 0.0)),
        )
