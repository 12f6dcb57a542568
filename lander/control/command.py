"""Per-tick control command.

A :class:`ControlCommand` is produced fresh every tick by the control mapper
and consumed by the dynamics model. It carries no identity across ticks.

Conventions:
- throttle: main engine fraction [0, 1]
- rcs_force: body-frame translational RCS command, [-1, 1] per axis
- rcs_torque: body-frame rotational RCS command (roll, pitch, yaw), [-1, 1] per axis
"""

from dataclasses import dataclass, field, replace

import numpy as np
from beartype import beartype
from numpy.typing import NDArray


def _zeros3() -> NDArray[np.float64]:
    return np.zeros(3)


@beartype
@dataclass(frozen=True, eq=False)
class ControlCommand:
    """Normalized thrust/torque command for one tick.

    Attributes:
        throttle: Main engine throttle [0, 1]
        rcs_force: RCS force command in body frame [-1, 1]
        rcs_torque: RCS torque command in body frame [-1, 1]
        reset_requested: Start button pressed this tick (edge)
        vertical_velocity_nudge: Rate-of-descent target change this tick [m/s]
    """
    throttle: float = 0.0
    rcs_force: NDArray[np.float64] = field(default_factory=_zeros3)
    rcs_torque: NDArray[np.float64] = field(default_factory=_zeros3)
    reset_requested: bool = False
    vertical_velocity_nudge: float = 0.0

    def __post_init__(self) -> None:
        for name in ("rcs_force", "rcs_torque"):
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.shape != (3,):
                raise ValueError(f"{name} must be shape (3,), got {arr.shape}")
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)

    @classmethod
    def neutral(cls) -> "ControlCommand":
        """All-zero command used whenever input is missing or invalid."""
        return cls()

    def with_throttle(self, throttle: float) -> "ControlCommand":
        """Copy of this command with a different throttle."""
        return replace(self, throttle=float(throttle))

    @property
    def is_neutral(self) -> bool:
        """True when the command applies no thrust and carries no events."""
        return (
            self.throttle == 0.0
            and not self.rcs_force.any()
            and not self.rcs_torque.any()
            and not self.reset_requested
            and self.vertical_velocity_nudge == 0.0
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            "throttle": self.throttle,
            "rcs_force": self.rcs_force.tolist(),
            "rcs_torque": self.rcs_torque.tolist(),
            "reset_requested": self.reset_requested,
            "vertical_velocity_nudge": self.vertical_velocity_nudge,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ControlCommand":
        """Rebuild a command from :meth:`to_dict` output."""
        return cls(
            throttle=float(data["throttle"]),
            rcs_force=np.asarray(data["rcs_force"], dtype=np.float64),
            rcs_torque=np.asarray(data["rcs_torque"], dtype=np.float64),
            reset_requested=bool(data["reset_requested"]),
            vertical_velocity_nudge=float(data.get("vertical_velocity_nudge", 0.0)),
        )
