"""Gamepad sample to control command mapping.

Turns raw dual-stick samples into normalized :class:`ControlCommand`
values:

- Axes are clamped to [-1, 1], snapped to zero inside the deadzone and
  scaled (a negative scale inverts the axis).
- Buttons are compared against the previous sample to find press edges.
  Tap buttons (rate-of-descent up/down) nudge the target once per press and
  auto-repeat after being held; hold buttons (yaw left/right) command torque
  for as long as they stay down.
- A missing, stale or malformed sample maps to the neutral command so a
  disconnected controller never leaves thrusters firing.

Example:
    >>> from lander.config import AxisMapping
    >>> from lander.control.mapper import ControlMapper, InputSample
    >>>
    >>> mapper = ControlMapper(AxisMapping())
    >>> sample = InputSample(axes=(0.0, 0.5, 0.0, 0.0), buttons=(0.0,) * 16, timestamp=0.0)
    >>> command = mapper.map(sample, now=0.01)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
from beartype import beartype

from lander.config import AxisMapping
from lander.control.command import ControlCommand

logger = logging.getLogger(__name__)


@beartype
@dataclass(frozen=True)
class InputSample:
    """One reading of the input device.

    Attributes:
        axes: Axis values, nominally in [-1, 1]
        buttons: Button values, pressed when > 0 (pressure-sensitive allowed)
        timestamp: Monotonic time the sample was taken [s]
    """
    axes: tuple[float, ...]
    buttons: tuple[float, ...]
    timestamp: float = 0.0

    @classmethod
    def from_message(cls, message: dict, timestamp: float) -> "InputSample":
        """Build a sample from a ``sensor_msgs/Joy`` style message."""
        return cls(
            axes=tuple(float(a) for a in message.get("axes", ())),
            buttons=tuple(float(b) for b in message.get("buttons", ())),
            timestamp=float(timestamp),
        )

    def axis(self, index: int) -> float:
        """Axis value clamped to [-1, 1]."""
        return min(1.0, max(-1.0, self.axes[index]))

    def pressed(self, index: int) -> bool:
        """Whether a button is down."""
        return self.buttons[index] > 0.0


@dataclass
class _ButtonTracker:
    """Edge and held-duration tracking for one button."""
    pressed: bool = False
    held_ticks: int = 0

    def update(self, pressed: bool) -> bool:
        """Record the current level; return True on a press edge."""
        edge = pressed and not self.pressed
        self.held_ticks = self.held_ticks + 1 if pressed else 0
        self.pressed = pressed
        return edge


@beartype
class ControlMapper:
    """Maps input samples to control commands.

    The only state kept between ticks is the previous button levels and
    their held durations.
    """

    def __init__(self, mapping: AxisMapping, stale_after_s: float | None = None) -> None:
        """Initialize the mapper.

        Args:
            mapping: Axis/button layout and shaping
            stale_after_s: Samples older than this map to neutral [s]
        """
        self.mapping = mapping
        self.stale_after_s = stale_after_s
        self._buttons: dict[str, _ButtonTracker] | None = None

    def reset(self) -> None:
        """Forget previous button levels (e.g. a new controller connected).

        The next sample is taken as the baseline and produces no edges.
        """
        self._buttons = None

    def map(self, sample: InputSample | None, now: float | None = None) -> ControlCommand:
        """Translate a sample into a command.

        Args:
            sample: Latest sample, None when no device has reported yet
            now: Current monotonic time, enables the staleness check [s]

        Returns:
            Command for this tick, neutral on missing/stale/malformed input
        """
        if sample is None:
            return ControlCommand.neutral()
        if now is not None and self.stale_after_s is not None:
            age = now - sample.timestamp
            if age > self.stale_after_s:
                logger.debug("Input sample is stale (%.3f s old), using neutral command", age)
                return ControlCommand.neutral()
        try:
            return self._map(sample)
        except (IndexError, ValueError) as e:
            logger.warning("Malformed input sample, using neutral command: %s", e)
            return ControlCommand.neutral()

    def _map(self, sample: InputSample) -> ControlCommand:
        m = self.mapping
        if not all(math.isfinite(v) for v in (*sample.axes, *sample.buttons)):
            raise ValueError("non-finite axis or button value")

        levels = {
            "yaw_left": sample.pressed(m.button_yaw_left),
            "yaw_right": sample.pressed(m.button_yaw_right),
            "vv_up": sample.pressed(m.button_vertical_velocity_up),
            "vv_down": sample.pressed(m.button_vertical_velocity_down),
            "start": sample.pressed(m.button_start),
        }
        strafe_x = self._axis(sample, m.axis_strafe_x, "strafe_x")
        strafe_y = self._axis(sample, m.axis_strafe_y, "strafe_y")
        vertical = self._axis(sample, m.axis_vertical, "vertical")
        roll = self._axis(sample, m.axis_roll, "roll")
        pitch = self._axis(sample, m.axis_pitch, "pitch")
        throttle = self._axis(sample, m.axis_throttle, "throttle")

        if self._buttons is None:
            # Baseline sample: adopt the current levels without reporting edges.
            self._buttons = {name: _ButtonTracker(pressed=level) for name, level in levels.items()}
        edges = {name: self._buttons[name].update(level) for name, level in levels.items()}

        yaw = float(levels["yaw_left"]) - float(levels["yaw_right"])
        nudge = m.vertical_velocity_step * (
            self._tap("vv_up", edges["vv_up"]) - self._tap("vv_down", edges["vv_down"])
        )

        return ControlCommand(
            throttle=min(1.0, max(0.0, 0.5 * (throttle + 1.0))) if m.axis_throttle is not None else 0.0,
            rcs_force=np.clip(np.array([strafe_x, strafe_y, vertical]), -1.0, 1.0),
            rcs_torque=np.clip(np.array([roll, pitch, yaw]), -1.0, 1.0),
            reset_requested=edges["start"],
            vertical_velocity_nudge=nudge,
        )

    def _axis(self, sample: InputSample, index: int | None, role: str) -> float:
        if index is None:
            return 0.0
        raw = sample.axis(index)
        if abs(raw) < self.mapping.dead_zone_for(role):
            return 0.0
        return raw * self.mapping.scale_for(role)

    def _tap(self, name: str, edge: bool) -> float:
        """1.0 on a press edge or an auto-repeat tick, else 0.0."""
        if edge:
            return 1.0
        held = self._buttons[name].held_ticks
        after = self.mapping.repeat_after_ticks
        if held > after and (held - after) % self.mapping.repeat_interval_ticks == 0:
            return 1.0
        return 0.0
