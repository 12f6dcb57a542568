"""Static configuration for the lander core.

All tunables (physical constants, landing thresholds, controller mapping and
loop settings) are grouped in small frozen dataclasses composed into a single
:class:`LanderConfig`. The configuration is loaded once at process start and
never mutated by the core.

Default values follow the Apollo lunar module final approach: the simulation
picks up at 200 m with 600 kg of descent propellant left.

Example:
    >>> from lander.config import LanderConfig
    >>>
    >>> config = LanderConfig()                      # built-in defaults
    >>> config = LanderConfig.from_json("lander.json")
    >>> config.loop.dt
    0.03333333333333333
"""

import json
import math
import typing
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

from beartype import beartype
from beartype.roar import BeartypeException

from lander.errors import ConfigError

ThrottleMode = Literal["rate_of_descent", "direct"]

# =============================================================================
# Physical Constants
# =============================================================================

MOON_GRAVITY: float = 1.62  # [m/s^2]

APOLLO_DRY_MASS_KG: float = 2_150.0
APOLLO_PAYLOAD_MASS_KG: float = 2_150.0 + 2_400.0  # ascent stage + ascent fuel
APOLLO_PROPELLANT_MASS_KG: float = 600.0
APOLLO_MAX_THRUST_N: float = 45_000.0
APOLLO_MAIN_BURN_RATE_KGPS: float = 15.0

# Two 440 N quad thrusters fire for any direction, ~2 m from the center of mass
APOLLO_RCS_THRUST_N: float = 880.0
APOLLO_RCS_TORQUE_NM: float = 3_700.0
APOLLO_RCS_BURN_RATE_KGPS: float = 0.31

# Solid cylinder, 4.2 m diameter and 7 m tall, per kg of mass [m^2]
APOLLO_INERTIA_FACTORS: tuple[float, float, float] = (
    (3.0 * 2.1 * 2.1 + 7.0 * 7.0) / 12.0,
    (3.0 * 2.1 * 2.1 + 7.0 * 7.0) / 12.0,
    (2.1 * 2.1) / 2.0,
)


# =============================================================================
# Configuration Sections
# =============================================================================


@beartype
@dataclass(frozen=True)
class VehicleParameters:
    """Physical constants of the vehicle and its environment.

    Attributes:
        gravity: Gravitational acceleration magnitude along world -Z [m/s^2]
        dry_mass: Descent stage dry mass [kg]
        payload_mass: Ascent stage and ascent propellant [kg]
        propellant_mass: Descent propellant loaded at session start [kg]
        max_thrust: Main engine thrust at full throttle [N]
        main_burn_rate: Main engine propellant flow at full throttle [kg/s]
        rcs_thrust: RCS translational force per axis at full command [N]
        rcs_torque: RCS torque per axis at full command [N*m]
        rcs_burn_rate: RCS propellant flow per unit of command magnitude [kg/s]
        inertia_factors: Principal moments of inertia per kg of mass [m^2]
        angular_damping: Per-step multiplier applied to angular velocity
        ground_altitude: Altitude of the ground plane [m]
    """
    gravity: float = MOON_GRAVITY
    dry_mass: float = APOLLO_DRY_MASS_KG
    payload_mass: float = APOLLO_PAYLOAD_MASS_KG
    propellant_mass: float = APOLLO_PROPELLANT_MASS_KG
    max_thrust: float = APOLLO_MAX_THRUST_N
    main_burn_rate: float = APOLLO_MAIN_BURN_RATE_KGPS
    rcs_thrust: float = APOLLO_RCS_THRUST_N
    rcs_torque: float = APOLLO_RCS_TORQUE_NM
    rcs_burn_rate: float = APOLLO_RCS_BURN_RATE_KGPS
    inertia_factors: tuple[float, float, float] = APOLLO_INERTIA_FACTORS
    angular_damping: float = 0.999
    ground_altitude: float = 0.0

    def __post_init__(self) -> None:
        _require_finite(self, [f.name for f in fields(self) if f.name != "inertia_factors"])
        for name in ("dry_mass", "max_thrust", "main_burn_rate", "rcs_thrust",
                     "rcs_torque", "rcs_burn_rate"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"vehicle.{name} must be positive, got {getattr(self, name)}")
        if self.payload_mass < 0 or self.propellant_mass < 0 or self.gravity < 0:
            raise ConfigError("vehicle masses and gravity must not be negative")
        if any(not math.isfinite(f) or f <= 0 for f in self.inertia_factors):
            raise ConfigError(f"vehicle.inertia_factors must be positive, got {self.inertia_factors}")
        if not 0.0 < self.angular_damping <= 1.0:
            raise ConfigError(f"vehicle.angular_damping must be in (0, 1], got {self.angular_damping}")

    @property
    def empty_mass(self) -> float:
        """Vehicle mass without descent propellant [kg]."""
        return self.dry_mass + self.payload_mass


@beartype
@dataclass(frozen=True)
class LandingThresholds:
    """Safe-landing limits, all inclusive maxima.

    Attributes:
        max_vertical_speed: [m/s]
        max_horizontal_speed: [m/s]
        max_tilt: Angle between body +Z and world +Z [rad]
        max_angular_speed: [rad/s]
    """
    max_vertical_speed: float = 3.0
    max_horizontal_speed: float = 1.0
    max_tilt: float = 0.25
    max_angular_speed: float = 0.25

    def __post_init__(self) -> None:
        _require_finite(self, [f.name for f in fields(self)])
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ConfigError(f"landing.{f.name} must be positive")


@beartype
@dataclass(frozen=True)
class InitialPose:
    """Vehicle pose applied when a session is armed.

    Attributes:
        x, y: Horizontal position [m]
        altitude: Height above the ground plane [m]
        vertical_velocity: Initial vertical velocity [m/s]
        yaw: Initial heading about world +Z [rad]
        rod_target: Initial rate-of-descent target [m/s]
    """
    x: float = 0.0
    y: float = 0.0
    altitude: float = 200.0
    vertical_velocity: float = 0.0
    yaw: float = 0.0
    rod_target: float = -6.0

    def __post_init__(self) -> None:
        _require_finite(self, [f.name for f in fields(self)])
        if self.altitude <= 0:
            raise ConfigError(f"initial.altitude must be above the ground, got {self.altitude}")


@beartype
@dataclass(frozen=True)
class AxisMapping:
    """Gamepad axis/button layout and input shaping.

    Axis roles map to RCS commands in the body frame: strafe x/y to force
    x/y, roll/pitch to torque x/y. Yaw is commanded by two hold buttons,
    the rate-of-descent target by two tap buttons.

    Attributes:
        axis_*: Axis index for each role, None when unmapped
        button_*: Button index for each role
        dead_zone: Default deadzone applied to every axis
        dead_zones: Per-role deadzone overrides, keyed by role name
        scales: Per-role scale (negative inverts), keyed by role name
        vertical_velocity_step: Target nudge per tap [m/s]
        repeat_after_ticks: Ticks a tap button must be held before repeating
        repeat_interval_ticks: Ticks between repeats while held
    """
    axis_strafe_x: int | None = 0
    axis_strafe_y: int | None = 1
    axis_roll: int | None = 2
    axis_pitch: int | None = 3
    axis_throttle: int | None = None
    axis_vertical: int | None = None
    button_yaw_left: int = 4
    button_yaw_right: int = 5
    button_vertical_velocity_up: int = 12
    button_vertical_velocity_down: int = 13
    button_start: int = 9
    dead_zone: float = 0.10
    dead_zones: dict[str, float] = field(default_factory=dict)
    scales: dict[str, float] = field(default_factory=lambda: {"roll": -1.0, "pitch": -1.0})
    vertical_velocity_step: float = 0.5
    repeat_after_ticks: int = 15
    repeat_interval_ticks: int = 5

    def __post_init__(self) -> None:
        roles = set(AXIS_ROLES)
        for mapping_name in ("dead_zones", "scales"):
            unknown = set(getattr(self, mapping_name)) - roles
            if unknown:
                raise ConfigError(f"mapping.{mapping_name} has unknown roles: {sorted(unknown)}")
        for role in AXIS_ROLES:
            if not 0.0 <= self.dead_zone_for(role) < 1.0:
                raise ConfigError(f"deadzone for {role} must be in [0, 1)")
            if not math.isfinite(self.scale_for(role)):
                raise ConfigError(f"scale for {role} must be finite")
        indices = [getattr(self, f.name) for f in fields(self)
                   if f.name.startswith(("axis_", "button_"))]
        if any(i is not None and i < 0 for i in indices):
            raise ConfigError("axis and button indices must not be negative")
        if self.repeat_after_ticks < 1 or self.repeat_interval_ticks < 1:
            raise ConfigError("repeat tick counts must be at least 1")

    def dead_zone_for(self, role: str) -> float:
        """Deadzone for an axis role."""
        return self.dead_zones.get(role, self.dead_zone)

    def scale_for(self, role: str) -> float:
        """Scale (with sign) for an axis role."""
        return self.scales.get(role, 1.0)


AXIS_ROLES: tuple[str, ...] = ("strafe_x", "strafe_y", "roll", "pitch", "throttle", "vertical")


@beartype
@dataclass(frozen=True)
class LoopSettings:
    """Simulation loop, controller and sink settings.

    Attributes:
        tick_rate_hz: Fixed simulation rate [Hz]
        countdown_ticks: Ticks spent in Armed before Flight
        throttle_mode: "rate_of_descent" (PID hold) or "direct" (throttle axis)
        stale_input_after_s: Input samples older than this map to neutral [s]
        subscriber_queue_size: Per-subscriber live queue bound
        recording_queue_size: Recording writer queue bound
        recordings_dir: Directory receiving session recordings
        rod_kp, rod_ki, rod_kd: Rate-of-descent PID gains
        overrun_log_every: Log one warning per this many overruns
    """
    tick_rate_hz: float = 30.0
    countdown_ticks: int = 30
    throttle_mode: ThrottleMode = "rate_of_descent"
    stale_input_after_s: float = 0.5
    subscriber_queue_size: int = 8
    recording_queue_size: int = 4096
    recordings_dir: Path = Path("recordings")
    rod_kp: float = 0.8
    rod_ki: float = 0.05
    rod_kd: float = 0.3
    overrun_log_every: int = 100

    def __post_init__(self) -> None:
        if not math.isfinite(self.tick_rate_hz) or self.tick_rate_hz <= 0:
            raise ConfigError(f"loop.tick_rate_hz must be positive, got {self.tick_rate_hz}")
        if self.countdown_ticks < 0:
            raise ConfigError("loop.countdown_ticks must not be negative")
        if self.stale_input_after_s <= 0:
            raise ConfigError("loop.stale_input_after_s must be positive")
        if self.subscriber_queue_size < 1 or self.recording_queue_size < 1:
            raise ConfigError("queue sizes must be at least 1")
        if self.overrun_log_every < 1:
            raise ConfigError("loop.overrun_log_every must be at least 1")

    @property
    def dt(self) -> float:
        """Fixed tick duration [s]."""
        return 1.0 / self.tick_rate_hz


# =============================================================================
# Top-level Configuration
# =============================================================================

_SECTIONS: dict[str, type] = {
    "vehicle": VehicleParameters,
    "landing": LandingThresholds,
    "initial": InitialPose,
    "mapping": AxisMapping,
    "loop": LoopSettings,
}


@beartype
@dataclass(frozen=True)
class LanderConfig:
    """Complete static configuration."""
    vehicle: VehicleParameters = field(default_factory=VehicleParameters)
    landing: LandingThresholds = field(default_factory=LandingThresholds)
    initial: InitialPose = field(default_factory=InitialPose)
    mapping: AxisMapping = field(default_factory=AxisMapping)
    loop: LoopSettings = field(default_factory=LoopSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LanderConfig":
        """Build a configuration from nested dictionaries.

        Missing sections and keys fall back to defaults.

        Raises:
            ConfigError: On unknown sections/keys or invalid values
        """
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigError(f"unknown configuration sections: {sorted(unknown)}")
        sections = {
            name: _build_section(name, section_cls, data.get(name) or {})
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections)

    @classmethod
    def from_json(cls, path: str | Path) -> "LanderConfig":
        """Load a configuration from a JSON file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"failed to load configuration {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"configuration root must be an object: {path}")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-compatible nested dictionaries."""
        data = asdict(self)
        data["loop"]["recordings_dir"] = str(self.loop.recordings_dir)
        data["vehicle"]["inertia_factors"] = list(self.vehicle.inertia_factors)
        return data


# =============================================================================
# Helpers
# =============================================================================


def _require_finite(section: Any, names: list[str]) -> None:
    for name in names:
        value = getattr(section, name)
        if not math.isfinite(value):
            raise ConfigError(f"{type(section).__name__}.{name} must be finite, got {value}")


def _coerce(hint: Any, value: Any) -> Any:
    """Coerce JSON scalars into the annotated field type."""
    if hint is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if hint is Path and isinstance(value, str):
        return Path(value)
    if typing.get_origin(hint) is tuple and isinstance(value, list):
        return tuple(float(v) if isinstance(v, int) and not isinstance(v, bool) else v
                     for v in value)
    if typing.get_origin(hint) is dict and isinstance(value, dict):
        return {k: float(v) if isinstance(v, int) and not isinstance(v, bool) else v
                for k, v in value.items()}
    return value


def _build_section(name: str, section_cls: type, data: Any) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"configuration section '{name}' must be an object")
    hints = typing.get_type_hints(section_cls)
    unknown = set(data) - set(hints)
    if unknown:
        raise ConfigError(f"unknown keys in '{name}': {sorted(unknown)}")
    kwargs = {key: _coerce(hints[key], value) for key, value in data.items()}
    try:
        return section_cls(**kwargs)
    except BeartypeException as e:
        raise ConfigError(f"invalid value in '{name}': {e}") from e
