"""Immutable per-tick telemetry record."""

from dataclasses import dataclass

from beartype import beartype

from lander.control.command import ControlCommand
from lander.dynamics.state import VehicleState
from lander.game.landing import LandingReport
from lander.game.phase import Phase


@beartype
@dataclass(frozen=True, eq=False)
class TelemetrySnapshot:
    """Everything observable about the simulation after one tick.

    Attributes:
        tick: Loop tick index, strictly increasing
        timestamp: Wall-clock time the snapshot was assembled [s since epoch]
        sim_time: Simulation time of the vehicle state [s]
        state: Vehicle state after this tick
        phase: Game phase after this tick
        command: Command applied this tick
        session_id: Current session, None while idle
        rod_target: Rate-of-descent target [m/s]
        landing: Landing report, present on terminal ticks
    """
    tick: int
    timestamp: float
    sim_time: float
    state: VehicleState
    phase: Phase
    command: ControlCommand
    session_id: str | None = None
    rod_target: float = 0.0
    landing: LandingReport | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal
