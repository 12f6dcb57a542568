"""Fixed-rate simulation loop.

Each tick runs, in order:
1. Poll the input source without blocking (reuse the last sample if none)
2. Map the sample to a control command
3. In Flight, replace the throttle with the rate-of-descent hold output
4. In Flight, advance the vehicle dynamics by one fixed timestep
5. Let the game state machine observe the result (may reset the vehicle)
6. Assemble a snapshot and publish it to the telemetry sink

The loop never blocks on telemetry: the sink only enqueues. When a tick
overruns its period the next one starts immediately and the schedule is
re-anchored; missed ticks are not replayed.

Example:
    >>> from lander.config import LanderConfig
    >>> from lander.control import LatestSampleSlot
    >>> from lander.simulation import SimulationLoop
    >>> from lander.telemetry import TelemetrySink
    >>>
    >>> config = LanderConfig()
    >>> slot = LatestSampleSlot()
    >>> sink = TelemetrySink(config.loop)
    >>> loop = SimulationLoop(config, slot, sink)
    >>> loop.run(max_ticks=300)
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, runtime_checkable

from beartype import beartype

from lander.config import LanderConfig
from lander.control.command import ControlCommand
from lander.control.inputs import InputSource
from lander.control.mapper import ControlMapper, InputSample
from lander.control.pid import RateOfDescentController
from lander.dynamics.rigid_body import LanderDynamics
from lander.dynamics.state import VehicleState
from lander.game.machine import GameStateMachine
from lander.game.phase import Outcome, Phase
from lander.simulation.snapshot import TelemetrySnapshot

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotSink(Protocol):
    """Receiver of the per-tick snapshots."""

    def publish(self, snapshot: TelemetrySnapshot) -> None:
        ...

    def close(self, outcome: Outcome = Outcome.ABORTED) -> None:
        ...


# =============================================================================
# Loop State
# =============================================================================


@beartype
@dataclass
class LoopContext:
    """All mutable state of a running loop.

    Attributes:
        state: Current vehicle state
        machine: Game state machine (phase, session, countdown)
        mapper: Control mapper with its button history
        rod: Rate-of-descent hold
        sample: Most recent input sample, reused when the source has nothing new
        command: Command applied on the last tick
        tick: Index of the next tick
        overruns: Ticks that exceeded their period
    """
    state: VehicleState
    machine: GameStateMachine
    mapper: ControlMapper
    rod: RateOfDescentController
    sample: InputSample | None = None
    command: ControlCommand = field(default_factory=ControlCommand.neutral)
    tick: int = 0
    overruns: int = 0

    @classmethod
    def create(cls, config: LanderConfig, machine: GameStateMachine | None = None) -> "LoopContext":
        """Build the context for a fresh loop, idle at the initial pose."""
        machine = machine or GameStateMachine(config)
        return cls(
            state=machine.initial_state(),
            machine=machine,
            mapper=ControlMapper(config.mapping, stale_after_s=config.loop.stale_input_after_s),
            rod=RateOfDescentController(
                target=config.initial.rod_target,
                max_thrust=config.vehicle.max_thrust,
                gravity=config.vehicle.gravity,
                kp=config.loop.rod_kp,
                ki=config.loop.rod_ki,
                kd=config.loop.rod_kd,
            ),
        )

    @property
    def phase(self) -> Phase:
        return self.machine.phase


class LoopStats(NamedTuple):
    """Summary returned by :meth:`SimulationLoop.run`."""
    ticks: int
    overruns: int


# =============================================================================
# Simulation Loop
# =============================================================================


@beartype
class SimulationLoop:
    """Drives dynamics, control and game logic at a fixed tick rate.

    Args:
        config: Static configuration
        input_source: Non-blocking pilot input
        sink: Telemetry sink receiving one snapshot per tick, or None
        clock: Monotonic clock used for pacing and input staleness [s]
        wall_clock: Clock stamped on snapshots [s since epoch]
        sleep: Sleep function used for pacing
        machine: Optional pre-built state machine (e.g. with fixed session ids)
    """

    def __init__(
        self,
        config: LanderConfig,
        input_source: InputSource,
        sink: SnapshotSink | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        machine: GameStateMachine | None = None,
    ) -> None:
        self.config = config
        self.input_source = input_source
        self.sink = sink
        self.dynamics = LanderDynamics(config.vehicle)
        self.context = LoopContext.create(config, machine)
        self._clock = clock
        self._wall_clock = wall_clock
        self._sleep = sleep
        self._closed = False

    @property
    def dt(self) -> float:
        return self.config.loop.dt

    def tick(self) -> TelemetrySnapshot:
        """Run exactly one tick and publish its snapshot."""
        ctx = self.context
        machine = ctx.machine

        sample = self.input_source.latest()
        if sample is not None:
            ctx.sample = sample
        command = ctx.mapper.map(ctx.sample, now=self._clock())

        contact = None
        if machine.phase in (Phase.ARMED, Phase.FLIGHT) and command.vertical_velocity_nudge:
            ctx.rod.adjust_target(command.vertical_velocity_nudge)

        if machine.phase is Phase.FLIGHT:
            if self.config.loop.throttle_mode == "rate_of_descent":
                throttle = ctx.rod.compute_throttle(
                    vertical_velocity=ctx.state.vertical_velocity,
                    mass=self.dynamics.total_mass(ctx.state),
                    tilt=ctx.state.tilt,
                    dt=self.dt,
                )
                command = command.with_throttle(throttle)
            result = self.dynamics.advance(ctx.state, command, self.dt)
            ctx.state, contact, command = result.state, result.contact, result.command

        transition = machine.observe(ctx.state, contact, command)
        if transition is not None and transition.reset_state is not None:
            ctx.state = transition.reset_state
            ctx.rod.reset(self.config.initial.rod_target)

        ctx.command = command
        session = machine.session
        snapshot = TelemetrySnapshot(
            tick=ctx.tick,
            timestamp=float(self._wall_clock()),
            sim_time=ctx.state.time,
            state=ctx.state,
            phase=machine.phase,
            command=command,
            session_id=session.session_id if session is not None and machine.phase is not Phase.IDLE else None,
            rod_target=ctx.rod.target,
            landing=session.report if session is not None and machine.phase.is_terminal else None,
        )
        ctx.tick += 1

        if self.sink is not None:
            self.sink.publish(snapshot)
        return snapshot

    def run(self, max_ticks: int | None = None, stop_event: threading.Event | None = None) -> LoopStats:
        """Run ticks at the configured rate until stopped.

        Args:
            max_ticks: Stop after this many ticks (None = no limit)
            stop_event: Stop when this event is set

        Returns:
            LoopStats with ticks run and overruns counted
        """
        period = self.dt
        log_every = self.config.loop.overrun_log_every
        ctx = self.context
        ticks = 0
        logger.info("Simulation loop started at %.1f Hz", self.config.loop.tick_rate_hz)

        deadline = self._clock()
        try:
            while max_ticks is None or ticks < max_ticks:
                if stop_event is not None and stop_event.is_set():
                    break
                self.tick()
                ticks += 1

                deadline += period
                remaining = deadline - self._clock()
                if remaining > 0:
                    self._sleep(remaining)
                else:
                    ctx.overruns += 1
                    if ctx.overruns % log_every == 1 or log_every == 1:
                        logger.warning(
                            "Tick %d overran its period by %.1f ms (%d overruns so far)",
                            ctx.tick - 1, -remaining * 1000, ctx.overruns,
                        )
                    deadline = self._clock()
        finally:
            self.close()

        logger.info("Simulation loop stopped after %d ticks (%d overruns)", ticks, ctx.overruns)
        return LoopStats(ticks=ticks, overruns=ctx.overruns)

    def close(self) -> None:
        """Abort any running session and finalize telemetry."""
        if self._closed:
            return
        self._closed = True
        self.context.machine.abort()
        if self.sink is not None:
            self.sink.close(Outcome.ABORTED)
