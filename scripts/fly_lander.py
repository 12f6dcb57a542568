#!/usr/bin/env python
"""Example: Fly a complete landing with a scripted pilot, headless.

The pilot presses start, lets the rate-of-descent hold bring the lander
down at the initial -6 m/s, and taps the vertical-velocity button on the
way down to slow to a safe touchdown speed.

The loop runs against a simulated clock, so the session completes as fast
as the machine allows while producing the same recording a real-time run
would. An in-memory live subscriber shows the fan-out side.

Usage:
    uv run python scripts/fly_lander.py
"""

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from lander import (  # noqa: E402
    InputSample,
    LanderConfig,
    MemoryChannel,
    SimulationLoop,
    TelemetrySink,
    read_recording,
)
from lander.config import LoopSettings  # noqa: E402
from lander.plotting import plot_recording  # noqa: E402
from lander.simulation import TelemetrySnapshot  # noqa: E402

OUTPUT_DIR = Path("outputs/fly_lander")


class SimClock:
    """Clock advanced explicitly by the caller."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ScriptedPilot:
    """Gamepad stand-in reacting to the last published snapshot."""

    def __init__(self, config: LanderConfig, clock: SimClock) -> None:
        self.mapping = config.mapping
        self.clock = clock
        self.snapshot: TelemetrySnapshot | None = None
        self._ticks = 0
        self._tap_down = False

    def observe(self, snapshot: TelemetrySnapshot) -> None:
        self.snapshot = snapshot

    def latest(self) -> InputSample:
        buttons = [0.0] * 16
        self._ticks += 1

        # Press start once, after the mapper has seen a released baseline
        if self._ticks == 3:
            buttons[self.mapping.button_start] = 1.0

        # Tap "slower descent" while low and still above -1.5 m/s target
        snap = self.snapshot
        if snap is not None and snap.phase.value == "flight":
            if snap.state.altitude < 60.0 and snap.rod_target < -1.5 and not self._tap_down:
                buttons[self.mapping.button_vertical_velocity_up] = 1.0
                self._tap_down = True
            else:
                self._tap_down = False

        return InputSample(axes=(0.0,) * 6, buttons=tuple(buttons), timestamp=self.clock())


def run_landing():
    """Run one session from start to touchdown."""
    print("=" * 60)
    print("LUNAR LANDER - SCRIPTED SESSION")
    print("=" * 60)

    base = LanderConfig()
    config = LanderConfig(
        vehicle=base.vehicle,
        landing=base.landing,
        initial=base.initial,
        mapping=base.mapping,
        loop=LoopSettings(recordings_dir=OUTPUT_DIR / "recordings"),
    )

    clock = SimClock()
    pilot = ScriptedPilot(config, clock)
    sink = TelemetrySink(config.loop)
    viewer = MemoryChannel()
    sink.add_subscriber(viewer, name="viewer")
    loop = SimulationLoop(config, pilot, sink, clock=clock)

    print(f"\nInitial altitude: {config.initial.altitude:.0f} m")
    print(f"RoD target:       {config.initial.rod_target:.1f} m/s")
    print(f"Tick rate:        {config.loop.tick_rate_hz:.0f} Hz")

    max_ticks = int(180 * config.loop.tick_rate_hz)
    for _ in range(max_ticks):
        snapshot = loop.tick()
        pilot.observe(snapshot)
        clock.now += loop.dt
        if snapshot.phase.is_terminal:
            break
    loop.close()

    print(f"\nSession ended in phase: {snapshot.phase.value} after {snapshot.tick + 1} ticks")
    if snapshot.landing is not None:
        report = snapshot.landing
        print(f"Score: {report.score:.2f}")
        print(f"Remark: {report.remark}")
        for c in report.criteria:
            mark = "ok" if c.ok else "FAIL"
            print(f"  {c.type.value:<18} {c.actual:7.3f} / {c.max:5.2f}  {mark}")

    print(f"\nLive viewer received {len(viewer.messages)} messages")

    for path in sink.recordings:
        recording = read_recording(path)
        print(f"Recording: {path} ({len(recording.messages)} snapshots, outcome {recording.outcome})")
        fig = plot_recording(recording, config.landing)
        plot_path = OUTPUT_DIR / f"{path.stem}.png"
        fig.savefig(plot_path, dpi=120)
        print(f"Dashboard: {plot_path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_landing()
