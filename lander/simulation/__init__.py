"""Simulation module: fixed-rate loop and per-tick snapshots."""

from lander.simulation.loop import LoopContext, LoopStats, SimulationLoop, SnapshotSink
from lander.simulation.snapshot import TelemetrySnapshot

__all__ = [
    "LoopContext",
    "LoopStats",
    "SimulationLoop",
    "SnapshotSink",
    "TelemetrySnapshot",
]
