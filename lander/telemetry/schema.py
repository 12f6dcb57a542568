"""Self-describing JSON form of telemetry snapshots.

The same message is sent to live subscribers and written as a ``snapshot``
line in session recordings, so a recording replays exactly what live
viewers saw.
"""

import json
from typing import Any

import numpy as np
from beartype import beartype

from lander.control.command import ControlCommand
from lander.dynamics.state import VehicleState
from lander.game.landing import LandingReport
from lander.game.phase import Phase
from lander.simulation.snapshot import TelemetrySnapshot

CHANNEL = "/lander/telemetry"
SCHEMA_VERSION = 1


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder for NumPy scalars and arrays."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


@beartype
def snapshot_to_message(snapshot: TelemetrySnapshot) -> dict[str, Any]:
    """Convert a snapshot to the live message dictionary."""
    state = snapshot.state
    roll, pitch, yaw = state.euler_angles
    return {
        "channel": CHANNEL,
        "timestamp": snapshot.timestamp,
        "tick": snapshot.tick,
        "sim_time": snapshot.sim_time,
        "session_id": snapshot.session_id,
        "phase": snapshot.phase.value,
        "state": {
            **state.to_dict(),
            "altitude": state.altitude,
            "vertical_speed": state.vertical_speed,
            "horizontal_speed": state.horizontal_speed,
            "tilt": state.tilt,
            "angular_speed": state.angular_speed,
            "euler_angles": [roll, pitch, yaw],
        },
        "command": snapshot.command.to_dict(),
        "rod_target": snapshot.rod_target,
        "landing": snapshot.landing.to_dict() if snapshot.landing is not None else None,
    }


@beartype
def message_to_snapshot(message: dict[str, Any]) -> TelemetrySnapshot:
    """Rebuild a snapshot from a live message."""
    landing = message.get("landing")
    return TelemetrySnapshot(
        tick=int(message["tick"]),
        timestamp=float(message["timestamp"]),
        sim_time=float(message["sim_time"]),
        state=VehicleState.from_dict(message["state"]),
        phase=Phase(message["phase"]),
        command=ControlCommand.from_dict(message["command"]),
        session_id=message.get("session_id"),
        rod_target=float(message.get("rod_target", 0.0)),
        landing=LandingReport.from_dict(landing) if landing else None,
    )


def encode(message: dict[str, Any]) -> str:
    """Serialize a message to a single line of JSON."""
    return json.dumps(message, cls=NumpyEncoder, separators=(",", ":"))


def encode_snapshot(snapshot: TelemetrySnapshot) -> bytes:
    """Serialize a snapshot for a live channel."""
    return encode(snapshot_to_message(snapshot)).encode("utf-8")


def decode(data: bytes | str) -> dict[str, Any]:
    """Parse a message produced by :func:`encode` or :func:`encode_snapshot`."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data)
