"""Reading session recordings back.

Recordings are self-contained: replay needs neither the loop nor the
sink.

Example:
    >>> from lander.telemetry.replay import list_recordings, read_recording
    >>>
    >>> for path in list_recordings("recordings"):
    ...     rec = read_recording(path)
    ...     print(rec.outcome, rec.ticks)
    >>> df = rec.to_dataframe()
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import polars as pl
from beartype import beartype

from lander.errors import RecordingError
from lander.simulation.snapshot import TelemetrySnapshot
from lander.telemetry.recording import RECORDING_SUFFIX
from lander.telemetry.schema import message_to_snapshot


@beartype
@dataclass
class SessionRecording:
    """A recording loaded from disk.

    Attributes:
        path: Source file
        header: Header line (session id, start time, tick rate)
        messages: Snapshot messages in tick order
        footer: Footer line, None if the recording was cut short
    """
    path: Path
    header: dict[str, Any]
    messages: list[dict[str, Any]] = field(default_factory=list)
    footer: dict[str, Any] | None = None

    @property
    def session_id(self) -> str:
        return self.header["session_id"]

    @property
    def complete(self) -> bool:
        return self.footer is not None

    @property
    def outcome(self) -> str:
        """Footer outcome, or "incomplete" without a footer."""
        return self.footer["outcome"] if self.footer else "incomplete"

    @property
    def degraded(self) -> bool:
        return bool(self.footer and self.footer.get("degraded"))

    @property
    def ticks(self) -> list[int]:
        return [m["tick"] for m in self.messages]

    @property
    def landing(self) -> dict[str, Any] | None:
        return self.footer.get("landing") if self.footer else None

    def snapshots(self) -> list[TelemetrySnapshot]:
        """Rebuild the recorded snapshots."""
        return [message_to_snapshot(m) for m in self.messages]

    def to_dataframe(self):
        """Convert to a Polars DataFrame, one row per tick."""
        rows = []
        for m in self.messages:
            state = m["state"]
            command = m["command"]
            rows.append({
                "tick": m["tick"],
                "timestamp": m["timestamp"],
                "sim_time": m["sim_time"],
                "phase": m["phase"],
                "x": state["position"][0],
                "y": state["position"][1],
                "altitude": state["position"][2],
                "vx": state["velocity"][0],
                "vy": state["velocity"][1],
                "vz": state["velocity"][2],
                "tilt": state.get("tilt"),
                "angular_speed": state.get("angular_speed"),
                "propellant_mass": state["propellant_mass"],
                "throttle": command["throttle"],
                "rod_target": m.get("rod_target"),
            })
        return pl.DataFrame(rows)


@beartype
def read_recording(path: str | Path) -> SessionRecording:
    """Load a recording.

    Raises:
        RecordingError: If the file cannot be read or has no header
    """
    path = Path(path)
    header = None
    messages: list[dict[str, Any]] = []
    footer = None
    try:
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    raise RecordingError(f"{path}:{lineno}: invalid JSON: {e}") from e
                kind = record.pop("kind", None)
                if kind == "header":
                    header = record
                elif kind == "snapshot":
                    messages.append(record)
                elif kind == "footer":
                    footer = record
    except OSError as e:
        raise RecordingError(f"cannot read recording {path}: {e}") from e

    if header is None:
        raise RecordingError(f"{path} has no header line")
    return SessionRecording(path=path, header=header, messages=messages, footer=footer)


@beartype
def list_recordings(directory: str | Path) -> list[Path]:
    """Finalized recordings in a directory, oldest first by name timestamp."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    paths = [p for p in directory.glob(f"*{RECORDING_SUFFIX}") if not p.name.startswith(".")]
    return sorted(paths, key=lambda p: (p.name.split("-", 1)[-1], p.name))
