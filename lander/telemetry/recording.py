"""Append-only session recordings.

A recording is a JSON Lines file with one ``header`` line, one ``snapshot``
line per tick (the live message, in strict tick order) and a ``footer``
line written on finalize. While the session runs the file carries a
temporary name; on finalize it is renamed to

    <outcome>-<YYYY-MM-DDTHH-MM-SSZ>-<session id prefix>.jsonl

All file I/O happens on the writer's own thread, including the footer, the
close and the rename. :meth:`RecordingWriter.finalize` only signals that
thread, so the simulation loop never waits on disk; :meth:`RecordingWriter.wait`
is for shutdown. An I/O failure or a full queue marks the recording degraded
and is logged; it never propagates to the simulation loop.
"""

import json
import logging
import queue
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from beartype import beartype

from lander.errors import RecordingError
from lander.game.phase import Outcome
from lander.telemetry.schema import SCHEMA_VERSION, NumpyEncoder

logger = logging.getLogger(__name__)

RECORDING_SUFFIX = ".jsonl"
PARTIAL_SUFFIX = ".jsonl.part"
SESSION_PREFIX_LENGTH = 8

_POLL_S = 0.05


def recording_name(outcome: Outcome, started_at: datetime, session_id: str) -> str:
    """Final file name of a session recording."""
    stamp = started_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
    return f"{outcome.value}-{stamp}-{session_id[:SESSION_PREFIX_LENGTH]}{RECORDING_SUFFIX}"


@beartype
class RecordingWriter:
    """Writes one session's snapshots to disk on a background thread.

    Args:
        directory: Directory receiving the recording
        session_id: Session being recorded
        started_at: Session start time (UTC), used in the final name
        tick_rate_hz: Loop rate stored in the header
        maxsize: Queue bound; overflow marks the recording degraded

    Example:
        >>> writer = RecordingWriter(Path("recordings"), session.session_id, session.started_at)
        >>> writer.append(message)
        >>> writer.finalize(Outcome.LANDED)     # returns immediately
        >>> path = writer.wait()                 # at shutdown
    """

    def __init__(
        self,
        directory: Path,
        session_id: str,
        started_at: datetime,
        tick_rate_hz: float = 30.0,
        maxsize: int = 4096,
    ) -> None:
        self.directory = Path(directory)
        self.session_id = session_id
        self.started_at = started_at
        self.tick_rate_hz = tick_rate_hz
        self.partial_path = self.directory / f".{session_id}{PARTIAL_SUFFIX}"
        self.path: Path | None = None
        self.ticks_written = 0
        self._degraded = threading.Event()
        self._finish = threading.Event()
        self._ending: tuple[Outcome, dict[str, Any] | None] = (Outcome.ABORTED, None)
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread = threading.Thread(
            target=self._worker, name=f"recording-{session_id[:SESSION_PREFIX_LENGTH]}", daemon=True
        )
        self._thread.start()

    @property
    def degraded(self) -> bool:
        """True once any snapshot could not be recorded."""
        return self._degraded.is_set()

    @property
    def finalized(self) -> bool:
        """True once finalize was requested."""
        return self._finish.is_set()

    @property
    def done(self) -> bool:
        """True once the writer thread has closed (and renamed) the file."""
        return not self._thread.is_alive()

    def append(self, message: dict[str, Any]) -> None:
        """Queue one snapshot message without blocking."""
        if self._finish.is_set():
            return
        try:
            self._queue.put_nowait({"kind": "snapshot", **message})
        except queue.Full:
            self._mark_degraded(f"queue full, dropped tick {message.get('tick')}")

    def finalize(self, outcome: Outcome, landing: dict[str, Any] | None = None) -> None:
        """Ask the writer to finish the recording, without waiting for it.

        Snapshots already queued are written first, then the footer; the file
        is closed and renamed on the writer thread. Later calls are ignored.
        """
        if self._finish.is_set():
            return
        self._ending = (outcome, landing)
        self._finish.set()

    def wait(self, timeout: float | None = 10.0) -> Path | None:
        """Block until the writer has finished.

        Returns:
            Final path, or None if the recording could not be kept
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            self._mark_degraded("writer did not finish in time")
        return self.path

    def _mark_degraded(self, reason: str) -> None:
        if not self._degraded.is_set():
            logger.warning("Session %s recording degraded: %s", self.session_id, reason)
        self._degraded.set()

    def _header(self) -> dict[str, Any]:
        return {
            "kind": "header",
            "schema_version": SCHEMA_VERSION,
            "session_id": self.session_id,
            "started_at": self.started_at.isoformat(),
            "tick_rate_hz": self.tick_rate_hz,
        }

    def _footer(self, outcome: Outcome, landing: dict[str, Any] | None) -> dict[str, Any]:
        return {
            "kind": "footer",
            "session_id": self.session_id,
            "outcome": outcome.value,
            "ticks": self.ticks_written,
            "landing": landing,
            "degraded": self.degraded,
            "ended_at": datetime.now(timezone.utc).isoformat(),
        }

    def _open(self):
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            f = open(self.partial_path, "w", encoding="utf-8")
            self._write_line(f, self._header())
            return f
        except OSError as e:
            raise RecordingError(f"cannot open {self.partial_path}: {e}") from e

    @staticmethod
    def _write_line(f, record: dict[str, Any]) -> None:
        f.write(json.dumps(record, cls=NumpyEncoder, separators=(",", ":")))
        f.write("\n")

    def _worker(self) -> None:
        try:
            f = self._open()
        except RecordingError as e:
            self._mark_degraded(str(e))
            f = None

        # Drain until finalize was requested and nothing is left
        while True:
            try:
                record = self._queue.get(timeout=_POLL_S)
            except queue.Empty:
                if self._finish.is_set():
                    break
                continue
            if f is None:
                continue
            try:
                self._write_line(f, record)
                self.ticks_written += 1
            except OSError as e:
                self._mark_degraded(f"write of tick {record.get('tick')} failed: {e}")

        if f is not None:
            self._complete(f)

    def _complete(self, f) -> None:
        outcome, landing = self._ending
        try:
            self._write_line(f, self._footer(outcome, landing))
            f.flush()
        except OSError as e:
            self._mark_degraded(f"footer write failed: {e}")
        try:
            f.close()
        except OSError as e:
            self._mark_degraded(f"close failed: {e}")

        target = self.directory / recording_name(outcome, self.started_at, self.session_id)
        try:
            self.partial_path.replace(target)
        except OSError as e:
            self._mark_degraded(f"rename failed: {e}")
            return
        self.path = target
        logger.info(
            "Session %s recording finalized: %s (%d ticks%s)",
            self.session_id, target.name, self.ticks_written, ", degraded" if self.degraded else "",
        )
