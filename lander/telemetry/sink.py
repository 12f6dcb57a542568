"""Telemetry sink: live fan-out plus per-session recording.

:meth:`TelemetrySink.publish` is called once per tick from the simulation
loop and never blocks on a subscriber or on disk. Finishing a recording is
handed to its writer thread; only :meth:`TelemetrySink.close` waits for the
writers, with a timeout.

Session lifecycle as seen by the sink:
- A snapshot entering Armed with a new session id opens a recording
- Every snapshot of that session is appended, in tick order
- The first terminal snapshot is appended and the recording finalized
- :meth:`close` finalizes a still-open recording as aborted
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from beartype import beartype

from lander.config import LoopSettings
from lander.game.phase import TERMINAL_OUTCOMES, Outcome, Phase
from lander.simulation.snapshot import TelemetrySnapshot
from lander.telemetry.channels import LiveChannel, Subscriber
from lander.telemetry.recording import RecordingWriter
from lander.telemetry.schema import encode, snapshot_to_message

logger = logging.getLogger(__name__)


@beartype
class TelemetrySink:
    """Publishes snapshots to live subscribers and session recordings.

    Args:
        settings: Loop settings (queue sizes, recordings directory, tick rate)
        record: Write session recordings
        recordings_dir: Override of ``settings.recordings_dir``
        finalize_timeout: Seconds :meth:`close` waits for each recording writer
    """

    def __init__(
        self,
        settings: LoopSettings | None = None,
        record: bool = True,
        recordings_dir: Path | None = None,
        finalize_timeout: float | None = 10.0,
    ) -> None:
        self.settings = settings or LoopSettings()
        self.record = record
        self.recordings_dir = Path(recordings_dir or self.settings.recordings_dir)
        self.finalize_timeout = finalize_timeout
        self.published = 0
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._writer: RecordingWriter | None = None
        self._finished: list[RecordingWriter] = []
        self._session_id: str | None = None
        self._closed = False

    # -------------------------------------------------------------------------
    # Subscribers
    # -------------------------------------------------------------------------

    def add_subscriber(self, channel: LiveChannel, name: str | None = None) -> Subscriber:
        """Attach a live channel with its own queue and sender thread."""
        subscriber = Subscriber(channel, maxsize=self.settings.subscriber_queue_size, name=name)
        with self._lock:
            self._subscribers.append(subscriber)
        logger.info("Subscriber %s attached", subscriber.name)
        return subscriber

    def remove_subscriber(self, subscriber: Subscriber) -> None:
        """Detach and stop a subscriber."""
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
        subscriber.close()

    @property
    def subscribers(self) -> list[Subscriber]:
        with self._lock:
            return list(self._subscribers)

    @property
    def recording(self) -> RecordingWriter | None:
        """Writer of the session being recorded, if any."""
        return self._writer

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def publish(self, snapshot: TelemetrySnapshot) -> None:
        """Deliver one snapshot to every subscriber and the session recording."""
        if self._closed:
            return
        message = snapshot_to_message(snapshot)

        if self.record:
            self._record(snapshot, message)

        payload = encode(message).encode("utf-8")
        for subscriber in self.subscribers:
            if not subscriber.offer(payload):
                with self._lock:
                    if subscriber in self._subscribers:
                        self._subscribers.remove(subscriber)
                logger.info("Subscriber %s removed after disconnect", subscriber.name)
        self.published += 1

    def _record(self, snapshot: TelemetrySnapshot, message: dict) -> None:
        session_id = snapshot.session_id

        if self._writer is not None and session_id != self._session_id:
            self._finalize(Outcome.ABORTED)

        if self._writer is None and snapshot.phase is Phase.ARMED and session_id is not None \
                and session_id != self._session_id:
            self._session_id = session_id
            self._writer = RecordingWriter(
                self.recordings_dir,
                session_id,
                started_at=datetime.fromtimestamp(snapshot.timestamp, tz=timezone.utc),
                tick_rate_hz=self.settings.tick_rate_hz,
                maxsize=self.settings.recording_queue_size,
            )
            logger.info("Session %s recording opened in %s", session_id, self.recordings_dir)

        if self._writer is None:
            return
        self._writer.append(message)
        if snapshot.phase.is_terminal:
            self._finalize(TERMINAL_OUTCOMES[snapshot.phase], message.get("landing"))

    def _finalize(self, outcome: Outcome, landing: dict | None = None) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.finalize(outcome, landing)
        self._finished.append(writer)

    @property
    def recordings(self) -> list[Path]:
        """Final paths of recordings whose writers have finished, oldest first."""
        return [w.path for w in self._finished if w.path is not None]

    def close(self, outcome: Outcome = Outcome.ABORTED) -> None:
        """Finalize any open recording, wait for the writers and stop every subscriber.

        A writer that does not finish within ``finalize_timeout`` is marked
        degraded and left behind; close still returns.
        """
        if self._closed:
            return
        self._closed = True
        self._finalize(outcome)
        for writer in self._finished:
            writer.wait(self.finalize_timeout)
        with self._lock:
            subscribers, self._subscribers = self._subscribers, []
        for subscriber in subscribers:
            subscriber.close()
