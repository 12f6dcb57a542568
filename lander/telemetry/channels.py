"""Live telemetry channels and their subscriber workers.

Every live subscriber owns a bounded queue drained by its own thread, so a
slow or dead viewer can never stall the simulation loop or another
subscriber. When a queue is full the oldest payload is dropped: a
subscriber may see gaps but never reordering. A send failure disconnects
only that subscriber.
"""

import logging
import queue
import socket
import threading
import time
from typing import Protocol, runtime_checkable

from beartype import beartype

from lander.errors import ChannelError
from lander.telemetry.schema import decode

logger = logging.getLogger(__name__)


@runtime_checkable
class LiveChannel(Protocol):
    """Transport for encoded telemetry messages."""

    def send(self, payload: bytes) -> None:
        """Deliver one message; raise on failure."""
        ...

    def close(self) -> None:
        ...


# =============================================================================
# Channels
# =============================================================================


@beartype
class UdpChannel:
    """Sends each message as one UDP datagram.

    Args:
        host: Destination address
        port: Destination port
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 5005) -> None:
        self.address = (host, port)
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def send(self, payload: bytes) -> None:
        try:
            self._sock.sendto(payload, self.address)
        except OSError as e:
            raise ChannelError(f"UDP send to {self.address[0]}:{self.address[1]} failed: {e}") from e

    def close(self) -> None:
        self._sock.close()

    def __repr__(self) -> str:
        return f"UdpChannel({self.address[0]}:{self.address[1]})"


@beartype
class MemoryChannel:
    """Collects decoded messages in memory.

    Used by tests and by tools that consume telemetry in-process.

    Args:
        delay: Seconds to sleep per message, to model a slow viewer
        fail_after: Raise ChannelError once this many messages were delivered
    """

    def __init__(self, delay: float = 0.0, fail_after: int | None = None) -> None:
        self.delay = delay
        self.fail_after = fail_after
        self.closed = False
        self._messages: list[dict] = []
        self._lock = threading.Lock()

    def send(self, payload: bytes) -> None:
        if self.fail_after is not None and len(self._messages) >= self.fail_after:
            raise ChannelError("memory channel configured to fail")
        if self.delay > 0:
            time.sleep(self.delay)
        with self._lock:
            self._messages.append(decode(payload))

    def close(self) -> None:
        self.closed = True

    @property
    def messages(self) -> list[dict]:
        with self._lock:
            return list(self._messages)

    @property
    def ticks(self) -> list[int]:
        return [m["tick"] for m in self.messages]


# =============================================================================
# Subscriber Worker
# =============================================================================

_STOP = object()


@beartype
class Subscriber:
    """A live channel with its own bounded queue and sender thread.

    Args:
        channel: Transport to deliver messages to
        maxsize: Queue bound; the oldest message is dropped when full
        name: Identifier used in logs
    """

    def __init__(self, channel: LiveChannel, maxsize: int = 8, name: str | None = None) -> None:
        self.channel = channel
        self.name = name or repr(channel)
        self.dropped = 0
        self.sent = 0
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._connected = threading.Event()
        self._connected.set()
        self._thread = threading.Thread(target=self._worker, name=f"subscriber-{self.name}", daemon=True)
        self._thread.start()

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def offer(self, payload: bytes) -> bool:
        """Enqueue a message without blocking.

        Returns:
            False if the subscriber is disconnected
        """
        if not self.connected:
            return False
        self._put_dropping_oldest(payload)
        return True

    def close(self, timeout: float | None = 1.0) -> None:
        """Stop the sender thread after it drains queued messages."""
        if self._thread.is_alive():
            self._put_dropping_oldest(_STOP)
            self._thread.join(timeout)
        self._connected.clear()

    def _put_dropping_oldest(self, item) -> None:
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            try:
                self.channel.send(item)
                self.sent += 1
            except (ChannelError, OSError) as e:
                logger.warning("Subscriber %s disconnected: %s", self.name, e)
                self._connected.clear()
                break
        try:
            self.channel.close()
        except OSError as e:
            logger.warning("Closing subscriber %s failed: %s", self.name, e)
