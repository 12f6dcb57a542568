"""Input sources feeding the simulation loop.

The loop only ever polls an :class:`InputSource` without blocking. Device
readers running on other threads hand samples over through a
:class:`LatestSampleSlot`, where a newer sample always replaces an unread
older one.
"""

import queue
from collections.abc import Iterable, Iterator
from typing import Protocol, runtime_checkable

from beartype import beartype

from lander.control.mapper import InputSample


@runtime_checkable
class InputSource(Protocol):
    """Non-blocking sampler of the pilot's input device."""

    def latest(self) -> InputSample | None:
        """Return the newest sample not yet consumed, or None."""
        ...


@beartype
class LatestSampleSlot:
    """Single-slot, latest-value-wins handoff between a device thread and the loop.

    Example:
        >>> slot = LatestSampleSlot()
        >>> slot.put(sample)          # device thread, never blocks
        >>> slot.latest()             # loop thread, never blocks
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[InputSample] = queue.Queue(maxsize=1)

    def put(self, sample: InputSample) -> None:
        """Offer a sample, replacing any unread one."""
        while True:
            try:
                self._queue.put_nowait(sample)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def put_message(self, message: dict, timestamp: float) -> None:
        """Offer a ``sensor_msgs/Joy`` style message."""
        self.put(InputSample.from_message(message, timestamp))

    def latest(self) -> InputSample | None:
        """Take the unread sample, if any."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None


@beartype
class ScriptedInput:
    """Replays a fixed sequence of samples, one per poll.

    ``None`` entries model ticks where the device reported nothing. Once the
    script is exhausted every poll returns None.
    """

    def __init__(self, samples: Iterable[InputSample | None]) -> None:
        self._samples: Iterator[InputSample | None] = iter(samples)

    def latest(self) -> InputSample | None:
        return next(self._samples, None)
