"""Test helpers: a controllable gamepad, a fake clock and config builders."""

import time
from dataclasses import replace

from lander.config import LanderConfig
from lander.control.mapper import InputSample

N_AXES = 6
N_BUTTONS = 16


class Gamepad:
    """Input source holding whatever the test last set.

    Every poll returns the current sample, so held buttons stay held.
    """

    def __init__(self, start_button: int = 9) -> None:
        self.start_button = start_button
        self.axes = [0.0] * N_AXES
        self.buttons = [0.0] * N_BUTTONS
        self.timestamp = 0.0

    def sample(self) -> InputSample:
        return InputSample(axes=tuple(self.axes), buttons=tuple(self.buttons), timestamp=self.timestamp)

    def latest(self) -> InputSample:
        return self.sample()

    def press(self, index: int) -> None:
        self.buttons[index] = 1.0

    def release(self, index: int) -> None:
        self.buttons[index] = 0.0

    def press_start(self) -> None:
        self.press(self.start_button)

    def release_start(self) -> None:
        self.release(self.start_button)


class FakeClock:
    """Monotonic clock advanced by the test (or by a fake sleep)."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_config(tmp_path=None, countdown_ticks: int = 0, throttle_mode: str = "rate_of_descent",
                **initial) -> LanderConfig:
    """Default configuration with a short countdown and an optional initial pose."""
    base = LanderConfig()
    loop = replace(base.loop, countdown_ticks=countdown_ticks, throttle_mode=throttle_mode)
    if tmp_path is not None:
        loop = replace(loop, recordings_dir=tmp_path / "recordings")
    pose = replace(base.initial, **initial) if initial else base.initial
    return replace(base, loop=loop, initial=pose)


def wait_until(predicate, timeout: float = 2.0) -> bool:
    """Poll a predicate until it holds or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()
