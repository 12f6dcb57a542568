"""Shared fixtures."""

import pytest
from helpers import FakeClock, Gamepad

from lander.config import LanderConfig


@pytest.fixture
def config():
    return LanderConfig()


@pytest.fixture
def gamepad():
    return Gamepad()


@pytest.fixture
def clock():
    return FakeClock()
