"""Unit tests for the control mapper and input sources."""

from dataclasses import replace

import pytest
from helpers import Gamepad
from numpy.testing import assert_allclose

from lander.config import AxisMapping
from lander.control import ControlMapper, InputSample, LatestSampleSlot, ScriptedInput

START = 9
VV_UP = 12
VV_DOWN = 13
YAW_LEFT = 4
YAW_RIGHT = 5


@pytest.fixture
def mapping():
    return AxisMapping()


@pytest.fixture
def mapper(mapping):
    return ControlMapper(mapping, stale_after_s=0.5)


def prime(mapper, pad):
    """Feed a released baseline sample so later presses register as edges."""
    return mapper.map(pad.sample(), now=0.0)


# =============================================================================
# Axes
# =============================================================================


class TestAxes:
    """Test deadzone, scaling and axis roles."""

    def test_deadzone_snaps_to_zero(self, mapper):
        """Axis values inside the deadzone produce no command."""
        pad = Gamepad()
        pad.axes[0] = 0.05
        command = mapper.map(pad.sample(), now=0.0)
        assert command.rcs_force[0] == 0.0

    def test_outside_deadzone_passes_through(self, mapper):
        """Values outside the deadzone keep their magnitude."""
        pad = Gamepad()
        pad.axes[1] = 0.6
        command = mapper.map(pad.sample(), now=0.0)
        assert_allclose(command.rcs_force[1], 0.6)

    def test_roll_and_pitch_inverted(self, mapper):
        """Default scales invert roll and pitch."""
        pad = Gamepad()
        pad.axes[2] = 0.5
        pad.axes[3] = -0.4
        command = mapper.map(pad.sample(), now=0.0)
        assert_allclose(command.rcs_torque[:2], [-0.5, 0.4])

    def test_axis_clamped(self, mapper):
        """Out-of-range axis values are clamped to [-1, 1]."""
        pad = Gamepad()
        pad.axes[0] = 3.0
        command = mapper.map(pad.sample(), now=0.0)
        assert command.rcs_force[0] == 1.0

    def test_per_axis_deadzone_override(self, mapping):
        """A per-role deadzone replaces the default for that axis only."""
        mapper = ControlMapper(replace(mapping, dead_zones={"strafe_x": 0.3}))
        pad = Gamepad()
        pad.axes[0] = 0.2
        pad.axes[1] = 0.2
        command = mapper.map(pad.sample())
        assert command.rcs_force[0] == 0.0
        assert_allclose(command.rcs_force[1], 0.2)

    def test_throttle_axis_mapped_to_unit_range(self, mapping):
        """A mapped throttle axis goes from [-1, 1] to [0, 1]."""
        mapper = ControlMapper(replace(mapping, axis_throttle=4))
        pad = Gamepad()
        pad.axes[4] = 0.5
        assert_allclose(mapper.map(pad.sample()).throttle, 0.75)
        pad.axes[4] = -1.0
        assert mapper.map(pad.sample()).throttle == 0.0

    def test_unmapped_throttle_is_zero(self, mapper):
        """Without a throttle axis the mapper commands zero throttle."""
        pad = Gamepad()
        pad.axes[4] = 1.0
        assert mapper.map(pad.sample(), now=0.0).throttle == 0.0

    def test_vertical_axis(self, mapping):
        """An optional vertical RCS axis drives body Z force."""
        mapper = ControlMapper(replace(mapping, axis_vertical=5))
        pad = Gamepad()
        pad.axes[5] = -0.7
        assert_allclose(mapper.map(pad.sample()).rcs_force[2], -0.7)


# =============================================================================
# Buttons
# =============================================================================


class TestButtons:
    """Test edge detection and tap/hold semantics."""

    def test_first_sample_produces_no_edge(self, mapper):
        """A button already down on the first sample is not a press."""
        pad = Gamepad()
        pad.press(START)
        assert not mapper.map(pad.sample(), now=0.0).reset_requested

    def test_start_press_edge(self, mapper):
        """Start reports reset_requested only on the press edge."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(START)
        assert mapper.map(pad.sample(), now=0.0).reset_requested
        assert not mapper.map(pad.sample(), now=0.0).reset_requested
        pad.release(START)
        assert not mapper.map(pad.sample(), now=0.0).reset_requested
        pad.press(START)
        assert mapper.map(pad.sample(), now=0.0).reset_requested

    def test_reset_rebaselines(self, mapper):
        """After reset() a held button is not reported as a new press."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(START)
        mapper.map(pad.sample(), now=0.0)
        mapper.reset()
        assert not mapper.map(pad.sample(), now=0.0).reset_requested

    def test_yaw_is_hold(self, mapper):
        """Yaw buttons command torque for as long as they are held."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(YAW_LEFT)
        for _ in range(5):
            assert mapper.map(pad.sample(), now=0.0).rcs_torque[2] == 1.0
        pad.press(YAW_RIGHT)
        assert mapper.map(pad.sample(), now=0.0).rcs_torque[2] == 0.0
        pad.release(YAW_LEFT)
        assert mapper.map(pad.sample(), now=0.0).rcs_torque[2] == -1.0

    def test_tap_nudges_once(self, mapper, mapping):
        """A short press nudges the descent target once."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(VV_UP)
        nudges = [mapper.map(pad.sample(), now=0.0).vertical_velocity_nudge for _ in range(5)]
        assert nudges == [mapping.vertical_velocity_step, 0.0, 0.0, 0.0, 0.0]

    def test_tap_down_is_negative(self, mapper, mapping):
        """The down button nudges by the negative step."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(VV_DOWN)
        assert mapper.map(pad.sample(), now=0.0).vertical_velocity_nudge == -mapping.vertical_velocity_step

    def test_hold_repeats(self, mapper, mapping):
        """Holding past repeat_after_ticks repeats every repeat_interval_ticks."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.press(VV_UP)
        held = mapping.repeat_after_ticks + 2 * mapping.repeat_interval_ticks
        nudges = [mapper.map(pad.sample(), now=0.0).vertical_velocity_nudge for _ in range(held)]
        fired = [i + 1 for i, n in enumerate(nudges) if n != 0.0]
        assert fired == [
            1,
            mapping.repeat_after_ticks + mapping.repeat_interval_ticks,
            mapping.repeat_after_ticks + 2 * mapping.repeat_interval_ticks,
        ]

    def test_pressure_sensitive_button(self, mapper):
        """Any positive button value counts as pressed."""
        pad = Gamepad()
        prime(mapper, pad)
        pad.buttons[START] = 0.2
        assert mapper.map(pad.sample(), now=0.0).reset_requested


# =============================================================================
# Faulty Input
# =============================================================================


class TestFaultyInput:
    """Test fallback to the neutral command."""

    def test_missing_sample_is_neutral(self, mapper):
        """No sample maps to neutral."""
        assert mapper.map(None).is_neutral

    def test_stale_sample_is_neutral(self, mapper):
        """A sample older than the stale limit maps to neutral."""
        pad = Gamepad()
        pad.axes[0] = 1.0
        assert not mapper.map(pad.sample(), now=0.4).is_neutral
        assert mapper.map(pad.sample(), now=0.6).is_neutral

    def test_short_sample_is_neutral(self, mapper, caplog):
        """A sample with too few axes or buttons maps to neutral and warns."""
        sample = InputSample(axes=(0.5,), buttons=(), timestamp=0.0)
        with caplog.at_level("WARNING"):
            assert mapper.map(sample, now=0.0).is_neutral
        assert any("Malformed" in r.message for r in caplog.records)

    def test_non_finite_sample_is_neutral(self, mapper):
        """NaN axis values map to neutral."""
        pad = Gamepad()
        pad.axes[0] = float("nan")
        assert mapper.map(pad.sample(), now=0.0).is_neutral


# =============================================================================
# Input Sources
# =============================================================================


class TestInputSources:
    """Test the non-blocking sample handoff."""

    def test_slot_latest_wins(self):
        """Only the newest unread sample is delivered."""
        slot = LatestSampleSlot()
        slot.put(InputSample(axes=(0.1,), buttons=(), timestamp=1.0))
        slot.put(InputSample(axes=(0.2,), buttons=(), timestamp=2.0))
        sample = slot.latest()
        assert sample.timestamp == 2.0
        assert slot.latest() is None

    def test_slot_from_message(self):
        """Joy-style messages are converted to samples."""
        slot = LatestSampleSlot()
        slot.put_message({"axes": [0, 0.5], "buttons": [1, 0]}, timestamp=3.0)
        sample = slot.latest()
        assert sample.axes == (0.0, 0.5)
        assert sample.pressed(0)

    def test_scripted_input_exhausts_to_none(self):
        """Scripted input replays samples then returns None."""
        a = InputSample(axes=(), buttons=(), timestamp=0.0)
        source = ScriptedInput([a, None])
        assert source.latest() is a
        assert source.latest() is None
        assert source.latest() is None
