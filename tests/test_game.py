"""Unit tests for phases, landing evaluation and the game state machine."""

import itertools

import numpy as np
import pytest
from helpers import make_config
from numpy.testing import assert_allclose

from lander.config import LandingThresholds
from lander.control.command import ControlCommand
from lander.dynamics.rigid_body import ContactEvent
from lander.game import (
    GameStateMachine,
    LandingCriterionType,
    LandingReport,
    LandingStatus,
    Outcome,
    Phase,
    PhaseEvent,
    evaluate_landing,
    next_phase,
    transition,
)

START = ControlCommand(reset_requested=True)
NEUTRAL = ControlCommand.neutral()


def contact(vertical=1.0, horizontal=0.0, tilt=0.0, angular=0.0) -> ContactEvent:
    return ContactEvent(
        time=10.0,
        vertical_velocity=-vertical,
        vertical_speed=vertical,
        horizontal_speed=horizontal,
        tilt=tilt,
        angular_speed=angular,
        x=0.0,
        y=0.0,
    )


# =============================================================================
# Transition Function
# =============================================================================


class TestTransition:
    """Test the pure transition function."""

    LEGAL = {
        (Phase.IDLE, PhaseEvent.START): Phase.ARMED,
        (Phase.ARMED, PhaseEvent.COUNTDOWN_ELAPSED): Phase.FLIGHT,
        (Phase.FLIGHT, PhaseEvent.SAFE_TOUCHDOWN): Phase.LANDED,
        (Phase.FLIGHT, PhaseEvent.UNSAFE_TOUCHDOWN): Phase.CRASHED,
        (Phase.LANDED, PhaseEvent.START): Phase.ARMED,
        (Phase.CRASHED, PhaseEvent.START): Phase.ARMED,
    }

    def test_closure(self):
        """Every (phase, event) pair yields a phase; only legal pairs change it."""
        for phase, event in itertools.product(Phase, PhaseEvent):
            result = transition(phase, event)
            assert isinstance(result, Phase)
            assert result is self.LEGAL.get((phase, event), phase)

    def test_no_event(self):
        """No event leaves the phase unchanged."""
        for phase in Phase:
            assert transition(phase, None) is phase

    def test_terminal_phases(self):
        """Only Landed and Crashed are terminal."""
        assert {p for p in Phase if p.is_terminal} == {Phase.LANDED, Phase.CRASHED}

    def test_next_phase_start_from_idle(self):
        """A start press arms the game."""
        assert next_phase(Phase.IDLE, START, None, LandingThresholds()) is Phase.ARMED

    def test_next_phase_start_in_flight_ignored(self):
        """Start during flight is ignored."""
        assert next_phase(Phase.FLIGHT, START, None, LandingThresholds()) is Phase.FLIGHT

    def test_next_phase_countdown(self):
        """Armed becomes Flight once the countdown reaches zero."""
        thresholds = LandingThresholds()
        assert next_phase(Phase.ARMED, NEUTRAL, None, thresholds, countdown_remaining=3) is Phase.ARMED
        assert next_phase(Phase.ARMED, NEUTRAL, None, thresholds, countdown_remaining=0) is Phase.FLIGHT

    def test_next_phase_touchdown(self):
        """Contact in flight lands or crashes depending on the criteria."""
        thresholds = LandingThresholds()
        assert next_phase(Phase.FLIGHT, NEUTRAL, contact(1.0), thresholds) is Phase.LANDED
        assert next_phase(Phase.FLIGHT, NEUTRAL, contact(10.0), thresholds) is Phase.CRASHED

    def test_contact_outside_flight_ignored(self):
        """Contact events only matter in Flight."""
        thresholds = LandingThresholds()
        for phase in (Phase.IDLE, Phase.LANDED, Phase.CRASHED):
            assert next_phase(phase, NEUTRAL, contact(10.0), thresholds) is phase


# =============================================================================
# Landing Evaluation
# =============================================================================


class TestLandingEvaluation:
    """Test the touchdown criteria."""

    def test_safe_landing(self):
        """All criteria within limits is a landing."""
        report = evaluate_landing(contact(1.0, 0.2, 0.05, 0.01), LandingThresholds())
        assert report.status is LandingStatus.LANDED
        assert report.first_failure is None
        assert report.remark == "The eagle has landed."
        assert all(c.ok for c in report.criteria)

    def test_criteria_order(self):
        """Criteria are always reported in the fixed order."""
        report = evaluate_landing(contact(), LandingThresholds())
        assert [c.type for c in report.criteria] == [
            LandingCriterionType.VERTICAL_SPEED,
            LandingCriterionType.HORIZONTAL_SPEED,
            LandingCriterionType.TILT,
            LandingCriterionType.ANGULAR_SPEED,
        ]

    @pytest.mark.parametrize("kwargs, failure", [
        (dict(vertical=3.5), LandingCriterionType.VERTICAL_SPEED),
        (dict(horizontal=1.5), LandingCriterionType.HORIZONTAL_SPEED),
        (dict(tilt=0.3), LandingCriterionType.TILT),
        (dict(angular=0.5), LandingCriterionType.ANGULAR_SPEED),
    ])
    def test_single_violation_crashes(self, kwargs, failure):
        """Any one violated criterion is a crash and selects the remark."""
        report = evaluate_landing(contact(**kwargs), LandingThresholds())
        assert report.status is LandingStatus.CRASHED
        assert report.first_failure is failure
        assert report.remark != "The eagle has landed."

    def test_first_failure_in_order(self):
        """With several violations the earliest criterion is reported."""
        report = evaluate_landing(contact(vertical=1.0, horizontal=5.0, tilt=1.0), LandingThresholds())
        assert report.first_failure is LandingCriterionType.HORIZONTAL_SPEED

    def test_limit_is_inclusive(self):
        """A value exactly at the limit is acceptable."""
        report = evaluate_landing(contact(vertical=3.0, horizontal=1.0), LandingThresholds())
        assert report.landed

    def test_score(self):
        """Score is twice the sum of normalized margins."""
        thresholds = LandingThresholds()
        report = evaluate_landing(contact(1.5, 0.5, 0.0, 0.0), thresholds)
        assert_allclose(report.score, 2.0 * (0.5 + 0.5 + 1.0 + 1.0))

    def test_report_dict_round_trip(self):
        """Reports survive to_dict/from_dict."""
        report = evaluate_landing(contact(vertical=4.0), LandingThresholds())
        restored = LandingReport.from_dict(report.to_dict())
        assert restored == report


# =============================================================================
# State Machine
# =============================================================================


class TestGameStateMachine:
    """Test the stateful machine wrapping the transition function."""

    @pytest.fixture
    def machine(self):
        ids = iter(f"{i:032x}" for i in range(1, 100))
        return GameStateMachine(make_config(countdown_ticks=2), session_id_factory=lambda: next(ids))

    def test_starts_idle(self, machine):
        """A new machine is idle without a session."""
        assert machine.phase is Phase.IDLE
        assert machine.session is None

    def test_start_arms_new_session(self, machine):
        """Start opens a session and hands back a fresh vehicle state."""
        state = machine.initial_state()
        result = machine.observe(state, None, START)
        assert result.phase is Phase.ARMED
        assert result.reset_state is not None
        assert result.session.session_id == f"{1:032x}"
        assert result.session.outcome is Outcome.NONE
        assert machine.countdown_remaining == 2

    def test_countdown_then_flight(self, machine):
        """Flight begins after countdown_ticks further ticks in Armed."""
        state = machine.initial_state()
        machine.observe(state, None, START)
        phases = [machine.observe(state, None, NEUTRAL) for _ in range(3)]
        assert phases[0] is None
        assert phases[1] is None
        assert phases[2].phase is Phase.FLIGHT

    def test_double_start_ignored(self, machine):
        """A second start press while armed changes nothing."""
        state = machine.initial_state()
        machine.observe(state, None, START)
        session = machine.session
        assert machine.observe(state, None, START) is None
        assert machine.session is session

    def _fly(self, machine):
        state = machine.initial_state()
        machine.observe(state, None, START)
        while machine.phase is not Phase.FLIGHT:
            machine.observe(state, None, NEUTRAL)
        return state

    def test_touchdown_ends_session(self, machine):
        """An unsafe touchdown crashes and closes the session."""
        state = self._fly(machine)
        result = machine.observe(state, contact(vertical=8.0), NEUTRAL)
        assert result.phase is Phase.CRASHED
        assert result.report.first_failure is LandingCriterionType.VERTICAL_SPEED
        assert machine.session.outcome is Outcome.CRASHED
        assert machine.session.ended_at is not None

    def test_restart_after_crash(self, machine):
        """Start after a crash arms a new session with a fresh state."""
        state = self._fly(machine)
        machine.observe(state, contact(vertical=8.0), NEUTRAL)
        first = machine.session
        result = machine.observe(state, None, START)
        assert result.phase is Phase.ARMED
        assert result.session is not first
        assert result.session.session_id != first.session_id
        assert result.reset_state.propellant_mass == machine.config.vehicle.propellant_mass
        assert_allclose(result.reset_state.altitude, machine.config.initial.altitude)
        assert_allclose(result.reset_state.velocity, [0.0, 0.0, machine.config.initial.vertical_velocity])
        assert np.all(result.reset_state.angular_velocity == 0.0)

    def test_abort(self, machine):
        """Aborting a running session marks it aborted and returns to idle."""
        self._fly(machine)
        session = machine.abort()
        assert session.outcome is Outcome.ABORTED
        assert machine.phase is Phase.IDLE
        assert machine.abort() is None

    def test_abort_after_landing_is_noop(self, machine):
        """A finished session cannot be aborted."""
        state = self._fly(machine)
        machine.observe(state, contact(vertical=1.0), NEUTRAL)
        assert machine.abort() is None
        assert machine.session.outcome is Outcome.LANDED
