"""Game phases and the pure transition function.

    Idle --start--> Armed --countdown elapsed--> Flight
    Flight --safe touchdown--> Landed
    Flight --unsafe touchdown--> Crashed
    Landed/Crashed --start--> Armed

Every other (phase, event) pair leaves the phase unchanged. Such pairs are
expected races between pilot input and physics (a double start press, a
start press mid-flight) and are not errors.
"""

from enum import Enum

from beartype import beartype

from lander.config import LandingThresholds
from lander.control.command import ControlCommand
from lander.dynamics.rigid_body import ContactEvent
from lander.game.landing import LandingReport, evaluate_landing


class Phase(Enum):
    """Stage of a game session."""

    IDLE = "idle"
    ARMED = "armed"
    FLIGHT = "flight"
    LANDED = "landed"
    CRASHED = "crashed"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.LANDED, Phase.CRASHED)


class Outcome(Enum):
    """How a session ended."""

    NONE = "none"
    LANDED = "landed"
    CRASHED = "crashed"
    ABORTED = "aborted"


class PhaseEvent(Enum):
    """Inputs to the transition function."""

    START = "start"
    COUNTDOWN_ELAPSED = "countdown_elapsed"
    SAFE_TOUCHDOWN = "safe_touchdown"
    UNSAFE_TOUCHDOWN = "unsafe_touchdown"


_TRANSITIONS: dict[tuple[Phase, PhaseEvent], Phase] = {
    (Phase.IDLE, PhaseEvent.START): Phase.ARMED,
    (Phase.ARMED, PhaseEvent.COUNTDOWN_ELAPSED): Phase.FLIGHT,
    (Phase.FLIGHT, PhaseEvent.SAFE_TOUCHDOWN): Phase.LANDED,
    (Phase.FLIGHT, PhaseEvent.UNSAFE_TOUCHDOWN): Phase.CRASHED,
    (Phase.LANDED, PhaseEvent.START): Phase.ARMED,
    (Phase.CRASHED, PhaseEvent.START): Phase.ARMED,
}

TERMINAL_OUTCOMES: dict[Phase, Outcome] = {
    Phase.LANDED: Outcome.LANDED,
    Phase.CRASHED: Outcome.CRASHED,
}


@beartype
def transition(phase: Phase, event: PhaseEvent | None) -> Phase:
    """Apply an event; illegal or absent events leave the phase unchanged."""
    if event is None:
        return phase
    return _TRANSITIONS.get((phase, event), phase)


@beartype
def phase_event(
    phase: Phase,
    command: ControlCommand,
    contact: ContactEvent | None,
    thresholds: LandingThresholds,
    countdown_remaining: int = 0,
) -> tuple[PhaseEvent | None, LandingReport | None]:
    """Derive the single event relevant to a phase from one tick's inputs.

    Returns:
        (event or None, landing report when a touchdown was judged)
    """
    if phase in (Phase.IDLE, Phase.LANDED, Phase.CRASHED):
        return (PhaseEvent.START if command.reset_requested else None), None
    if phase is Phase.ARMED:
        return (PhaseEvent.COUNTDOWN_ELAPSED if countdown_remaining <= 0 else None), None
    if contact is None:
        return None, None
    report = evaluate_landing(contact, thresholds)
    event = PhaseEvent.SAFE_TOUCHDOWN if report.landed else PhaseEvent.UNSAFE_TOUCHDOWN
    return event, report


@beartype
def next_phase(
    phase: Phase,
    command: ControlCommand,
    contact: ContactEvent | None,
    thresholds: LandingThresholds,
    countdown_remaining: int = 0,
) -> Phase:
    """Pure transition from one tick's command and contact event."""
    event, _ = phase_event(phase, command, contact, thresholds, countdown_remaining)
    return transition(phase, event)
