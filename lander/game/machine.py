"""Game state machine.

Wraps the pure transition function with the bookkeeping a running game
needs: the countdown while Armed, the current :class:`GameSession`, and a
fresh vehicle state whenever a session starts.

Example:
    >>> from lander.config import LanderConfig
    >>> from lander.control.command import ControlCommand
    >>> from lander.game import GameStateMachine
    >>>
    >>> config = LanderConfig()
    >>> machine = GameStateMachine(config)
    >>> state = machine.initial_state()
    >>> start = ControlCommand(reset_requested=True)
    >>> transition = machine.observe(state, None, start)
    >>> transition.phase
    <Phase.ARMED: 'armed'>
"""

import logging
from collections.abc import Callable
from typing import NamedTuple

from beartype import beartype

from lander.config import LanderConfig
from lander.control.command import ControlCommand
from lander.dynamics.rigid_body import ContactEvent
from lander.dynamics.state import VehicleState
from lander.game.landing import LandingReport
from lander.game.phase import TERMINAL_OUTCOMES, Outcome, Phase, PhaseEvent, phase_event, transition
from lander.game.session import GameSession, new_session_id

logger = logging.getLogger(__name__)


class Transition(NamedTuple):
    """A phase change produced by :meth:`GameStateMachine.observe`."""
    previous: Phase
    phase: Phase
    event: PhaseEvent
    session: GameSession
    report: LandingReport | None          # Set on touchdown
    reset_state: VehicleState | None      # Set when a new session starts


@beartype
class GameStateMachine:
    """Tracks the phase and the live game session.

    Args:
        config: Static configuration (initial pose, thresholds, countdown)
        session_id_factory: Produces session ids, uuid hex by default
    """

    def __init__(
        self,
        config: LanderConfig,
        session_id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self.config = config
        self._session_id_factory = session_id_factory
        self._phase = Phase.IDLE
        self._session: GameSession | None = None
        self._countdown = 0

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def session(self) -> GameSession | None:
        """Current or most recent session, None before the first start."""
        return self._session

    @property
    def countdown_remaining(self) -> int:
        return self._countdown

    def initial_state(self) -> VehicleState:
        """Vehicle at the configured initial pose with full propellant."""
        return VehicleState.initial(self.config.vehicle, self.config.initial)

    def observe(
        self,
        state: VehicleState,
        contact: ContactEvent | None,
        command: ControlCommand,
    ) -> Transition | None:
        """Feed one tick's results into the machine.

        Args:
            state: Vehicle state after this tick's dynamics step
            contact: Ground contact from this tick's step, if any
            command: Command applied this tick

        Returns:
            Transition when the phase changed, otherwise None
        """
        event, report = phase_event(
            self._phase, command, contact, self.config.landing, self._countdown
        )
        new_phase = transition(self._phase, event)
        if event is None or new_phase is self._phase:
            if self._phase is Phase.ARMED:
                self._countdown -= 1
            return None

        previous = self._phase
        self._phase = new_phase
        reset_state = None

        if new_phase is Phase.ARMED:
            self._session = GameSession(session_id=self._session_id_factory())
            self._countdown = self.config.loop.countdown_ticks
            reset_state = self.initial_state()
            logger.info("Session %s armed (from %s)", self._session.session_id, previous.value)
        elif new_phase is Phase.FLIGHT:
            logger.info("Session %s in flight", self._session.session_id)
        else:
            self._session.finish(TERMINAL_OUTCOMES[new_phase], report)
            logger.info(
                "Session %s %s at t=%.2f s (score %.2f): %s",
                self._session.session_id, new_phase.value, state.time, report.score, report.remark,
            )

        self._session.phase = new_phase
        return Transition(previous, new_phase, event, self._session, report, reset_state)

    def abort(self) -> GameSession | None:
        """End a running session as aborted.

        Returns:
            The aborted session, or None if no session was running
        """
        session = self._session
        if session is None or not session.active:
            return None
        session.finish(Outcome.ABORTED)
        logger.info("Session %s aborted in %s", session.session_id, self._phase.value)
        self._phase = Phase.IDLE
        return session
