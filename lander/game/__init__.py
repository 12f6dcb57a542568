"""Game module: phases, landing evaluation and session tracking."""

from lander.game.landing import (
    LandingCriterion,
    LandingCriterionType,
    LandingReport,
    LandingStatus,
    evaluate_landing,
)
from lander.game.machine import GameStateMachine, Transition
from lander.game.phase import Outcome, Phase, PhaseEvent, next_phase, transition
from lander.game.session import GameSession

__all__ = [
    "GameSession",
    "GameStateMachine",
    "LandingCriterion",
    "LandingCriterionType",
    "LandingReport",
    "LandingStatus",
    "Outcome",
    "Phase",
    "PhaseEvent",
    "Transition",
    "evaluate_landing",
    "next_phase",
    "transition",
]
