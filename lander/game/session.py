"""Game session bookkeeping."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from beartype import beartype

from lander.game.landing import LandingReport
from lander.game.phase import Outcome, Phase


def new_session_id() -> str:
    """Random hex session identifier."""
    return uuid.uuid4().hex


@beartype
@dataclass
class GameSession:
    """One play-through, from Armed to a terminal phase.

    Attributes:
        session_id: Unique identifier, also part of the recording name
        started_at: Wall-clock start (UTC)
        phase: Current phase
        outcome: NONE while running, then LANDED, CRASHED or ABORTED
        report: Landing report once the vehicle touched down
        ended_at: Wall-clock end (UTC), None while running
    """
    session_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    phase: Phase = Phase.ARMED
    outcome: Outcome = Outcome.NONE
    report: LandingReport | None = None
    ended_at: datetime | None = None

    @property
    def active(self) -> bool:
        return self.outcome is Outcome.NONE

    def finish(self, outcome: Outcome, report: LandingReport | None = None) -> None:
        """Mark the session as ended."""
        self.outcome = outcome
        self.report = report
        self.ended_at = datetime.now(timezone.utc)
