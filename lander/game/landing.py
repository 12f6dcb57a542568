"""Touchdown evaluation.

A contact event is judged against the configured safe-landing thresholds.
Criteria are always evaluated in the same order (vertical speed,
horizontal speed, tilt, angular speed): every one must hold for a landing,
and any single violation is a crash. The first violated criterion selects
the remark shown to the pilot.

Scoring follows the game: each criterion contributes
``2 * (max - actual) / max``, so a gentle upright touchdown scores highest
and a crash scores negative.
"""

from dataclasses import dataclass
from enum import Enum

from beartype import beartype

from lander.config import LandingThresholds
from lander.dynamics.rigid_body import ContactEvent


class LandingStatus(Enum):
    """Result of a touchdown."""

    LANDED = "landed"
    CRASHED = "crashed"


class LandingCriterionType(Enum):
    """Quantities checked at touchdown, in evaluation order."""

    VERTICAL_SPEED = "vertical_speed"
    HORIZONTAL_SPEED = "horizontal_speed"
    TILT = "tilt"
    ANGULAR_SPEED = "angular_speed"


REMARKS: dict[LandingCriterionType | None, str] = {
    None: "The eagle has landed.",
    LandingCriterionType.VERTICAL_SPEED: (
        "You've redefined the term 'lunar impactor'. "
        "NASA's crater department thanks you for the new research subject."
    ),
    LandingCriterionType.HORIZONTAL_SPEED: (
        "You landed... sideways. The ground wasn't ready for that level of enthusiasm."
    ),
    LandingCriterionType.TILT: "You came in like a majestic leaning tower of 'nope'.",
    LandingCriterionType.ANGULAR_SPEED: (
        "You were still spinning on landing. Were you trying for a celebratory twirl?"
    ),
}


@beartype
@dataclass(frozen=True)
class LandingCriterion:
    """One threshold check.

    Attributes:
        type: Quantity checked
        max: Inclusive limit
        actual: Measured value at contact
    """
    type: LandingCriterionType
    max: float
    actual: float

    @property
    def ok(self) -> bool:
        return self.actual <= self.max

    @property
    def score(self) -> float:
        return (self.max - self.actual) / self.max

    def to_dict(self) -> dict:
        return {"type": self.type.value, "max": self.max, "actual": self.actual, "ok": self.ok}


@beartype
@dataclass(frozen=True)
class LandingReport:
    """Verdict on a touchdown.

    Attributes:
        status: Landed or crashed
        criteria: All criteria in evaluation order
        first_failure: First violated criterion, None when landed
        remark: Message for the pilot
        score: Sum of weighted criterion scores
    """
    status: LandingStatus
    criteria: tuple[LandingCriterion, ...]
    first_failure: LandingCriterionType | None
    remark: str
    score: float

    @property
    def landed(self) -> bool:
        return self.status is LandingStatus.LANDED

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            "status": self.status.value,
            "remark": self.remark,
            "score": self.score,
            "first_failure": self.first_failure.value if self.first_failure else None,
            "criteria": [c.to_dict() for c in self.criteria],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LandingReport":
        """Rebuild a report from :meth:`to_dict` output."""
        first = data.get("first_failure")
        return cls(
            status=LandingStatus(data["status"]),
            criteria=tuple(
                LandingCriterion(
                    type=LandingCriterionType(c["type"]),
                    max=float(c["max"]),
                    actual=float(c["actual"]),
                )
                for c in data["criteria"]
            ),
            first_failure=LandingCriterionType(first) if first else None,
            remark=data["remark"],
            score=float(data["score"]),
        )


@beartype
def landing_criteria(contact: ContactEvent, thresholds: LandingThresholds) -> tuple[LandingCriterion, ...]:
    """Build the criteria for a contact event, in evaluation order."""
    return (
        LandingCriterion(LandingCriterionType.VERTICAL_SPEED,
                         thresholds.max_vertical_speed, float(contact.vertical_speed)),
        LandingCriterion(LandingCriterionType.HORIZONTAL_SPEED,
                         thresholds.max_horizontal_speed, float(contact.horizontal_speed)),
        LandingCriterion(LandingCriterionType.TILT,
                         thresholds.max_tilt, float(contact.tilt)),
        LandingCriterion(LandingCriterionType.ANGULAR_SPEED,
                         thresholds.max_angular_speed, float(contact.angular_speed)),
    )


@beartype
def evaluate_landing(contact: ContactEvent, thresholds: LandingThresholds) -> LandingReport:
    """Judge a touchdown.

    Args:
        contact: Kinematics at ground contact
        thresholds: Safe-landing limits

    Returns:
        LandingReport, LANDED only if every criterion holds
    """
    criteria = landing_criteria(contact, thresholds)
    first_failure = next((c.type for c in criteria if not c.ok), None)
    return LandingReport(
        status=LandingStatus.LANDED if first_failure is None else LandingStatus.CRASHED,
        criteria=criteria,
        first_failure=first_failure,
        remark=REMARKS[first_failure],
        score=sum(2.0 * c.score for c in criteria),
    )
