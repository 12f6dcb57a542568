"""Visualization of recorded landing sessions.

Provides a flight dashboard for a :class:`SessionRecording`:
- Altitude and vertical velocity against the rate-of-descent target
- Throttle and propellant remaining
- Tilt and angular speed against the landing limits

All plots use matplotlib with a consistent style.
"""

import matplotlib.pyplot as plt
import numpy as np
from beartype import beartype
from matplotlib.figure import Figure

from lander.config import LandingThresholds
from lander.telemetry.replay import SessionRecording

# =============================================================================
# Plot Style Configuration
# =============================================================================

COLORS = {
    "primary": "#2E86AB",  # Steel blue
    "secondary": "#A23B72",  # Berry
    "accent": "#F18F01",  # Orange
    "limit": "#C73E1D",  # Red for landing limits
    "text": "#333333",
}

PHASE_COLORS = {
    "armed": "#E8E8E8",
    "landed": "#D5F5E3",
    "crashed": "#FADBD8",
}


def _setup_style() -> None:
    """Configure matplotlib style for consistent appearance."""
    plt.rcParams.update(
        {
            "font.family": "sans-serif",
            "font.sans-serif": ["Helvetica", "Arial", "DejaVu Sans"],
            "font.size": 11,
            "axes.titlesize": 13,
            "axes.labelsize": 11,
            "axes.edgecolor": COLORS["text"],
            "axes.labelcolor": COLORS["text"],
            "legend.fontsize": 9,
            "grid.alpha": 0.5,
        }
    )


def _shade_phases(ax, t: np.ndarray, phases: list[str]) -> None:
    """Shade spans of non-flight phases."""
    start = 0
    for i in range(1, len(phases) + 1):
        if i == len(phases) or phases[i] != phases[start]:
            color = PHASE_COLORS.get(phases[start])
            if color is not None and len(t) > 0:
                ax.axvspan(t[start], t[i - 1], color=color, alpha=0.6, linewidth=0)
            start = i


# =============================================================================
# Session Dashboard
# =============================================================================


@beartype
def plot_recording(
    recording: SessionRecording,
    thresholds: LandingThresholds | None = None,
    figsize: tuple[float, float] = (14.0, 9.0),
) -> Figure:
    """Create a dashboard of one recorded session.

    Args:
        recording: Loaded session recording
        thresholds: Landing limits drawn as reference lines
        figsize: Figure size

    Returns:
        matplotlib Figure
    """
    _setup_style()
    thresholds = thresholds or LandingThresholds()
    df = recording.to_dataframe()

    fig, axes = plt.subplots(2, 2, figsize=figsize, sharex=True)
    (ax_alt, ax_vel), (ax_thr, ax_att) = axes

    if df.height == 0:
        fig.suptitle(f"Session {recording.session_id[:8]}: no data", fontsize=14)
        return fig

    t = df["tick"].to_numpy() * (1.0 / recording.header.get("tick_rate_hz", 30.0))
    phases = df["phase"].to_list()
    for ax in axes.flat:
        _shade_phases(ax, t, phases)
        ax.grid(True, alpha=0.3)

    ax_alt.plot(t, df["altitude"].to_numpy(), color=COLORS["primary"], linewidth=2)
    ax_alt.set_ylabel("Altitude (m)")
    ax_alt.set_title("Altitude")

    ax_vel.plot(t, df["vz"].to_numpy(), color=COLORS["primary"], linewidth=2, label="Vertical velocity")
    ax_vel.plot(t, df["rod_target"].to_numpy(), color=COLORS["accent"], linestyle="--", label="RoD target")
    ax_vel.axhline(-thresholds.max_vertical_speed, color=COLORS["limit"], linestyle=":", label="Landing limit")
    ax_vel.set_ylabel("Velocity (m/s)")
    ax_vel.set_title("Vertical Velocity")
    ax_vel.legend(loc="best")

    ax_thr.plot(t, df["throttle"].to_numpy(), color=COLORS["accent"], linewidth=2, label="Throttle")
    ax_thr.set_ylabel("Throttle (-)")
    ax_thr.set_ylim(-0.05, 1.05)
    ax_thr.set_xlabel("Time (s)")
    ax_prop = ax_thr.twinx()
    ax_prop.plot(t, df["propellant_mass"].to_numpy(), color=COLORS["secondary"], linewidth=1.5)
    ax_prop.set_ylabel("Propellant (kg)", color=COLORS["secondary"])
    ax_thr.set_title("Throttle and Propellant")

    ax_att.plot(t, np.degrees(df["tilt"].to_numpy()), color=COLORS["primary"], linewidth=2, label="Tilt")
    ax_att.plot(t, np.degrees(df["angular_speed"].to_numpy()), color=COLORS["secondary"],
                linewidth=1.5, label="Angular speed (deg/s)")
    ax_att.axhline(np.degrees(thresholds.max_tilt), color=COLORS["limit"], linestyle=":")
    ax_att.set_ylabel("Angle (deg)")
    ax_att.set_xlabel("Time (s)")
    ax_att.set_title("Attitude")
    ax_att.legend(loc="best")

    fig.suptitle(
        f"Session {recording.session_id[:8]}: {recording.outcome}",
        fontsize=16,
        fontweight="bold",
        y=0.98,
    )
    fig.tight_layout(rect=[0, 0, 1, 0.96])
    return fig
