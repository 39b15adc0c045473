"""Offline test-mode feed for the pit board.

Generates lap observations for a handful of teams rotating through the
pit rows, with a hidden per-kart pace offset and Gaussian lap noise, so
the scorer and the pit rotation can be exercised without a live event.
"""

from __future__ import annotations

import numpy as np
from numpy.random import Generator

from kart_engine.core.observation import Observation
from kart_engine.core.session import RaceSession

# number, lap time -- the minimal static sample used by the dashboard
STATIC_SAMPLE: tuple[tuple[str, float], ...] = (
    ("1", 72.3),
    ("2", 74.1),
    ("3", 70.5),
    ("1", 71.8),
    ("2", 73.5),
    ("3", 69.9),
    ("1", 72.0),
    ("2", 75.0),
    ("3", 70.2),
)

BASE_LAP: float = 62.0


def demo_observations() -> list[Observation]:
    """The static sample as observations (one lap per row)."""
    return [
        Observation(team_number=number, team_name=f"Team {number}", lap_time=lap)
        for number, lap in STATIC_SAMPLE
    ]


def synthetic_stint(
    rng: Generator,
    laps: int,
    pace: float,
    noise_std: float = 0.25,
    out_lap_penalty: float = 6.0,
) -> list[float]:
    """Lap times for one stint: a slow out-lap then noisy racing laps."""
    if laps < 1:
        raise ValueError("laps must be >= 1.")
    times = pace + rng.normal(0.0, noise_std, size=laps)
    times[0] += out_lap_penalty
    return [round(float(t), 3) for t in times]


def run_demo(
    session: RaceSession,
    teams: tuple[str, ...] = ("7", "12", "23"),
    stints: int = 4,
    laps_per_stint: int = 12,
    seed: int = 2024,
) -> dict[str, float]:
    """Drive *session* through a synthetic race.

    Every team enters row ``i % rows`` before each stint, then laps are
    ingested lap by lap.  Kart pace offsets are drawn once per kart.

    Returns:
        Kart id -> hidden pace offset in seconds (negative is faster).
    """
    rng = np.random.default_rng(seed)
    offsets: dict[str, float] = {}
    driver_pace = {number: BASE_LAP + rng.uniform(-0.8, 0.8) for number in teams}
    rows = len(session.pit_lane.rows)

    for stint_idx in range(stints):
        for idx, number in enumerate(teams):
            row = (idx + stint_idx) % rows
            if not session.pit_lane.rows[row]:
                session.add_kart(row)
            session.pit_entry(row, number)

        stint_laps: dict[str, list[float]] = {}
        for number in teams:
            kart_id = session.teams[number].current_kart_id
            assert kart_id is not None
            if kart_id not in offsets:
                offsets[kart_id] = float(rng.normal(0.0, 0.6))
            stint_laps[number] = synthetic_stint(
                rng, laps_per_stint, driver_pace[number] + offsets[kart_id]
            )

        for lap_idx in range(laps_per_stint):
            session.ingest(
                Observation(
                    team_number=number,
                    team_name=f"Team {number}",
                    lap_time=stint_laps[number][lap_idx],
                )
                for number in teams
            )
    return offsets
