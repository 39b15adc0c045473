"""Tests for the offline demo feed."""

import numpy as np

from kart_engine.config import Settings
from kart_engine.core.session import RaceSession
from kart_engine.data_ingestion.demo import (
    STATIC_SAMPLE,
    demo_observations,
    run_demo,
    synthetic_stint,
)


def test_static_sample_observations() -> None:
    observations = demo_observations()
    assert len(observations) == len(STATIC_SAMPLE)
    assert observations[0].team_number == "1"
    assert observations[0].lap_time == 72.3


def test_synthetic_stint_has_slow_out_lap() -> None:
    rng = np.random.default_rng(0)
    laps = synthetic_stint(rng, 10, pace=62.0, noise_std=0.1)
    assert len(laps) == 10
    assert laps[0] > max(laps[1:])


def test_demo_conserves_karts() -> None:
    """Karts only ever move between rows and teams; none appear or vanish."""
    session = RaceSession(Settings(row_count=3, karts_per_row=3))
    offsets = run_demo(session, stints=4, laps_per_stint=8)

    in_rows = [k for row in session.pit_lane.rows for k in row]
    on_track = [t.current_kart_id for t in session.teams.values()]
    assert len(in_rows) == 6
    assert len(set(in_rows)) == len(in_rows)
    assert not set(in_rows) & set(on_track)
    assert len(set(in_rows) | set(on_track)) == 9
    assert set(offsets) <= {k.kart_id for k in session.registry}


def test_demo_scores_every_kart() -> None:
    session = RaceSession(Settings(row_count=3, karts_per_row=3))
    run_demo(session, seed=7)
    assert all(k.score is not None for k in session.registry)
    assert all(len(t.stints) == 4 for t in session.teams.values())
